#! .venv\Scripts\python.exe

"""
Errors raised inside the solver and the result variants returned at its boundaries.

SolverError and UnsupportedError are raised by the internal layers. The recipe
stage and the top-level puzzle solve catch them and return one of the result
classes below instead, so callers check the result type rather than catching.
"""


class SolverError(Exception):
    """An internal step failed: an unreachable arm target, an unsatisfiable element request and so on."""


class UnsupportedError(SolverError):
    """A strategy cannot handle this configuration; the caller may fall back to a more general one."""


class _Result:
    ok = False

    def __init__(self, reason=None):
        self.reason = reason

    def __repr__(self):
        return f"{type(self).__name__}({self.reason!r})"


class RecipeOk(_Result):
    ok = True

    def __init__(self, recipe):
        super().__init__(None)
        self.recipe = recipe

    def __repr__(self):
        return f"RecipeOk(has_waste={self.recipe.has_waste})"


class RecipeInfeasible(_Result):
    pass


class RecipeUnsupported(_Result):
    pass


class SolveOk(_Result):
    ok = True

    def __init__(self, solution):
        super().__init__(None)
        self.solution = solution

    def __repr__(self):
        return f"SolveOk({self.solution})"


class SolveInfeasible(_Result):
    pass


class SolveUnsupported(_Result):
    pass


class SolveFailed(_Result):
    pass
