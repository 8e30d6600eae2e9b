#! .venv\Scripts\python.exe

"""
Integer linear program wrapper.

The recipe solver only needs a narrow contract: integer variables, one linear
objective, dense constraint rows with a comparison kind and right-hand side that
can be changed between solves, a status code and the variable values. This
module provides that contract on top of the z3 optimizer.
"""

from enum import Enum

from logging_config import setup_logger
logger = setup_logger("LinearProgram")


class LPStatus(Enum):
    OPTIMAL = "optimal"
    INFEASIBLE = "infeasible"
    NOMEMORY = "nomemory"
    OTHER = "other"


class ConstraintType(Enum):
    EQ = "=="
    GE = ">="
    LE = "<="


# Factory for creating solvers with common interface
class SolverFactory:
    @staticmethod
    def create_solver(solver_type="z3"):
        if solver_type.lower() == "z3":
            from z3 import Optimize, Int, Sum, sat, unsat
            solver = Optimize()
            return solver, Int, Sum, sat, unsat
        raise ValueError(f"Unknown solver type: {solver_type}")


class LinearProgram:
    """
    Integer linear program with mutable constraint rows.

    Variables are non-negative integers. The objective is always minimised.

    Attributes:
        num_variables (int): Number of integer decision variables
        objective (list): Objective coefficient for each variable
        constraints (list): [coefficients, ConstraintType, rhs] rows
        values (list): Variable values from the last optimal solve
    """

    def __init__(self, num_variables, solver_type="z3"):
        self.num_variables = num_variables
        self.solver_type = solver_type
        self.objective = [0] * num_variables
        self.constraints = []
        self.values = None
        self.status = None

    def set_objective(self, coefficients):
        if len(coefficients) != self.num_variables:
            raise ValueError(f"Expected {self.num_variables} objective coefficients, got {len(coefficients)}")
        self.objective = [int(c) for c in coefficients]

    def add_constraint(self, coefficients, constraint_type, rhs):
        """Add a dense row and return its index."""
        if len(coefficients) != self.num_variables:
            raise ValueError(f"Expected {self.num_variables} coefficients, got {len(coefficients)}")
        self.constraints.append([[int(c) for c in coefficients], constraint_type, int(rhs)])
        return len(self.constraints) - 1

    def set_constraint_type(self, index, constraint_type):
        self.constraints[index][1] = constraint_type

    def set_constraint_value(self, index, rhs):
        self.constraints[index][2] = int(rhs)

    def solve(self):
        """
        Build a fresh optimizer from the current rows and minimise the objective.

        Returns:
            LPStatus: OPTIMAL when values are available through get_variable_values()
        """
        solver, Int, Sum, sat, unsat = SolverFactory.create_solver(self.solver_type)
        variables = [Int(f"x_{i}") for i in range(self.num_variables)]

        for x in variables:
            solver.add(x >= 0)

        for coefficients, constraint_type, rhs in self.constraints:
            terms = [c * x for c, x in zip(coefficients, variables) if c != 0]
            lhs = Sum(terms) if terms else 0
            if not terms:
                # z3 cannot add a plain Python bool, so decide constant rows here
                holds = {
                    ConstraintType.EQ: 0 == rhs,
                    ConstraintType.GE: 0 >= rhs,
                    ConstraintType.LE: 0 <= rhs,
                }[constraint_type]
                if not holds:
                    self.values = None
                    self.status = LPStatus.INFEASIBLE
                    return self.status
                continue
            if constraint_type == ConstraintType.EQ:
                solver.add(lhs == rhs)
            elif constraint_type == ConstraintType.GE:
                solver.add(lhs >= rhs)
            else:
                solver.add(lhs <= rhs)

        objective_terms = [c * x for c, x in zip(self.objective, variables) if c != 0]
        if objective_terms:
            solver.minimize(Sum(objective_terms))

        result = solver.check()
        if result == sat:
            model = solver.model()
            self.values = [model.eval(x, model_completion=True).as_long() for x in variables]
            self.status = LPStatus.OPTIMAL
        elif result == unsat:
            self.values = None
            self.status = LPStatus.INFEASIBLE
        else:
            reason = solver.reason_unknown()
            logger.warning(f"Solver returned unknown: {reason}")
            self.values = None
            self.status = LPStatus.NOMEMORY if "memory" in reason else LPStatus.OTHER

        logger.debug(f"Solved program with {self.num_variables} variables and "
                     f"{len(self.constraints)} rows: {self.status.value}")
        return self.status

    def get_variable_values(self):
        if self.values is None:
            raise RuntimeError("No optimal solution available")
        return list(self.values)
