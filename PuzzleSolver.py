#! .venv\Scripts\python.exe

"""
Puzzle Solver Module

Top-level entry point: turns a puzzle into an optimised low-cost solution.

The stages run in order:
1. Check the puzzle is one the solver can handle at all
2. Solve for a recipe (which reactions to use and how often)
3. Build the element pipeline and generate its command sequence
4. Place the atom generators and execute the commands to write program fragments
5. Merge the fragments into one program and remove hardware it doesn't use

Failures inside any stage are raised as SolverError or UnsupportedError and
converted here into a result object, so callers never see a partial solution.
"""

from CostOptimizer import CostOptimizer
from ElementPipeline import ElementPipeline
from GameObjects import Solution, Glyph
from ProgramBuilder import ProgramBuilder
from ProgramWriter import ProgramWriter
from PuzzleModel import BondType, Element, GlyphType
from RecipeSolver import solve_recipe
from SolutionBuilder import SolutionBuilder
from SolverConfig import load_config
from SolverErrors import (SolverError, UnsupportedError, RecipeInfeasible, RecipeUnsupported, SolveOk,
                          SolveInfeasible, SolveUnsupported, SolveFailed)
from logging_config import setup_logger
logger = setup_logger("PuzzleSolver")


# Glyphs that no reaction check covers, so a solution using them must be rejected afterwards
CHECKED_GLYPHS = {
    GlyphType.Bonding: "This puzzle doesn't allow the glyph of bonding.",
    GlyphType.MultiBonding: "This puzzle doesn't allow the glyph of multi-bonding.",
    GlyphType.Unbonding: "This puzzle doesn't allow the glyph of unbonding.",
    GlyphType.TriplexBonding: "One or more products contain triplex bonds but the puzzle doesn't allow the glyph of triplex bonding.",
}


class PuzzleSolver:
    """
    Solves a single puzzle.

    Attributes:
        puzzle (Puzzle): The puzzle to solve
        config (dict): Solver configuration
        max_output_scale (int): Overrides the configured recipe output scale, None for the default
    """

    def __init__(self, puzzle, config=None, max_output_scale=None):
        self.puzzle = puzzle
        self.config = config or load_config()
        self.max_output_scale = max_output_scale

    def solve(self):
        """
        Solve the puzzle.

        Returns:
            SolveOk, SolveInfeasible, SolveUnsupported or SolveFailed
        """
        logger.info(f"Solving puzzle {self.puzzle.name}")

        try:
            self.check_preconditions()
        except UnsupportedError as e:
            logger.error(f"Puzzle {self.puzzle.name} is unsupported: {e}")
            return SolveUnsupported(str(e))

        recipe_result = solve_recipe(self.puzzle, self.max_output_scale)
        if isinstance(recipe_result, RecipeInfeasible):
            return SolveInfeasible(recipe_result.reason)
        if isinstance(recipe_result, RecipeUnsupported):
            return SolveUnsupported(recipe_result.reason)

        try:
            solution = self.generate_solution(recipe_result.recipe)
        except UnsupportedError as e:
            logger.error(f"Puzzle {self.puzzle.name} is unsupported: {e}")
            return SolveUnsupported(str(e))
        except SolverError as e:
            logger.error(f"Failed to solve puzzle {self.puzzle.name}: {e}")
            return SolveFailed(str(e))

        logger.info(f"Solved puzzle {self.puzzle.name}: {solution.metrics}")
        return SolveOk(solution)

    def check_preconditions(self):
        for product in self.puzzle.products:
            for atom in product.atoms:
                if atom.element != Element.Fire and any(b & BondType.TRIPLEX for b in atom.bonds.values()):
                    raise UnsupportedError("This puzzle has triplex bonds between non-fire atoms.")

    def generate_solution(self, recipe):
        writer = ProgramWriter()
        builder = SolutionBuilder(self.puzzle, recipe, writer, self.config)

        pipeline = ElementPipeline(builder.create_plan())
        commands = pipeline.generate_command_sequence()
        logger.debug(f"Command sequence:\n{commands}")

        self.generate_program_fragments(builder, pipeline, commands)

        program = ProgramBuilder(writer.fragments).build()
        solution = Solution(self.puzzle, builder.get_all_objects(), program)
        self.check_allowed_glyphs(solution)

        CostOptimizer(solution).optimize()
        solution.update_metrics()
        return solution

    def generate_program_fragments(self, builder, pipeline, commands):
        builder.create_atom_generators(pipeline)
        atom_generators = [g.atom_generator for g in pipeline.element_generators]

        for atom_generator in atom_generators:
            atom_generator.begin_solution()

        for command in commands:
            command.execute()

        for atom_generator in atom_generators:
            atom_generator.end_solution()

        for atom_generator in atom_generators:
            atom_generator.optimize_parts()

        for index, fragment in enumerate(builder.writer.fragments):
            logger.debug(f"Program fragment {index}:\n{fragment}")

    def check_allowed_glyphs(self, solution):
        used = {glyph.type for glyph in solution.get_objects(Glyph)}
        for glyph_type in sorted(used - self.puzzle.allowed_glyphs, key=lambda g: g.value):
            if glyph_type in CHECKED_GLYPHS:
                raise UnsupportedError(CHECKED_GLYPHS[glyph_type])


def solve_puzzle(puzzle, config=None):
    """Solve a puzzle with the default options."""
    return PuzzleSolver(puzzle, config).solve()
