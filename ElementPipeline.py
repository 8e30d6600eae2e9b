#! .venv\Scripts\python.exe

"""
Element Pipeline Module

Builds the chain of element generators a recipe needs and drives it from the
output end to produce the command sequence.

The stages are created in a fixed order, inputs first:

    input -> buffer -> [purifier] -> [projector] -> [disperser -> buffer] ->
    [salt] -> [van berlo] -> [animismus -> buffer] -> [unifier] -> output

where each optional stage is only present if the recipe uses its reaction.
Each buffer stores the elements its preceding stage produces but nobody asked for.
"""

from ElementGenerators import (CommandSequence, InputGenerator, SingleStackElementBuffer, MetalPurifierGenerator,
                               MetalProjectorGenerator, QuintessenceDisperserGenerator, SaltGenerator,
                               VanBerloGenerator, MorsVitaeGenerator, QuintessenceGenerator, OutputGenerator)
from RecipeSolver import ReactionType
from logging_config import setup_logger
logger = setup_logger("ElementPipeline")


class SolutionPlan:
    """
    Everything the element pipeline needs to know about how a solution will be built.

    Attributes:
        puzzle (Puzzle): The puzzle being solved
        recipe (Recipe): Reaction usages; the pipeline records usage against it
        required_reagents (list): Reagents the recipe actually uses
        use_pending_elements_in_order (bool): Pending elements must be used oldest first
        reagent_element_orders (dict): Reagent ID -> elements in the order the disassembler supplies them
        product_element_orders (dict): Product ID -> elements in the order the assembler consumes them
    """

    def __init__(self, puzzle, recipe, reagent_element_orders=None, product_element_orders=None,
                 use_pending_elements_in_order=False):
        self.puzzle = puzzle
        self.recipe = recipe
        self.use_pending_elements_in_order = use_pending_elements_in_order
        self.required_reagents = [r for r in puzzle.reagents
                                  if recipe.has_available_reactions(ReactionType.Reagent, id=r.id)]
        self.reagent_element_orders = reagent_element_orders or {}
        self.product_element_orders = product_element_orders or {}

    def get_reagent_element_order(self, reagent):
        order = self.reagent_element_orders.get(reagent.id)
        if order is None:
            order = [a.element for a in reagent.get_atoms_in_input_order()]
        return order

    def get_product_element_order(self, product):
        order = self.product_element_orders.get(product.id)
        if order is None:
            order = [a.element for a in product.get_atoms_in_input_order()]
        return order


class ElementPipeline:
    """
    The ordered element generators for one solution.

    Attributes:
        plan (SolutionPlan): Recipe and options shared by every stage
        command_sequence (CommandSequence): Where every stage records its commands
        element_generators (list): Stages ordered from inputs to outputs
        output_generator (OutputGenerator): The last stage
    """

    def __init__(self, plan, command_sequence=None):
        self.plan = plan
        self.command_sequence = command_sequence if command_sequence is not None else CommandSequence()
        self.element_generators = []
        self.output_generator = None
        self._build()

    def _build(self):
        recipe = self.plan.recipe
        sequence = self.command_sequence

        self._add_generator(InputGenerator(sequence, self.plan))
        self._add_buffer()

        if recipe.has_available_reactions(ReactionType.Purification):
            self._add_generator(MetalPurifierGenerator(sequence, self.plan))

        if recipe.has_available_reactions(ReactionType.Projection):
            self._add_generator(MetalProjectorGenerator(sequence, self.plan))

        if recipe.has_available_reactions(ReactionType.Dispersion):
            self._add_generator(QuintessenceDisperserGenerator(sequence, self.plan))
            self._add_buffer()

        if recipe.has_available_reactions(ReactionType.Calcification):
            self._add_generator(SaltGenerator(sequence, self.plan))

        if recipe.has_available_reactions(ReactionType.VanBerlo):
            self._add_generator(VanBerloGenerator(sequence, self.plan))

        if recipe.has_available_reactions(ReactionType.Animismus):
            self._add_generator(MorsVitaeGenerator(sequence, self.plan))
            self._add_buffer()

        if recipe.has_available_reactions(ReactionType.Unification):
            self._add_generator(QuintessenceGenerator(sequence, self.plan))

        self.output_generator = OutputGenerator(sequence, self.plan)
        self._add_generator(self.output_generator)

        logger.info(f"Built pipeline: {' -> '.join(type(g).__name__ for g in self.element_generators)}")

    def _add_generator(self, generator):
        generator.parent = self.element_generators[-1] if self.element_generators else None
        self.element_generators.append(generator)

    def _add_buffer(self):
        buffer = SingleStackElementBuffer(self.command_sequence, self.plan)
        self.element_generators[-1].element_buffer = buffer
        self._add_generator(buffer)

    def generate_command_sequence(self):
        """Pull every product element through the pipeline, then flush leftover elements."""
        self.output_generator.generate_command_sequence()
        for generator in self.element_generators:
            generator.end_solution()

        logger.info(f"Generated {len(self.command_sequence)} commands")
        return self.command_sequence
