#! .venv\Scripts\python.exe

"""
Recipe Solver Module

Chooses which reactions a solution uses and how many times, by solving an
integer linear program over every candidate reaction.

Main Components:
- Reaction / ReactionType: a reagent input, product output or glyph transformation
- Recipe: reaction usages with their maximum and current counts
- ReactionAnalyzer: decides which transformation reactions the puzzle needs
- RecipeBuilder: builds and solves the integer program
- solve_recipe: runs both and returns a RecipeOk / RecipeInfeasible / RecipeUnsupported

The program has one non-negative integer variable per reaction and one row per
element: the net atoms produced by all reactions must equal the atoms the
products consume. Reagents are weighted by their atom count in the objective so
smaller reagents are preferred. When no exact integer solution exists at any
output scale, the cardinal rows and then all rows are relaxed to allow waste.
"""

from enum import Enum

import numpy as np

from PuzzleModel import Element, GlyphType, ArmType, CARDINALS, METALS, MORS_VITAE, next_metal
from SolverConfig import load_config
from SolverErrors import SolverError, UnsupportedError, RecipeOk, RecipeInfeasible, RecipeUnsupported
from solver_wrapper import LinearProgram, LPStatus, ConstraintType
from logging_config import setup_logger
logger = setup_logger("RecipeSolver")


class ReactionType(Enum):
    Reagent = "reagent"
    Product = "product"
    Calcification = "calcification"
    VanBerlo = "van-berlo"
    Projection = "projection"
    Purification = "purification"
    Animismus = "animismus"
    Unification = "unification"
    Dispersion = "dispersion"


class Reaction:
    """
    A reaction consuming and producing atoms.

    Attributes:
        type (ReactionType): Kind of reaction
        id (int): Reagent or product ID for those reaction types, otherwise 0
        inputs (dict): Element -> atom count consumed
        outputs (dict): Element -> atom count produced
    """

    def __init__(self, type, id, inputs, outputs):
        self.type = type
        self.id = id
        self.inputs = dict(inputs)
        self.outputs = dict(outputs)

    def __str__(self):
        inputs = ", ".join(f"{n}x {e.name}" for e, n in self.inputs.items())
        outputs = ", ".join(f"{n}x {e.name}" for e, n in self.outputs.items())
        return f"{self.type.value} {self.id}: [{inputs}] -> [{outputs}]"


class ReactionUsage:
    def __init__(self, reaction, max_usages, current_usages=0):
        self.reaction = reaction
        self.max_usages = max_usages
        self.current_usages = current_usages

    @property
    def is_available(self):
        return self.current_usages < self.max_usages

    def __str__(self):
        return f"{self.max_usages}x {self.reaction}"


class Recipe:
    """
    The reactions a solution may use, each with a maximum usage count.

    Usages only ever increase while the element pipeline records what it has
    actually used, and never beyond their maximum.
    """

    def __init__(self):
        self.reactions = {}
        self.has_waste = False

    def add_reaction(self, reaction, usage_count):
        self.reactions.setdefault(reaction.type, []).append(ReactionUsage(reaction, usage_count))

    def get_reaction_usages(self, type, id=None, input_element=None, output_element=None):
        usages = self.reactions.get(type, [])
        if id is not None:
            usages = [u for u in usages if u.reaction.id == id]
        if input_element is not None:
            usages = [u for u in usages if input_element in u.reaction.inputs]
        if output_element is not None:
            usages = [u for u in usages if output_element in u.reaction.outputs]
        return usages

    def get_available_reactions(self, type, id=None, input_element=None, output_element=None):
        return [u.reaction for u in self.get_reaction_usages(type, id, input_element, output_element) if u.is_available]

    def has_available_reactions(self, type, id=None, input_element=None, output_element=None):
        return len(self.get_available_reactions(type, id, input_element, output_element)) > 0

    def record_reaction_usage(self, type, id=None, input_element=None, output_element=None):
        criteria = f"type = {type.value}"
        if id is not None:
            criteria += f", ID = {id}"
        if input_element is not None:
            criteria += f", input element = {input_element.name}"
        if output_element is not None:
            criteria += f", output element = {output_element.name}"

        usages = self.get_reaction_usages(type, id, input_element, output_element)
        if not usages:
            raise SolverError(f"No reactions are defined that meet the criteria ({criteria}).")
        if len(usages) > 1:
            raise SolverError(f"More than one reaction was found that meets the criteria ({criteria}).")

        usage = usages[0]
        if usage.current_usages >= usage.max_usages:
            raise SolverError(
                f"Attempted to use reaction ({criteria}) more than the allowed number of times. "
                f"Current usage count = {usage.current_usages}, max usage count = {usage.max_usages}.")
        usage.current_usages += 1

    def get_element_balance(self):
        """
        Net atoms produced by all non-product reactions and atoms consumed by products.

        Returns:
            tuple: (produced, demanded) dicts of Element -> count
        """
        produced = {}
        demanded = {}
        for type, usages in self.reactions.items():
            for usage in usages:
                n = usage.max_usages
                if type == ReactionType.Product:
                    for element, count in usage.reaction.inputs.items():
                        demanded[element] = demanded.get(element, 0) + count * n
                    continue
                for element, count in usage.reaction.outputs.items():
                    produced[element] = produced.get(element, 0) + count * n
                for element, count in usage.reaction.inputs.items():
                    produced[element] = produced.get(element, 0) - count * n
        return produced, demanded

    def check_mass_balance(self):
        """True when every element is exactly balanced, or over-produced only if the recipe has waste."""
        produced, demanded = self.get_element_balance()
        for element in set(produced) | set(demanded):
            p = produced.get(element, 0)
            d = demanded.get(element, 0)
            if p < d or (p > d and not self.has_waste):
                return False
        return True

    def copy(self):
        recipe = Recipe()
        recipe.has_waste = self.has_waste
        for type, usages in self.reactions.items():
            recipe.reactions[type] = [ReactionUsage(u.reaction, u.max_usages, u.current_usages) for u in usages]
        return recipe

    def __str__(self):
        lines = [f"Has waste: {self.has_waste}"]
        types = [ReactionType.Reagent] + [t for t in self.reactions if t != ReactionType.Reagent]
        for type in types:
            for usage in self.reactions.get(type, []):
                if usage.max_usages > 0:
                    lines.append(str(usage))
        return "\n".join(lines)


class ReactionAnalyzer:
    """
    Works out which transformation reactions are needed to turn the puzzle's
    reagent elements into its product elements, given the allowed glyphs and arms.

    Raises UnsupportedError when an element cannot be created with the allowed parts.
    """

    def __init__(self, puzzle):
        self.puzzle = puzzle
        self.generated_elements = set()
        self.needed_elements = set()
        self.reagent_elements = set()
        self.need_any_cardinal = False
        self.reaction_types = []

    def analyze(self):
        self.needed_elements.update(self.puzzle.get_all_product_elements())
        self.reagent_elements.update(self.puzzle.get_all_reagent_elements())
        self.generated_elements.update(self.reagent_elements)

        self._analyze_quintessence()
        self._analyze_mors_vitae()
        self._analyze_cardinals()
        self._analyze_salt()
        self._analyze_cardinals_again()
        self._analyze_metals()

        logger.debug(f"Required reactions: {[t.value for t in self.reaction_types]}")
        return self.reaction_types

    def _allows(self, glyph):
        return glyph in self.puzzle.allowed_glyphs

    def _missing(self, elements):
        return [e for e in elements if e in self.needed_elements and e not in self.generated_elements]

    def _is_any_cardinal_missing(self):
        if self._missing(CARDINALS):
            return True
        return self.need_any_cardinal and not (self.generated_elements & set(CARDINALS))

    def _analyze_quintessence(self):
        if self._missing([Element.Quintessence]):
            if not self._allows(GlyphType.Unification):
                raise UnsupportedError("Quintessence must be created but the glyph of unification isn't allowed.")
            self.generated_elements.add(Element.Quintessence)
            self.needed_elements.update(CARDINALS)
            self.reaction_types.append(ReactionType.Unification)

    def _analyze_mors_vitae(self):
        if self._missing(MORS_VITAE):
            if not self._allows(GlyphType.Animismus):
                raise UnsupportedError("Mors or Vitae must be created but the glyph of animismus isn't allowed.")
            self.generated_elements.update(MORS_VITAE)
            self.needed_elements.add(Element.Salt)
            self.reaction_types.append(ReactionType.Animismus)

    def _analyze_cardinals(self):
        # Dispersion may still cover the cardinals, which is checked after salt
        if not self._is_any_cardinal_missing():
            return
        if ArmType.VanBerlo in self.puzzle.allowed_arm_types and self._allows(GlyphType.Duplication):
            if Element.Salt in self.reagent_elements or self.reagent_elements & set(CARDINALS):
                self.generated_elements.update(CARDINALS)
                self.needed_elements.add(Element.Salt)
                self.reaction_types.append(ReactionType.VanBerlo)

    def _analyze_salt(self):
        if self._missing([Element.Salt]):
            if not self._allows(GlyphType.Calcification):
                raise UnsupportedError("Salt must be created but the glyph of calcification isn't allowed.")
            self.generated_elements.add(Element.Salt)
            # Any one cardinal will do
            self.need_any_cardinal = True
            self.reaction_types.append(ReactionType.Calcification)

    def _analyze_cardinals_again(self):
        if not self._is_any_cardinal_missing():
            return
        if self._allows(GlyphType.Dispersion) and Element.Quintessence in self.reagent_elements:
            self.generated_elements.update(CARDINALS)
            self.needed_elements.add(Element.Quintessence)
            self.reaction_types.append(ReactionType.Dispersion)
        else:
            raise UnsupportedError(
                "Cardinals must be created but either Van Berlo's wheel and the glyph of duplication aren't "
                "allowed, or the glyph of dispersion isn't allowed and no reagent has a quintessence atom.")

    def _analyze_metals(self):
        missing = self._missing(METALS)
        if not missing:
            return
        if self._allows(GlyphType.Projection) and Element.Quicksilver in self.reagent_elements:
            self.generated_elements.update(missing)
            self.needed_elements.add(Element.Quicksilver)
            self.reaction_types.append(ReactionType.Projection)
        elif self._allows(GlyphType.Purification):
            self.generated_elements.update(missing)
            self.reaction_types.append(ReactionType.Purification)
        elif self._allows(GlyphType.Projection):
            raise UnsupportedError(
                "Metals must be promoted but no reagent contains quicksilver for the glyph of projection, "
                "and the glyph of purification isn't allowed.")
        else:
            raise UnsupportedError(
                "Metals must be promoted but neither the glyph of projection nor the glyph of purification is allowed.")


def get_product_copy_counts(products, output_scale):
    """
    Number of copies of each product to build per output scale step.

    Repeating products are built six at a time, so when they are mixed with
    non-repeating products, extra copies of the non-repeating ones are needed.
    """
    any_repeats = any(p.has_repeats for p in products)
    return {p.id: (6 * output_scale if any_repeats and not p.has_repeats else 1) for p in products}


def _count_elements(molecule):
    counts = {}
    for atom in molecule.atoms:
        counts[atom.element] = counts.get(atom.element, 0) + 1
    return counts


class RecipeBuilder:
    """
    Builds the integer program over all candidate reactions and solves it.

    Attributes:
        reactions (list): Candidate non-product reactions, one variable each
        product_reactions (list): (Reaction, copy count) for each product
        max_output_scale (int): Largest output scale tried for an exact solution
    """

    def __init__(self, max_output_scale=None):
        if max_output_scale is None:
            max_output_scale = load_config()["recipe"]["max_output_scale"]
        self.max_output_scale = max_output_scale
        self.reactions = []
        self.product_reactions = []
        self.used_elements = []
        self._lp = None

    def add_reagents(self, reagents):
        counts_by_id = {r.id: _count_elements(r) for r in reagents}

        # Only the smallest of several single-element reagents of the same element is worth using
        single = [(id, next(iter(c)), sum(c.values())) for id, c in counts_by_id.items() if len(c) == 1]
        by_element = {}
        for id, element, atom_count in single:
            by_element.setdefault(element, []).append((atom_count, id))
        for candidates in by_element.values():
            for _, id in sorted(candidates)[1:]:
                del counts_by_id[id]

        for id, counts in counts_by_id.items():
            self.reactions.append(Reaction(ReactionType.Reagent, id, {}, counts))

    def add_products(self, products, output_scale):
        copies = get_product_copy_counts(products, output_scale)
        for product in products:
            reaction = Reaction(ReactionType.Product, product.id, _count_elements(product), {})
            self.product_reactions.append((reaction, copies[product.id]))

    def add_reaction(self, type):
        if type in (ReactionType.Calcification, ReactionType.VanBerlo):
            for element in CARDINALS:
                self.reactions.append(self._create_reaction(type, element))
        elif type in (ReactionType.Projection, ReactionType.Purification):
            for metal in METALS[:-1]:
                self.reactions.append(self._create_reaction(type, metal))
        else:
            self.reactions.append(self._create_reaction(type))

    def _create_reaction(self, type, element=None):
        if type == ReactionType.Calcification:
            inputs, outputs = {element: 1}, {Element.Salt: 1}
        elif type == ReactionType.VanBerlo:
            inputs, outputs = {Element.Salt: 1}, {element: 1}
        elif type == ReactionType.Animismus:
            inputs, outputs = {Element.Salt: 2}, {Element.Mors: 1, Element.Vitae: 1}
        elif type == ReactionType.Projection:
            inputs, outputs = {element: 1, Element.Quicksilver: 1}, {next_metal(element): 1}
        elif type == ReactionType.Purification:
            inputs, outputs = {element: 2}, {next_metal(element): 1}
        elif type == ReactionType.Dispersion:
            inputs, outputs = {Element.Quintessence: 1}, {e: 1 for e in CARDINALS}
        elif type == ReactionType.Unification:
            inputs, outputs = {e: 1 for e in CARDINALS}, {Element.Quintessence: 1}
        else:
            raise ValueError(f"Invalid reaction type {type}.")
        return Reaction(type, 0, inputs, outputs)

    def _create_linear_program(self):
        elements = set()
        for reaction in self.reactions:
            elements.update(reaction.inputs)
            elements.update(reaction.outputs)
        for reaction, _ in self.product_reactions:
            elements.update(reaction.inputs)
        self.used_elements = sorted(elements)

        lp = LinearProgram(len(self.reactions))

        objective = np.zeros(len(self.reactions), dtype=int)
        for i, reaction in enumerate(self.reactions):
            if reaction.type == ReactionType.Reagent:
                objective[i] = sum(reaction.outputs.values())
        lp.set_objective(objective.tolist())

        for element in self.used_elements:
            row = np.array([r.outputs.get(element, 0) - r.inputs.get(element, 0) for r in self.reactions], dtype=int)
            # The right-hand side depends on the output scale and is set before each solve
            lp.add_constraint(row.tolist(), ConstraintType.EQ, 0)

        return lp

    def _set_product_element_counts(self, lp, scale):
        for i, element in enumerate(self.used_elements):
            total = sum(count * reaction.inputs.get(element, 0) * scale for reaction, count in self.product_reactions)
            lp.set_constraint_value(i, total)

    def _solve(self, lp, scale, has_waste):
        self._set_product_element_counts(lp, scale)
        status = lp.solve()
        if status != LPStatus.OPTIMAL:
            return status, None

        recipe = self._create_recipe(lp, scale)
        recipe.has_waste = has_waste
        return status, recipe

    def _create_recipe(self, lp, scale):
        values = lp.get_variable_values()
        if len(values) != len(self.reactions):
            raise SolverError(f"Linear program returned {len(values)} variables but expected {len(self.reactions)}.")

        recipe = Recipe()
        for reaction, value in zip(self.reactions, values):
            recipe.add_reaction(reaction, int(value))
        for reaction, count in self.product_reactions:
            recipe.add_reaction(reaction, count * scale)
        return recipe

    def generate_recipe(self):
        """
        Solve for a recipe.

        Tries every output scale with exact balance first, then relaxes the
        cardinal rows, then every row.

        Returns:
            RecipeOk or RecipeInfeasible
        """
        if self._lp is None:
            self._lp = self._create_linear_program()
        lp = self._lp

        for scale in range(1, self.max_output_scale + 1):
            status, recipe = self._solve(lp, scale, has_waste=False)
            if recipe is not None:
                logger.info(f"Found exact recipe at output scale {scale}")
                return RecipeOk(recipe)

        cardinal_rows = [i for i, e in enumerate(self.used_elements) if e in CARDINALS]
        if cardinal_rows:
            for i in cardinal_rows:
                lp.set_constraint_type(i, ConstraintType.GE)
            status, recipe = self._solve(lp, 1, has_waste=True)
            if recipe is not None:
                logger.info("Found recipe with cardinal waste")
                return RecipeOk(recipe)

        for i in range(len(self.used_elements)):
            lp.set_constraint_type(i, ConstraintType.GE)
        status, recipe = self._solve(lp, 1, has_waste=True)
        if recipe is not None:
            logger.info("Found recipe after relaxing all element constraints")
            return RecipeOk(recipe)

        return RecipeInfeasible(
            f"Could not solve linear program even after relaxing all constraints: solver returned {status.value}.")


def solve_recipe(puzzle, max_output_scale=None):
    """
    Build the recipe for a puzzle.

    Args:
        puzzle (Puzzle): The puzzle to solve
        max_output_scale (int, optional): Overrides the configured maximum output scale

    Returns:
        RecipeOk, RecipeInfeasible or RecipeUnsupported
    """
    try:
        reaction_types = ReactionAnalyzer(puzzle).analyze()
    except UnsupportedError as e:
        logger.error(f"Puzzle {puzzle.name}: {e}")
        return RecipeUnsupported(str(e))

    builder = RecipeBuilder(max_output_scale)
    builder.add_reagents(puzzle.reagents)
    builder.add_products(puzzle.products, puzzle.output_scale)
    for reaction_type in reaction_types:
        builder.add_reaction(reaction_type)

    result = builder.generate_recipe()
    if result.ok:
        logger.debug(f"Recipe for {puzzle.name}:\n{result.recipe}")
    else:
        logger.error(f"Puzzle {puzzle.name}: {result.reason}")
    return result
