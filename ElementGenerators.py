#! .venv\Scripts\python.exe

"""
Element Generators Module

The stages of the element pipeline. Each generator produces one element on
request, either itself or by pulling from its parent, and records what it did as
Commands. The command sequence, not the generators, is what later drives the
atom generators that write the program.

Main Components:
- Command / CommandType / CommandSequence: the recorded operations
- ElementGenerator: base class implementing the pull protocol
- InputGenerator, SingleStackElementBuffer, MetalPurifierGenerator,
  MetalProjectorGenerator, QuintessenceDisperserGenerator,
  SaltGenerator, VanBerloGenerator, MorsVitaeGenerator, QuintessenceGenerator,
  OutputGenerator: the concrete stages
"""

from enum import Enum

from PuzzleModel import (Element, CARDINALS, METALS, ALL_ELEMENTS, get_metal_difference, get_metal_purity,
                         get_metals_with_purity_same_or_lower, get_lowest_metal)
from RecipeSolver import ReactionType
from SolverErrors import SolverError
from logging_config import setup_logger
logger = setup_logger("ElementGenerators")


class CommandType(Enum):
    Consume = "consume"
    Generate = "generate"
    PassThrough = "pass-through"


class Command:
    """
    An operation for the atom generator of an element generator to perform.

    Attributes:
        type (CommandType): What to do
        element (Element): The element involved
        element_generator (ElementGenerator): The stage whose atom generator executes it
        id (int): Context-sensitive ID distinguishing inputs, outputs or stored atoms
    """

    def __init__(self, type, element, element_generator, id=0):
        self.type = type
        self.element = element
        self.element_generator = element_generator
        self.id = id

    def execute(self):
        atom_generator = self.element_generator.atom_generator
        if self.type == CommandType.Consume:
            atom_generator.consume(self.element, self.id)
        elif self.type == CommandType.Generate:
            atom_generator.generate(self.element, self.id)
        else:
            atom_generator.pass_through(self.element)

    def __str__(self):
        return f"{self.type.value:<12} {self.element.name} {type(self.element_generator).__name__} {self.id}"


class CommandSequence:
    def __init__(self):
        self.commands = []

    def add(self, type, element, element_generator, id=0):
        command = Command(type, element, element_generator, id)
        self.commands.append(command)
        logger.debug(f"Command: {command}")
        return command

    def __iter__(self):
        return iter(self.commands)

    def __len__(self):
        return len(self.commands)

    def __str__(self):
        return "\n".join(str(c) for c in self.commands)


class PendingElement:
    def __init__(self, element, id=0):
        self.element = element
        self.id = id


class ElementGenerator:
    """
    Base class for a pipeline stage.

    A request first uses any pending elements this stage already produced,
    then elements stored in its buffer, then tries to generate the element
    itself, and finally asks its parent and passes the result through.

    Attributes:
        parent (ElementGenerator): The previous stage, None for the first
        atom_generator: The code generation counterpart, assigned by the solution builder
        element_buffer (ElementBuffer): Where elements that weren't asked for are stored
        plan (SolutionPlan): Recipe and pipeline options
    """

    def __init__(self, command_sequence, plan):
        self.command_sequence = command_sequence
        self.plan = plan
        self.parent = None
        self.atom_generator = None
        self.element_buffer = None
        self.pending_elements = []

    @property
    def recipe(self):
        return self.plan.recipe

    @property
    def has_pending_elements(self):
        return len(self.pending_elements) > 0

    def has_pending_element(self, element):
        return any(p.element == element for p in self.pending_elements)

    def request_element(self, possible_elements):
        """
        Produce one of the given elements, from this stage or its ancestors.

        Anything else that turns up on the way is stored in this stage's buffer.
        """
        if isinstance(possible_elements, Element):
            possible_elements = [possible_elements]
        possible_elements = list(possible_elements)
        if not possible_elements:
            raise SolverError("possible_elements must contain at least one item.")

        generated = self._try_generate_element(possible_elements)
        while generated not in possible_elements:
            if self.element_buffer is None:
                raise SolverError(
                    f"Requested to generate one of {_names(possible_elements)} but instead generated {generated.name}.")
            self.element_buffer.store_element(generated)
            generated = self._try_generate_element(possible_elements)

        return generated

    def _try_generate_element(self, possible_elements):
        elements_to_generate = [e for e in possible_elements if self.can_generate_element(e)]

        if self.pending_elements:
            if not self.plan.use_pending_elements_in_order:
                for index, pending in enumerate(self.pending_elements):
                    if pending.element in possible_elements:
                        del self.pending_elements[index]
                        self.command_sequence.add(CommandType.Generate, pending.element, self, pending.id)
                        return pending.element

            if self.plan.use_pending_elements_in_order or elements_to_generate:
                pending = self.pending_elements.pop(0)
                self.command_sequence.add(CommandType.Generate, pending.element, self, pending.id)
                return pending.element

        if self.element_buffer is not None and any(self.element_buffer.can_restore_element(e) for e in possible_elements):
            return self.element_buffer.restore_element(possible_elements)

        if elements_to_generate:
            return self.generate_element(elements_to_generate)

        if self.parent is not None:
            generated = self.parent.request_element(possible_elements)
            self.pass_through(generated)
            return generated

        raise SolverError(f"Cannot find suitable generator to generate {_names(possible_elements)}.")

    def can_generate_element(self, element):
        return False

    def generate_element(self, possible_elements):
        raise NotImplementedError(f"{type(self).__name__} cannot generate elements.")

    def pass_through(self, element):
        self.command_sequence.add(CommandType.PassThrough, element, self)

    def add_pending_element(self, element, id=0):
        self.pending_elements.append(PendingElement(element, id))

    def add_all_pending_elements(self):
        pass

    def end_solution(self):
        """Flush any elements produced but never requested into the buffer."""
        self.add_all_pending_elements()
        if self.element_buffer is not None:
            while self.has_pending_elements:
                self.element_buffer.store_element(self.request_element(ALL_ELEMENTS))


def _names(elements):
    return ", ".join(e.name for e in elements)


class ElementInput:
    """
    Cycles through the atoms of one reagent in input order.

    Attributes:
        molecule (Molecule): The reagent
        element_sequence (list): Its elements in the order they are taken off the reagent
        used (bool): Whether any atom was ever taken
    """

    def __init__(self, molecule, element_sequence=None):
        self.molecule = molecule
        if element_sequence is None:
            element_sequence = [a.element for a in molecule.get_atoms_in_input_order()]
        self.element_sequence = list(element_sequence)
        self.current_index = 0
        self.used = False

    @property
    def has_pending_elements(self):
        return self.current_index > 0

    @property
    def is_starting_molecule(self):
        return self.current_index == 0

    def get_next_element(self):
        self.used = True
        element = self.element_sequence[self.current_index]
        self.current_index = (self.current_index + 1) % len(self.element_sequence)
        return element

    def find_closest_element(self, elements):
        """Steps until one of the elements comes up next, wrapping around; None if it never does."""
        n = len(self.element_sequence)
        for offset in range(n):
            if self.element_sequence[(self.current_index + offset) % n] in elements:
                return offset
        return None


class InputGenerator(ElementGenerator):
    """Generates elements from reagents."""

    def __init__(self, command_sequence, plan):
        super().__init__(command_sequence, plan)
        self.inputs = [ElementInput(r, plan.get_reagent_element_order(r)) for r in plan.required_reagents]

    def can_generate_element(self, element):
        return any(element in i.element_sequence for i in self.inputs
                   if not i.is_starting_molecule
                   or self.recipe.has_available_reactions(ReactionType.Reagent, id=i.molecule.id))

    def generate_element(self, possible_elements):
        candidates = [(i.find_closest_element(possible_elements), n, i) for n, i in enumerate(self.inputs)
                      if not i.is_starting_molecule
                      or self.recipe.has_available_reactions(ReactionType.Reagent, id=i.molecule.id)]
        candidates = [c for c in candidates if c[0] is not None]
        if not candidates:
            raise SolverError(f"Cannot find a suitable input to generate one of {_names(possible_elements)}.")

        _, _, element_input = min(candidates, key=lambda c: (c[0], c[1]))
        if element_input.is_starting_molecule:
            self.recipe.record_reaction_usage(ReactionType.Reagent, id=element_input.molecule.id)
        generated = element_input.get_next_element()

        self.command_sequence.add(CommandType.Generate, generated, self, element_input.molecule.id)
        return generated

    def add_all_pending_elements(self):
        for element_input in self.inputs:
            while element_input.has_pending_elements:
                self.add_pending_element(element_input.get_next_element(), element_input.molecule.id)


class BufferedElement:
    def __init__(self, element, index):
        self.element = element
        self.index = index
        self.is_stored = True
        self.restore_order = None

    @property
    def is_waste(self):
        return self.is_stored


class BufferInfo:
    """
    Summary of how a buffer was used, for choosing its atom generator.

    Attributes:
        multi_atom (bool): Whether it ever holds more than one atom at a time
        uses_restore (bool): Whether atoms are ever restored
        wastes_atoms (bool): Whether some atoms are never restored
        elements (list): Every BufferedElement stored, in order
    """

    def __init__(self, multi_atom, uses_restore, wastes_atoms, elements):
        self.multi_atom = multi_atom
        self.uses_restore = uses_restore
        self.wastes_atoms = wastes_atoms
        self.elements = elements


class ElementBuffer(ElementGenerator):
    """Temporarily stores elements that aren't needed by the rest of the pipeline yet."""

    def can_restore_element(self, element):
        raise NotImplementedError

    def restore_element(self, possible_elements):
        raise NotImplementedError

    def store_element(self, element):
        raise NotImplementedError


class SingleStackElementBuffer(ElementBuffer):
    """Stores elements in one stack, though any stored element can be restored."""

    def __init__(self, command_sequence, plan):
        super().__init__(command_sequence, plan)
        self.elements = []
        self.max_stored_count = 0
        self.restore_count = 0

    def get_buffer_info(self):
        return BufferInfo(
            multi_atom=self.max_stored_count > 1,
            uses_restore=any(not e.is_stored for e in self.elements),
            wastes_atoms=any(e.is_stored for e in self.elements),
            elements=self.elements,
        )

    def can_restore_element(self, element):
        return any(e.is_stored and e.element == element for e in self.elements)

    def restore_element(self, possible_elements):
        for stored in reversed(self.elements):
            if stored.is_stored and stored.element in possible_elements:
                stored.is_stored = False
                stored.restore_order = self.restore_count
                self.restore_count += 1
                self.command_sequence.add(CommandType.Generate, stored.element, self, stored.index)
                return stored.element

        raise SolverError(f"Can't find any of {_names(possible_elements)} in buffer.")

    def store_element(self, element):
        stored = BufferedElement(element, len(self.elements))
        self.elements.append(stored)
        self.max_stored_count = max(self.max_stored_count, sum(1 for e in self.elements if e.is_stored))
        self.command_sequence.add(CommandType.Consume, element, self, stored.index)


class MetalGenerator(ElementGenerator):
    """Generates a metal by promoting lower metals."""

    reaction_type = None

    def get_available_source_elements_for_target(self, target_element):
        """
        Lower metals with an unbroken chain of available reactions up to the target,
        nearest first.
        """
        if target_element not in METALS:
            return []
        sources = []
        for index in range(METALS.index(target_element) - 1, -1, -1):
            source = METALS[index]
            if not self.recipe.has_available_reactions(self.reaction_type, input_element=source):
                break
            sources.append(source)
        return sources

    def can_generate_element(self, element):
        return len(self.get_available_source_elements_for_target(element)) > 0

    def generate_element(self, possible_elements):
        if len(possible_elements) > 1:
            raise SolverError(
                f"{type(self).__name__} only supports generating one type of element but {len(possible_elements)} were specified")

        target = possible_elements[0]
        received = self.parent.request_element(self.get_available_source_elements_for_target(target))
        if received != target:
            self.generate_metal(received, target)
        else:
            self.pass_through(received)
        return target

    def generate_metal(self, first_metal, target_metal):
        raise NotImplementedError


class MetalProjectorGenerator(MetalGenerator):
    """Generates a metal from a lower metal and quicksilver."""

    reaction_type = ReactionType.Projection

    def generate_metal(self, first_metal, target_metal):
        diff = get_metal_difference(first_metal, target_metal)
        if diff < 0:
            raise SolverError(f"Cannot use glyph of projection to convert {first_metal.name} to {target_metal.name}.")

        self.command_sequence.add(CommandType.Consume, first_metal, self)
        for i in range(diff):
            self.command_sequence.add(CommandType.Consume, self.parent.request_element(Element.Quicksilver), self)
            metal = METALS[METALS.index(first_metal) + i]
            self.recipe.record_reaction_usage(ReactionType.Projection, input_element=metal)

        self.command_sequence.add(CommandType.Generate, target_metal, self)


class PurificationSequence:
    def __init__(self, id, target_metal, lowest_metal_used):
        self.id = id
        self.target_metal = target_metal
        self.lowest_metal_used = lowest_metal_used


class MetalPurifierGenerator(MetalGenerator):
    """
    Generates a metal by purifying pairs of lower metals.

    The metal on hand is tracked as a purity total; a reaction is recorded
    whenever adding a new atom carries over one of its bits.
    """

    reaction_type = ReactionType.Purification

    def __init__(self, command_sequence, plan):
        super().__init__(command_sequence, plan)
        self.sequences = []

    def generate_metal(self, source_metal, target_metal):
        sequence = PurificationSequence(len(self.sequences), target_metal, source_metal)
        self.sequences.append(sequence)

        self.command_sequence.add(CommandType.Consume, source_metal, self, sequence.id)

        current_value = get_metal_purity(source_metal)
        target_value = get_metal_purity(target_metal)
        valid_sources = self.get_available_source_elements_for_target(target_metal)

        while current_value < target_value:
            allowable = get_metals_with_purity_same_or_lower(target_value - current_value)
            requested = [m for m in allowable if m in valid_sources]
            received = self.parent.request_element(requested)
            self.command_sequence.add(CommandType.Consume, received, self, sequence.id)

            sequence.lowest_metal_used = get_lowest_metal([sequence.lowest_metal_used, received])

            # Only combining with a metal already on hand counts as a reaction
            new_value = current_value + get_metal_purity(received)
            for index in range(METALS.index(received), METALS.index(target_metal)):
                purity = get_metal_purity(METALS[index])
                if (current_value & purity) != 0 and (new_value & purity) == 0:
                    self.recipe.record_reaction_usage(ReactionType.Purification, input_element=METALS[index])

            current_value = new_value

        self.command_sequence.add(CommandType.Generate, target_metal, self, sequence.id)


class QuintessenceDisperserGenerator(ElementGenerator):
    """Generates the four cardinal elements from Quintessence."""

    def can_generate_element(self, element):
        return self.recipe.has_available_reactions(ReactionType.Dispersion, output_element=element)

    def generate_element(self, possible_elements):
        self.command_sequence.add(CommandType.Consume, self.parent.request_element(Element.Quintessence), self)
        self.recipe.record_reaction_usage(ReactionType.Dispersion)

        self.add_pending_element(Element.Air)
        self.add_pending_element(Element.Water)
        self.add_pending_element(Element.Fire)
        self.command_sequence.add(CommandType.Generate, Element.Earth, self)
        return Element.Earth


class SaltGenerator(ElementGenerator):
    """Generates salt from a cardinal element using the glyph of calcification."""

    def can_generate_element(self, element):
        return element == Element.Salt and self.recipe.has_available_reactions(ReactionType.Calcification)

    @property
    def requires_cardinal_pass_through(self):
        return any(c.type == CommandType.PassThrough and c.element_generator is self and c.element in CARDINALS
                   for c in self.command_sequence)

    def generate_element(self, possible_elements):
        cardinals = [e for e in CARDINALS
                     if self.recipe.has_available_reactions(ReactionType.Calcification, input_element=e)]
        generated = self.parent.request_element([Element.Salt] + cardinals)
        if generated != Element.Salt:
            self.command_sequence.add(CommandType.Consume, generated, self)
            self.command_sequence.add(CommandType.Generate, Element.Salt, self)
            self.recipe.record_reaction_usage(ReactionType.Calcification, input_element=generated)
        else:
            self.pass_through(generated)
        return Element.Salt


class VanBerloGenerator(ElementGenerator):
    """Generates a cardinal element from salt using Van Berlo's wheel."""

    def can_generate_element(self, element):
        return self.recipe.has_available_reactions(ReactionType.VanBerlo, output_element=element)

    def generate_element(self, possible_elements):
        # Also asking for the cardinals themselves lets a reagent supply one directly
        generated = self.parent.request_element(list(possible_elements) + [Element.Salt])
        if generated == Element.Salt:
            element = possible_elements[0]
            self.command_sequence.add(CommandType.Consume, Element.Salt, self)
            self.command_sequence.add(CommandType.Generate, element, self)
            self.recipe.record_reaction_usage(ReactionType.VanBerlo, output_element=element)
            return element

        self.pass_through(generated)
        return generated


class MorsVitaeGenerator(ElementGenerator):
    """Generates Mors and Vitae from two salt atoms using the glyph of animismus."""

    def can_generate_element(self, element):
        return self.recipe.has_available_reactions(ReactionType.Animismus, output_element=element)

    def generate_element(self, possible_elements):
        self.command_sequence.add(CommandType.Consume, self.parent.request_element(Element.Salt), self)
        self.command_sequence.add(CommandType.Consume, self.parent.request_element(Element.Salt), self)
        self.recipe.record_reaction_usage(ReactionType.Animismus)

        first = possible_elements[0]
        second = Element.Vitae if first == Element.Mors else Element.Mors
        self.command_sequence.add(CommandType.Generate, first, self)
        self.add_pending_element(second)
        return first


class QuintessenceGenerator(ElementGenerator):
    """Generates Quintessence from the four cardinal elements using the glyph of unification."""

    def can_generate_element(self, element):
        return self.recipe.has_available_reactions(ReactionType.Unification, output_element=element)

    def generate_element(self, possible_elements):
        inputs = list(CARDINALS)
        while inputs:
            element = self.parent.request_element(inputs)
            self.command_sequence.add(CommandType.Consume, element, self)
            inputs.remove(element)

        self.command_sequence.add(CommandType.Generate, Element.Quintessence, self)
        self.recipe.record_reaction_usage(ReactionType.Unification)
        return Element.Quintessence


class OutputGenerator(ElementGenerator):
    """The root of all requests: consumes the elements of every product copy in build order."""

    def generate_command_sequence(self):
        for product in self.plan.puzzle.products:
            element_order = self.plan.get_product_element_order(product)
            usages = self.recipe.get_reaction_usages(ReactionType.Product, id=product.id)
            if len(usages) != 1:
                raise SolverError(f"Expected one product reaction for product {product.id}, found {len(usages)}.")
            for _ in range(usages[0].max_usages):
                for element in element_order:
                    self.command_sequence.add(CommandType.Consume, self.parent.request_element(element), self, product.id)
                self.recipe.record_reaction_usage(ReactionType.Product, id=product.id)
