#! .venv\Scripts\python.exe

"""
Atom Generators Module

The code generation counterparts of the element generators. Each one owns a
small layout of glyphs (and sometimes arms) placed around the main arm's track,
and turns Consume/Generate/PassThrough commands into instructions for the main
arm and its own arms, keeping the grid up to date as atoms appear and vanish.

Every layout is given in local coordinates; the solution builder positions the
generator so that all of its access points can be reached from the track.

Main Components:
- AtomGenerator: Base class with the default (do nothing) command handlers
- DummyAtomGenerator, WasteDisposer, AtomBuffer, AtomBufferWithWaste: Element buffer counterparts
- MetalProjector, MetalPurifier: Metal promotion
- QuintessenceDisperser, QuintessenceGenerator: Quintessence to and from cardinals
- SaltGenerator, SaltGeneratorNoCardinalPassThrough: Calcification
- VanBerloGenerator / VanBerloController: Salt to cardinals with Van Berlo's wheel
- MorsVitaeGenerator: Animismus
- OutputArea: Hands atoms to the product assembler
"""

from ArmPathFinder import ArmMovementOptions
from AtomCollection import AtomCollection
from GameObjects import GameObject, Arm, Glyph
from HexGeometry import Vector2, HexRotation, Transform2D
from PuzzleModel import (Element, CARDINALS, METALS, ArmType, GlyphType, Instruction, get_metal_difference,
                         next_metal)
from ProgramWriter import to_rotation_instructions
from SolverConfig import load_config
from SolverErrors import SolverError
from logging_config import setup_logger
logger = setup_logger("AtomGenerators")


class AtomGenerator(GameObject):
    """
    Base class for the atom generators placed around the main arm.

    Attributes:
        arm_area (ArmArea): The main arm, its grid and controller
        writer (ProgramWriter): Where instructions are written
        required_width (int): Number of 60 degree sectors around the track the layout needs
        is_empty (bool): True if the generator has no parts and takes no room
    """

    required_width = 1
    is_empty = False

    def __init__(self, arm_area, writer):
        super().__init__(arm_area.arena, arm_area)
        self.arm_area = arm_area
        self.writer = writer

    @property
    def grid_state(self):
        return self.arm_area.grid_state

    @property
    def controller(self):
        return self.arm_area.controller

    @property
    def required_access_points(self):
        """Grabber transforms, in local coordinates, the main arm must be able to reach."""
        return [Transform2D(Vector2(0, 0), HexRotation.R0)]

    def consume(self, element, id):
        pass

    def generate(self, element, id):
        pass

    def pass_through(self, element):
        pass

    def begin_solution(self):
        pass

    def end_solution(self):
        pass

    def optimize_parts(self):
        pass

    def drop_at(self, transform, add_to_grid=True):
        """Move the held atoms so the grabber is at a local transform and drop them."""
        self.arm_area.move_grabber_to(transform, relative_to=self)
        return self.arm_area.drop_atoms(add_to_grid)

    def grab_at(self, transform, element, remove_from_grid=True):
        """Move the grabber to a local transform and grab the single atom there."""
        self.arm_area.move_grabber_to(transform, relative_to=self)
        world = self.get_world_transform().apply(transform)
        atoms = AtomCollection.from_element(element, Transform2D(world.position, HexRotation.R0))
        self.arm_area.grab_atoms(atoms, remove_from_grid)
        return atoms


class DummyAtomGenerator(AtomGenerator):
    """Stands in for an element buffer that never stores anything."""

    is_empty = True

    @property
    def required_access_points(self):
        return []


class WasteDisposer(AtomGenerator):
    """Drops unwanted atoms onto a glyph of disposal."""

    required_width = 2

    DISPOSAL_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)

    def __init__(self, arm_area, writer):
        super().__init__(arm_area, writer)
        Glyph(self.arena, self, self.DISPOSAL_TRANSFORM.position, HexRotation.R120, GlyphType.Disposal)

    @property
    def required_access_points(self):
        return [self.DISPOSAL_TRANSFORM]

    def consume(self, element, id):
        self.drop_at(self.DISPOSAL_TRANSFORM, add_to_grid=False)


class AtomBuffer(AtomGenerator):
    """
    Stores atoms that aren't needed yet on a dedicated arm, for buffers whose
    atoms are all restored eventually.

    The buffer arm sits two cells from the grab point and drops stored atoms
    around itself. The next atom to restore is always kept at NEXT_ATOM_DIRECTION,
    one step counterclockwise from the grab point, so a restore is a single
    rotate-grab-rotate-drop for the buffer arm.

    Attributes:
        buffer_info (BufferInfo): Restore order of every atom the buffer will see
        arm (Arm): The buffer's own arm
        stored_atoms (dict): HexRotation of the buffer arm -> BufferedElement stored there
        max_stored_atoms (int): Stored atoms allowed at once
    """

    required_width = 2

    GRAB_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)
    GRAB_DIRECTION = HexRotation.R180
    NEXT_ATOM_DIRECTION = HexRotation.R240
    ARM_POSITION = Vector2(2, 0)
    ARM_EXTENSION = 2

    def __init__(self, arm_area, writer, buffer_info, config=None):
        super().__init__(arm_area, writer)
        config = config or load_config()
        self.buffer_info = buffer_info
        self.max_stored_atoms = config["buffer"]["max_stored_atoms"]
        self.arm = Arm(self.arena, self, self.ARM_POSITION, self.GRAB_DIRECTION, ArmType.Arm1, self.ARM_EXTENSION)
        self.stored_atoms = {}

    @property
    def required_access_points(self):
        return [self.GRAB_TRANSFORM]

    def _storage_positions(self):
        return [self.ARM_POSITION + Vector2(self.ARM_EXTENSION, 0).rotate_by(direction)
                for direction in HexRotation.ALL if direction != self.GRAB_DIRECTION]

    def begin_solution(self):
        # Reserve every cell an atom can be stored in so the main arm keeps clear of them
        for position in self._storage_positions():
            self.grid_state.register_atom(position, Element.Salt, relative_to=self)

    def end_solution(self):
        for position in reversed(self._storage_positions()):
            self.grid_state.unregister_atom(position, relative_to=self)

    def _enumerate_counterclockwise(self, start):
        for step in range(6):
            direction = start + HexRotation(step)
            if direction in self.stored_atoms:
                yield direction, self.stored_atoms[direction]

    def _enumerate_clockwise(self, start):
        for step in range(6):
            direction = start - HexRotation(step)
            if direction in self.stored_atoms:
                yield direction, self.stored_atoms[direction]

    def _after_last_stored(self):
        last_direction = list(self._enumerate_counterclockwise(self.NEXT_ATOM_DIRECTION))[-1][0]
        return last_direction + HexRotation.R60

    def consume(self, element, id):
        to_store = self.buffer_info.elements[id]
        if to_store.restore_order is None:
            raise SolverError("AtomBuffer requires every stored atom to be restored.")
        if len(self.stored_atoms) >= self.max_stored_atoms:
            raise SolverError(f"AtomBuffer can't store more than {self.max_stored_atoms} atoms.")

        to_reorder = [s for s in self.stored_atoms.values() if s.restore_order < to_store.restore_order]
        if to_reorder and len(to_reorder) == len(self.stored_atoms):
            # Every stored atom comes back first, so the new one goes to the back of the queue
            self.drop_at(self.GRAB_TRANSFORM, add_to_grid=False)
            target = self._after_last_stored()
            self.writer.write(self.arm, Instruction.Grab)
            self.writer.write(self.arm, to_rotation_instructions(
                self.GRAB_DIRECTION.calculate_clockwise_delta_rotations_to(target)))
            self.writer.write(self.arm, Instruction.Reset)
            self.stored_atoms[target] = to_store
            return

        if to_reorder:
            raise SolverError("AtomBuffer doesn't support restoring atoms out of order.")

        # Shuffle the stored atoms counterclockwise to make room at the front
        current_rotation = self.GRAB_DIRECTION
        if self.stored_atoms:
            self.writer.new_fragment()
            target = self._after_last_stored()
            for direction, stored in list(self._enumerate_clockwise(self.GRAB_DIRECTION)):
                self.writer.write(self.arm, to_rotation_instructions(
                    current_rotation.calculate_delta_rotations_to(direction)))
                self.writer.write(self.arm, Instruction.Grab)
                self.writer.write(self.arm, to_rotation_instructions(
                    direction.calculate_counterclockwise_delta_rotations_to(target)))
                self.writer.write(self.arm, Instruction.Drop)
                del self.stored_atoms[direction]
                self.stored_atoms[target] = stored
                current_rotation = target
                target = target.rotate_60_clockwise()

        self.drop_at(self.GRAB_TRANSFORM, add_to_grid=False)
        self.writer.write(self.arm, to_rotation_instructions(
            current_rotation.calculate_delta_rotations_to(self.GRAB_DIRECTION)))
        self.writer.write(self.arm, Instruction.Grab)
        self.writer.write(self.arm, to_rotation_instructions(
            self.GRAB_DIRECTION.calculate_counterclockwise_delta_rotations_to(self.NEXT_ATOM_DIRECTION)))
        self.writer.write(self.arm, Instruction.Reset)
        self.stored_atoms[self.NEXT_ATOM_DIRECTION] = to_store

    def generate(self, element, id):
        self.arm_area.move_grabber_to(self.GRAB_TRANSFORM, relative_to=self)

        # A new fragment lets the buffer arm's drop line up with the main arm's grab
        self.writer.new_fragment()
        self.writer.write(self.arm, [Instruction.RotateCounterclockwise, Instruction.Grab,
                                     Instruction.RotateClockwise, Instruction.Drop])
        del self.stored_atoms[self.NEXT_ATOM_DIRECTION]
        self.writer.adjust_time(-1)

        world = self.get_world_transform().apply(self.GRAB_TRANSFORM)
        self.arm_area.grab_atoms(AtomCollection.from_element(element, world.with_rotation(HexRotation.R0)),
                                 remove_from_grid=False)

        # Bring the next atom to the front
        self.writer.new_fragment()
        current_rotation = self.GRAB_DIRECTION
        target = self.NEXT_ATOM_DIRECTION
        for direction, stored in list(self._enumerate_counterclockwise(self.NEXT_ATOM_DIRECTION)):
            self.writer.write(self.arm, to_rotation_instructions(
                current_rotation.calculate_delta_rotations_to(direction)))
            self.writer.write(self.arm, Instruction.Grab)
            self.writer.write(self.arm, to_rotation_instructions(
                direction.calculate_clockwise_delta_rotations_to(target)))
            self.writer.write(self.arm, Instruction.Drop)
            del self.stored_atoms[direction]
            self.stored_atoms[target] = stored
            current_rotation = target
            target = target.rotate_60_counterclockwise()
        self.writer.write(self.arm, Instruction.Reset)


def _parse_instructions(text):
    return [Instruction(c) for c in text]


class AtomBufferWithWaste(AtomGenerator):
    """
    Stores atoms on a bonded chain, for buffers where some atoms are never
    restored and there's no glyph of disposal to get rid of them.

    Every stored atom is bonded to the front of the chain, which runs along
    the row above the grab point. Restoring pulls the front atom off the chain
    on a glyph of unbonding and hands it back to the grab point, so atoms come
    back in the reverse of the order they were stored in. Waste atoms are simply
    never pulled off again.

    Attributes:
        buffer_info (BufferInfo): Restore order of every atom the buffer will see
        arm (Arm): The arm that builds and pulls apart the chain
        stored_elements (list): BufferedElements on the chain, the next one to restore last
    """

    required_width = 2

    GRAB_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)
    CHAIN_LENGTH = 6
    MAX_OUT_OF_ORDER_ATOMS = 2

    BOND_TO_CHAIN = _parse_instructions("DDQD")
    UNBOND_FRONT_ATOM = _parse_instructions("DDDFQDQDQR")
    RETURN_CHAIN_TO_BONDER = _parse_instructions("AFEAER")
    BOND_NEW_ATOM_TO_FRONT = _parse_instructions("AAAFDDQDR")
    BOND_UNBONDED_ATOM_TO_FRONT = _parse_instructions("DDFDDDQDC")

    # Reverses the first three atoms of the chain, counting the new one
    REVERSE_FRONT_THREE = [
        _parse_instructions("DDDFQDQDQR"),
        _parse_instructions("DFDRA"),
        _parse_instructions("AFDRA"),
        _parse_instructions("AFDQR"),
        _parse_instructions("AFEAER"),
        _parse_instructions("AAFDQDR"),
        _parse_instructions("AAAFDDQDR"),
        _parse_instructions("DDFDR"),
    ]

    def __init__(self, arm_area, writer, buffer_info):
        super().__init__(arm_area, writer)
        self.buffer_info = buffer_info
        self.arm = Arm(self.arena, self, Vector2(1, 0), HexRotation.R180, ArmType.Arm1)
        self.stored_elements = []

        if buffer_info.uses_restore and (buffer_info.multi_atom or buffer_info.wastes_atoms):
            Glyph(self.arena, self, Vector2(2, -1), HexRotation.R180, GlyphType.Unbonding)
        if buffer_info.multi_atom or buffer_info.wastes_atoms:
            Glyph(self.arena, self, Vector2(1, 1), HexRotation.R300, GlyphType.Bonding)

    @property
    def required_access_points(self):
        return [self.GRAB_TRANSFORM]

    def _chain_positions(self):
        return [Vector2(i, 1) for i in range(1, self.CHAIN_LENGTH + 1)]

    def begin_solution(self):
        # Keep the main arm clear of the cells the chain can reach
        for position in self._chain_positions():
            self.grid_state.register_atom(position, Element.Salt, relative_to=self)

    def end_solution(self):
        for position in reversed(self._chain_positions()):
            self.grid_state.unregister_atom(position, relative_to=self)

    def consume(self, element, id):
        to_store = self.buffer_info.elements[id]
        options = ArmMovementOptions(allow_calcification=to_store.is_waste)
        self.arm_area.move_grabber_to(self.GRAB_TRANSFORM, relative_to=self, options=options)
        self.arm_area.drop_atoms(add_to_grid=False)

        # Atoms restored before this one have to stay in front of it on the chain
        to_reorder = [s for s in self.stored_elements if s.restore_order is not None
                      and (to_store.restore_order is None or to_store.restore_order > s.restore_order)]
        if not to_reorder:
            self.writer.adjust_time(-1)
            self.writer.write_grab_reset_action(self.arm, self.BOND_TO_CHAIN)
            self.stored_elements.append(to_store)
            return

        if len(to_reorder) > self.MAX_OUT_OF_ORDER_ATOMS:
            raise SolverError(f"AtomBufferWithWaste can't handle more than {self.MAX_OUT_OF_ORDER_ATOMS} "
                              f"out-of-order atoms (solution requires {len(to_reorder)}).")

        logger.debug(f"Moving atom {id} behind {len(to_reorder)} atoms on the chain")
        if len(to_reorder) == 2:
            for instructions in self.REVERSE_FRONT_THREE:
                self.writer.write(self.arm, instructions)

        # Swap the new atom with the one at the front of the chain
        self.writer.write(self.arm, self.UNBOND_FRONT_ATOM)
        self.writer.write(self.arm, self.RETURN_CHAIN_TO_BONDER)
        self.writer.write(self.arm, self.BOND_NEW_ATOM_TO_FRONT)
        self.writer.write(self.arm, self.BOND_UNBONDED_ATOM_TO_FRONT)

        self.stored_elements.insert(self.stored_elements.index(to_reorder[0]), to_store)

    def generate(self, element, id):
        self.arm_area.move_grabber_to(self.GRAB_TRANSFORM, relative_to=self)

        # A new fragment lets the buffer arm's drop line up with the main arm's grab
        self.writer.new_fragment()

        if not self.stored_elements:
            raise SolverError(f"Trying to restore atom {id} from an empty chain.")
        restored = self.stored_elements[-1]
        if restored.index != id:
            raise SolverError(f"Trying to restore atom {id} but atom {restored.index} is at the front of the chain.")

        self.writer.write(self.arm, _parse_instructions("DDDFQDQDQ"))
        self.writer.write(self.arm, _parse_instructions("DR"))
        self.writer.write(self.arm, _parse_instructions("AAFEAEC"), update_time=False)
        self.writer.adjust_time(-1)

        world = self.get_world_transform().apply(self.GRAB_TRANSFORM)
        self.arm_area.grab_atoms(AtomCollection.from_element(element, world.with_rotation(HexRotation.R0)),
                                 remove_from_grid=False)
        self.stored_elements.remove(restored)


class MetalProjector(AtomGenerator):
    """Raises a metal one step at a time by projecting quicksilver onto it."""

    required_width = 2

    QUICKSILVER_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)
    METAL_TRANSFORM = Transform2D(Vector2(-1, 1), HexRotation.R0)

    def __init__(self, arm_area, writer):
        super().__init__(arm_area, writer)
        self.current_metal = None
        Glyph(self.arena, self, self.QUICKSILVER_TRANSFORM.position, HexRotation.R120, GlyphType.Projection)

    @property
    def required_access_points(self):
        return [self.QUICKSILVER_TRANSFORM, self.METAL_TRANSFORM]

    def consume(self, element, id):
        if self.current_metal is None:
            self.drop_at(self.METAL_TRANSFORM)
            self.current_metal = element
            return

        self.drop_at(self.QUICKSILVER_TRANSFORM, add_to_grid=False)
        self.grid_state.unregister_atom(self.METAL_TRANSFORM.position, relative_to=self)
        self.current_metal = next_metal(self.current_metal)
        self.grid_state.register_atom(self.METAL_TRANSFORM.position, self.current_metal, relative_to=self)

    def generate(self, element, id):
        self.grab_at(self.METAL_TRANSFORM, element)
        self.current_metal = None


class _StorageLocation:
    def __init__(self, transform):
        self.transform = transform
        self.element = None


class MetalPurifier(AtomGenerator):
    """
    Builds a metal out of lower metals with a glyph of purification.

    Partial results wait in a row of storage cells, one per metal between the
    lowest metal used and the target, until a second atom of the same metal
    turns up to combine with.

    Attributes:
        sequences (list): PurificationSequence for every metal this purifier makes
        storage (list): _StorageLocation per intermediate metal
        stash (tuple): (element, local transform) of a lone atom of the lowest metal, None if there isn't one
    """

    INPUT1_TRANSFORM = Transform2D(Vector2(-1, 1), HexRotation.R0)
    INPUT2_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)
    OUTPUT_TRANSFORM = Transform2D(Vector2(-1, 0), HexRotation.R0)

    def __init__(self, arm_area, writer, sequences):
        super().__init__(arm_area, writer)
        self.sequences = sequences
        size = max(get_metal_difference(s.lowest_metal_used, s.target_metal) for s in sequences) - 1
        self.storage = [_StorageLocation(Transform2D(Vector2(-2 - i, 2 + i), HexRotation.R60))
                        for i in range(max(size, 0))]
        self.stash = None
        Glyph(self.arena, self, Vector2(0, 0), HexRotation.R120, GlyphType.Purification)

    @property
    def required_width(self):
        return max(2, len(self.storage) + 1)

    @property
    def required_access_points(self):
        return ([self.INPUT2_TRANSFORM, self.OUTPUT_TRANSFORM, self.INPUT1_TRANSFORM]
                + [s.transform for s in self.storage])

    def _storage_for(self, metal, sequence):
        return self.storage[METALS.index(metal) - METALS.index(sequence.lowest_metal_used) - 1]

    def _purify(self, metal):
        """Replace the two atoms on the glyph inputs with the next metal on the output."""
        self.grid_state.unregister_atom(self.INPUT1_TRANSFORM.position, relative_to=self)
        self.grid_state.unregister_atom(self.INPUT2_TRANSFORM.position, relative_to=self)
        metal = next_metal(metal)
        self.grid_state.register_atom(self.OUTPUT_TRANSFORM.position, metal, relative_to=self)
        logger.debug(f"Purified into {metal.name}")
        return metal

    def consume(self, element, id):
        sequence = self.sequences[id]

        if element == sequence.lowest_metal_used:
            if self.stash is None:
                self.drop_at(self.INPUT1_TRANSFORM)
                self.stash = (element, self.INPUT1_TRANSFORM)
                return
            self.drop_at(self.INPUT2_TRANSFORM)
            self.stash = None
        else:
            location = self._storage_for(element, sequence)
            if location.element is None:
                self.drop_at(location.transform)
                location.element = element
                return

            if self.stash is not None:
                # A lower metal is waiting on the glyph input. Park it on the output while the
                # stored atom is brought over, then put it in the stored atom's place.
                stash_element, _ = self.stash
                self.drop_at(self.INPUT2_TRANSFORM)
                self.grab_at(self.INPUT1_TRANSFORM, stash_element)
                self.drop_at(self.OUTPUT_TRANSFORM)
                self.grab_at(location.transform, location.element)
                self.drop_at(self.INPUT1_TRANSFORM)
                self.grab_at(self.OUTPUT_TRANSFORM, stash_element)
                self.drop_at(location.transform)
                self.stash = (stash_element, location.transform)
            else:
                self.drop_at(self.INPUT2_TRANSFORM)
                self.grab_at(location.transform, location.element)
                self.drop_at(self.INPUT1_TRANSFORM)
            location.element = None

        metal = self._purify(element)
        while metal != sequence.target_metal:
            location = self._storage_for(metal, sequence)
            if location.element is None:
                self.grab_at(self.OUTPUT_TRANSFORM, metal)
                self.drop_at(location.transform)
                location.element = metal
                break

            self.grab_at(location.transform, location.element)
            self.drop_at(self.INPUT2_TRANSFORM)
            self.grab_at(self.OUTPUT_TRANSFORM, metal)
            self.drop_at(self.INPUT1_TRANSFORM)
            location.element = None
            metal = self._purify(metal)

        if self.stash is not None and self.stash[1] != self.INPUT1_TRANSFORM:
            stash_element, stash_transform = self.stash
            self.grab_at(stash_transform, stash_element)
            self.drop_at(self.INPUT1_TRANSFORM)
            self.stash = (stash_element, self.INPUT1_TRANSFORM)

    def generate(self, element, id):
        self.grab_at(self.OUTPUT_TRANSFORM, element)


class QuintessenceDisperser(AtomGenerator):
    """Splits quintessence into the four cardinal elements with a glyph of dispersion."""

    required_width = 3

    INPUT_TRANSFORM = Transform2D(Vector2(-2, 1), HexRotation.R0)
    OUTPUT_TRANSFORMS = {
        Element.Earth: Transform2D(Vector2(-3, 2), HexRotation.R60),
        Element.Water: Transform2D(Vector2(-2, 2), HexRotation.R60),
        Element.Fire: Transform2D(Vector2(-1, 1), HexRotation.R0),
        Element.Air: Transform2D(Vector2(-1, 0), HexRotation.R0),
    }

    def __init__(self, arm_area, writer):
        super().__init__(arm_area, writer)
        Glyph(self.arena, self, self.INPUT_TRANSFORM.position, HexRotation.R120, GlyphType.Dispersion)

    @property
    def required_access_points(self):
        outputs = self.OUTPUT_TRANSFORMS
        return [outputs[Element.Water], outputs[Element.Fire], outputs[Element.Earth], outputs[Element.Air],
                self.INPUT_TRANSFORM]

    def consume(self, element, id):
        self.drop_at(self.INPUT_TRANSFORM, add_to_grid=False)
        for cardinal, transform in self.OUTPUT_TRANSFORMS.items():
            self.grid_state.register_atom(transform.position, cardinal, relative_to=self)

    def generate(self, element, id):
        if element not in self.OUTPUT_TRANSFORMS:
            raise SolverError(f"QuintessenceDisperser can't generate {element.name}.")
        self.grab_at(self.OUTPUT_TRANSFORMS[element], element)


class QuintessenceGenerator(AtomGenerator):
    """Unifies the four cardinal elements into quintessence."""

    required_width = 3

    INPUT_TRANSFORMS = [
        Transform2D(Vector2(-1, 2), HexRotation.R0),
        Transform2D(Vector2(-2, 2), HexRotation.R0),
        Transform2D(Vector2(-1, 0), HexRotation.R300),
        Transform2D(Vector2(0, 0), HexRotation.R0),
    ]
    OUTPUT_TRANSFORM = Transform2D(Vector2(-1, 1), HexRotation.R0)

    def __init__(self, arm_area, writer):
        super().__init__(arm_area, writer)
        self.cardinal_count = 0
        Glyph(self.arena, self, self.OUTPUT_TRANSFORM.position, HexRotation.R0, GlyphType.Unification)

    @property
    def required_access_points(self):
        inputs = self.INPUT_TRANSFORMS
        return [inputs[3], self.OUTPUT_TRANSFORM, inputs[0], inputs[2], inputs[1]]

    def consume(self, element, id):
        self.drop_at(self.INPUT_TRANSFORMS[self.cardinal_count])
        self.cardinal_count += 1

        if self.cardinal_count == len(self.INPUT_TRANSFORMS):
            for transform in reversed(self.INPUT_TRANSFORMS):
                self.grid_state.unregister_atom(transform.position, relative_to=self)
            self.grid_state.register_atom(self.OUTPUT_TRANSFORM.position, Element.Quintessence, relative_to=self)
            self.cardinal_count = 0

    def generate(self, element, id):
        self.grab_at(self.OUTPUT_TRANSFORM, element)


class SaltGenerator(AtomGenerator):
    """
    Calcifies cardinal atoms, with a second route past the glyph for cardinals
    that must come through unchanged.
    """

    required_width = 2

    CALCIFIER_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)
    PASS_THROUGH_TRANSFORM = Transform2D(Vector2(-1, 1), HexRotation.R0)

    def __init__(self, arm_area, writer):
        super().__init__(arm_area, writer)
        Glyph(self.arena, self, self.CALCIFIER_TRANSFORM.position, self.CALCIFIER_TRANSFORM.rotation,
              GlyphType.Calcification)

    @property
    def required_access_points(self):
        return [self.CALCIFIER_TRANSFORM, self.PASS_THROUGH_TRANSFORM]

    def _calcify(self):
        self.arm_area.move_grabber_to(self.CALCIFIER_TRANSFORM, relative_to=self,
                                      options=ArmMovementOptions(allow_calcification=True))
        calcifier = self.get_world_transform().apply(self.CALCIFIER_TRANSFORM.position)
        atom = self.arm_area.grabbed_atoms.get_atom_at_world_position(calcifier)
        if atom is None or atom.element not in CARDINALS:
            raise SolverError(f"No cardinal atom is held over the calcifier at {calcifier}.")
        atom.element = Element.Salt

    def generate(self, element, id):
        self._calcify()
        self.arm_area.move_grabber_to(self.PASS_THROUGH_TRANSFORM, relative_to=self)

    def pass_through(self, element):
        self.arm_area.move_grabber_to(self.PASS_THROUGH_TRANSFORM, relative_to=self,
                                      arm_rotation_offset=HexRotation.R300)
        self.arm_area.move_grabber_to(self.PASS_THROUGH_TRANSFORM, relative_to=self)


class SaltGeneratorNoCardinalPassThrough(SaltGenerator):
    """The salt generator for when every cardinal passing this way is calcified."""

    required_width = 1

    @property
    def required_access_points(self):
        return [self.CALCIFIER_TRANSFORM]

    def generate(self, element, id):
        self._calcify()

    def pass_through(self, element):
        pass


class VanBerloController:
    """
    Turns Van Berlo's wheel so the right element faces the duplication glyph.

    Attributes:
        writer (ProgramWriter): Where the wheel's instructions are written
        wheel_arm (Arm): The wheel
        current_rotation (HexRotation): The wheel's rotation after the last atom
    """

    # Element facing the glyph for each rotation of the wheel
    PRODUCED_ELEMENTS = {
        HexRotation.R0: Element.Salt,
        HexRotation.R60: Element.Air,
        HexRotation.R120: Element.Water,
        HexRotation.R180: Element.Salt,
        HexRotation.R240: Element.Earth,
        HexRotation.R300: Element.Fire,
    }

    def __init__(self, writer, wheel_arm):
        self.writer = writer
        self.wheel_arm = wheel_arm
        self.is_first_atom = True
        self.current_rotation = None

    def rotate_to_element(self, element):
        target = next(r for r, e in self.PRODUCED_ELEMENTS.items() if e == element)
        if self.is_first_atom:
            # Start the wheel at the first element it's needed for
            self.wheel_arm.transform = self.wheel_arm.transform.with_rotation(target)
            self.is_first_atom = False
        else:
            delta_rotations = self.current_rotation.calculate_delta_rotations_to(target)
            if delta_rotations:
                # Turn the wheel while the atom is on its way
                self.writer.adjust_time(-len(delta_rotations))
                self.writer.write(self.wheel_arm, to_rotation_instructions(delta_rotations))

            # Hold the wheel still until the atom has moved away again
            self.writer.write(self.wheel_arm, Instruction.Wait, update_time=False)

        self.current_rotation = target

    def get_current_elements(self):
        """Element facing the glyph for every rotation of the glyph relative to the wheel."""
        return {r: self.PRODUCED_ELEMENTS[self.current_rotation - r] for r in HexRotation.ALL}

    def reset(self):
        """Put a Reset straight after the wheel's last instruction."""
        fragment = self.writer.get_last_fragment_for_arm(self.wheel_arm)
        if fragment is None:
            return
        instructions = fragment.instructions[self.wheel_arm]
        last_index = fragment.get_last_instruction_index(self.wheel_arm)
        instructions.insert(last_index + 1, Instruction.Reset)


class VanBerloGenerator(AtomGenerator):
    """Turns salt into a cardinal element using Van Berlo's wheel and a glyph of duplication."""

    GLYPH_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)

    def __init__(self, arm_area, writer):
        super().__init__(arm_area, writer)
        Glyph(self.arena, self, Vector2(1, 0), HexRotation.R180, GlyphType.Duplication)
        self.wheel_arm = Arm(self.arena, self, Vector2(2, 0), HexRotation.R0, ArmType.VanBerlo)
        self.wheel = VanBerloController(writer, self.wheel_arm)

    def generate(self, element, id):
        self.wheel.rotate_to_element(element)
        self.arm_area.move_grabber_to(self.GLYPH_TRANSFORM, relative_to=self)

        glyph_position = self.get_world_transform().apply(self.GLYPH_TRANSFORM.position)
        atom = self.arm_area.grabbed_atoms.get_atom_at_world_position(glyph_position)
        if atom is None or atom.element != Element.Salt:
            raise SolverError(f"No salt atom is held over the duplication glyph at {glyph_position}.")
        atom.element = element

    def pass_through(self, element):
        # Other elements are unaffected by the glyph
        if element == Element.Salt:
            self.wheel.rotate_to_element(element)
            self.arm_area.move_grabber_to(self.GLYPH_TRANSFORM, relative_to=self)

    def end_solution(self):
        self.wheel.reset()


class MorsVitaeGenerator(AtomGenerator):
    """Turns two salt atoms into Mors and Vitae with a glyph of animismus."""

    required_width = 2

    SALT_INPUT1_TRANSFORM = Transform2D(Vector2(-1, 1), HexRotation.R0)
    SALT_INPUT2_TRANSFORM = Transform2D(Vector2(-1, 0), HexRotation.R0)
    MORS_OUTPUT_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)
    VITAE_OUTPUT_TRANSFORM = Transform2D(Vector2(-2, 1), HexRotation.R0)

    def __init__(self, arm_area, writer):
        super().__init__(arm_area, writer)
        self.has_salt = False
        Glyph(self.arena, self, Vector2(-1, 0), HexRotation.R60, GlyphType.Animismus)

    @property
    def required_access_points(self):
        return [self.MORS_OUTPUT_TRANSFORM, self.SALT_INPUT1_TRANSFORM, self.VITAE_OUTPUT_TRANSFORM,
                self.SALT_INPUT2_TRANSFORM]

    def consume(self, element, id):
        if not self.has_salt:
            self.drop_at(self.SALT_INPUT1_TRANSFORM)
            self.has_salt = True
            return

        self.drop_at(self.SALT_INPUT2_TRANSFORM, add_to_grid=False)
        self.grid_state.unregister_atom(self.SALT_INPUT1_TRANSFORM.position, relative_to=self)
        self.grid_state.register_atom(self.MORS_OUTPUT_TRANSFORM.position, Element.Mors, relative_to=self)
        self.grid_state.register_atom(self.VITAE_OUTPUT_TRANSFORM.position, Element.Vitae, relative_to=self)
        self.has_salt = False

    def generate(self, element, id):
        if element == Element.Mors:
            transform = self.MORS_OUTPUT_TRANSFORM
        elif element == Element.Vitae:
            transform = self.VITAE_OUTPUT_TRANSFORM
        else:
            raise SolverError(f"MorsVitaeGenerator can only generate Mors and Vitae but {element.name} was requested.")
        self.grab_at(transform, element)


class OutputArea(AtomGenerator):
    """
    Passes every consumed atom to the assembler building the products.

    Attributes:
        assembler (MoleculeAssembler): Created by the assembler factory as a child of this area
    """

    def __init__(self, arm_area, writer, assembler_factory):
        super().__init__(arm_area, writer)
        self.assembler = assembler_factory.create_assembler(self, writer, arm_area)

    @property
    def required_access_points(self):
        return [self.assembler.transform.apply(p) for p in self.assembler.required_access_points]

    @property
    def required_width(self):
        return self.assembler.required_width

    def consume(self, element, id):
        self.assembler.add_atom(element, id)

    def end_solution(self):
        self.arm_area.reset_arm()

    def optimize_parts(self):
        self.assembler.optimize_parts()
