#! .venv\Scripts\python.exe

"""
Molecule Assemblers Module

Builds products out of the atoms the main arm hands to the output area.

Each assembler keeps one AssemblyPlan per product: a list of steps, one per
atom in the product's build order, and a cursor that moves on by one step
every time an atom arrives. The plan loops back to its first step once a copy
of the product is finished.

Main Components:
- AssemblyPlan: Precomputed steps and a cursor
- MoleculeAssembler: Base class placed as a child of the output area
- MonoatomicAssembler: Drops single atoms onto up to two product glyphs
- ChainBuilder / ChainAssembler: Products without branches or loops, bonded one atom at a time on a bonder
- Star2Assembler: A centre atom with three neighbours, built by its own arm around a multi-bonder
- UniversalAssembler / BondProgrammer / ProductConveyor: Any other product, built row by row by two banks of pistons
- MoleculeAssemblerFactory: Chooses the assembler and the element order products are built in
"""

from collections import deque
from functools import partial

from ArmPathFinder import ArmMovementOptions
from GameObjects import GameObject, Arm, Glyph, Product, Track
from HexGeometry import Vector2, HexRotation, Transform2D
from PuzzleModel import ArmType, BondType, GlyphType, Instruction, MoleculeShape
from SolverErrors import SolverError, UnsupportedError
from logging_config import setup_logger
logger = setup_logger("MoleculeAssemblers")


class AssemblyPlan:
    """
    The steps that build one copy of a product.

    Attributes:
        steps (list): Callables, one per atom added
        cursor (int): Index of the step run for the next atom
    """

    def __init__(self, steps):
        if not steps:
            raise SolverError("An assembly plan needs at least one step.")
        self.steps = list(steps)
        self.cursor = 0

    @property
    def is_at_start(self):
        return self.cursor == 0

    def advance(self):
        step = self.steps[self.cursor]
        self.cursor = (self.cursor + 1) % len(self.steps)
        step()


class MoleculeAssembler(GameObject):
    """
    Base class for assemblers.

    The main arm always arrives along the output area's x-axis. Assemblers
    whose layout is turned relative to the output area set frame_rotation, and
    their drop point is expressed so the main arm still points the same way.

    Attributes:
        writer (ProgramWriter): Where instructions are written
        arm_area (ArmArea): The main arm that delivers atoms
        plans (dict): Product ID -> AssemblyPlan
    """

    frame_rotation = HexRotation.R0
    required_width = 1

    def __init__(self, parent, writer, arm_area):
        super().__init__(parent.arena, parent, Transform2D(Vector2(0, 0), self.frame_rotation))
        self.writer = writer
        self.arm_area = arm_area
        self.plans = {}

    @property
    def controller(self):
        return self.arm_area.controller

    @property
    def grid_state(self):
        return self.arm_area.grid_state

    @property
    def drop_transform(self):
        return Transform2D(Vector2(0, 0), -self.frame_rotation)

    @property
    def required_access_points(self):
        return [self.drop_transform]

    def add_atom(self, element, product_id):
        plan = self.plans[product_id]
        if plan.is_at_start:
            logger.debug(f"{type(self).__name__} starting a copy of product {product_id}")
        plan.advance()

    def optimize_parts(self):
        pass

    def drop_atom(self):
        """Bring the held atom to the assembler's drop point and let go of it."""
        self.arm_area.move_grabber_to(self.drop_transform, relative_to=self)
        self.arm_area.drop_atoms(add_to_grid=False)


class MonoatomicAssembler(MoleculeAssembler):
    """Drops single atoms straight onto their product glyphs."""

    MAX_PRODUCTS = 2

    def __init__(self, parent, writer, arm_area, products):
        super().__init__(parent, writer, arm_area)
        if any(len(p.atoms) > 1 for p in products):
            raise SolverError("MonoatomicAssembler can't handle products with multiple atoms.")
        if len(products) > self.MAX_PRODUCTS:
            raise SolverError(f"MonoatomicAssembler can't handle more than {self.MAX_PRODUCTS} products.")

        # The product built last sits on the drop point itself
        self.outputs = {}
        transforms = [
            Transform2D(Vector2(0, 0), HexRotation.R0),
            Transform2D(Vector2(arm_area.arm_length, 0).rotate_by(HexRotation.R120), HexRotation.R60),
        ]
        for product, transform in zip(reversed(products), transforms):
            Product(self.arena, self, transform.position, transform.rotation, product)
            self.outputs[product.id] = transform
            self.plans[product.id] = AssemblyPlan([partial(self._drop_on_output, transform)])

    def _drop_on_output(self, transform):
        self.arm_area.move_grabber_to(transform, relative_to=self)
        self.arm_area.drop_atoms(add_to_grid=False)


class ChainOperation:
    """
    One atom of a chain.

    Attributes:
        atom (Atom): The product atom added by this operation
        molecule_rotation (HexRotation): Rotation of the chain once this atom is bonded
        rotation_to_next (HexRotation): Pivot needed before the next atom can be bonded
    """

    def __init__(self, atom):
        self.atom = atom
        self.molecule_rotation = HexRotation.R0
        self.rotation_to_next = HexRotation.R0

    def __repr__(self):
        return f"ChainOperation({self.atom}, {self.molecule_rotation}, next={self.rotation_to_next})"


class ChainBuilder:
    """
    Works out the order a chain's atoms are bonded in and how the chain must be
    turned between them.

    Attributes:
        product (Molecule): The chain
        operations (list): ChainOperation per atom in build order
    """

    # Direction from the chain's last atom (upper bonder cell) to the new atom (lower bonder cell)
    BONDING_DIRECTION = HexRotation.R300

    def __init__(self, product):
        self.product = product
        self.operations = self._generate_operations()

    def get_elements_in_build_order(self):
        return [op.atom.element for op in self.operations]

    def _generate_operations(self):
        ordered_atoms = self._determine_atom_order()
        forward = self._build_operations(ordered_atoms)
        backward = self._build_operations(list(reversed(ordered_atoms)))

        # Counterclockwise pivots are the most likely to hit something, so use the order with fewer of them
        def pivot_counts(ops):
            return (sum(1 for op in ops if op.rotation_to_next == HexRotation.R120),
                    sum(1 for op in ops if op.rotation_to_next == HexRotation.R60))

        return forward if pivot_counts(forward) < pivot_counts(backward) else backward

    def _determine_atom_order(self):
        first_atom = max((a for a in self.product.atoms if a.bond_count == 1), key=lambda a: a.position.x)
        seen = {id(first_atom)}
        ordered_atoms = []
        to_process = deque([first_atom])
        while to_process:
            atom = to_process.popleft()
            ordered_atoms.append(atom)
            for _, bonded_atom in self.product.get_adjacent_bonded_atoms(atom):
                if id(bonded_atom) not in seen:
                    seen.add(id(bonded_atom))
                    to_process.append(bonded_atom)
        return ordered_atoms

    def _build_operations(self, ordered_atoms):
        ops = [ChainOperation(atom) for atom in ordered_atoms]
        for i in range(1, len(ordered_atoms)):
            bond_direction = (ordered_atoms[i].position - ordered_atoms[i - 1].position).to_rotation()
            ops[i].molecule_rotation = self.BONDING_DIRECTION - bond_direction

        # A lone atom can be held any way round, so match the second operation and save a pivot
        ops[0].molecule_rotation = ops[1].molecule_rotation
        for i in range(len(ops) - 1):
            ops[i].rotation_to_next = ops[i + 1].molecule_rotation - ops[i].molecule_rotation
        return ops


class _ChainOutput:
    def __init__(self, product_glyph, grabber_transform):
        self.product_glyph = product_glyph
        self.grabber_transform = grabber_transform


class ChainAssembler(MoleculeAssembler):
    """
    Builds chains on a single bonder.

    Each new atom is brought to the lower bonder cell, bonded to the chain whose
    last atom waits on the upper cell, then the whole chain is carried to the
    upper cell and pivoted so the next bond points at the lower cell again. The
    finished chain is swung onto its product glyph.

    Attributes:
        builders (dict): Product ID -> ChainBuilder
        outputs (dict): Product ID -> _ChainOutput
        placed_atoms (dict): Product ID -> AtomCollection of the partial chain lying on the bonder
    """

    MAX_PRODUCTS = 2
    required_width = 2

    LOWER_BONDER_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)
    UPPER_BONDER_TRANSFORM = Transform2D(Vector2(-1, 1), HexRotation.R0)

    def __init__(self, parent, writer, arm_area, builders):
        super().__init__(parent, writer, arm_area)
        if len(builders) > self.MAX_PRODUCTS:
            raise SolverError(f"ChainAssembler can't handle more than {self.MAX_PRODUCTS} products.")

        self.builders = {b.product.id: b for b in builders}
        self.bonder = Glyph(self.arena, self, self.LOWER_BONDER_TRANSFORM.position, HexRotation.R120,
                            GlyphType.Bonding)
        self.outputs = {}
        self.placed_atoms = {}
        self._create_outputs(builders)

        for builder in builders:
            self.plans[builder.product.id] = AssemblyPlan(
                [partial(self._add_chain_atom, builder, index) for index in range(len(builder.operations))])

    @staticmethod
    def is_product_compatible(product):
        return (all(a.bond_count <= 2 for a in product.atoms)
                and sum(1 for a in product.atoms if a.bond_count == 1) == 2)

    @property
    def required_access_points(self):
        return [self.LOWER_BONDER_TRANSFORM, self.UPPER_BONDER_TRANSFORM]

    def _create_outputs(self, builders):
        arm_position = self.UPPER_BONDER_TRANSFORM.position - Vector2(self.arm_area.arm_length, 0)
        rotation_to_output = HexRotation.R60
        for builder in builders:
            final_op = builder.operations[-1]

            # Where the finished chain lies with its last atom on the upper bonder cell
            chain_transform = Transform2D(self.UPPER_BONDER_TRANSFORM.position, final_op.molecule_rotation)
            glyph_transform = chain_transform.apply(Transform2D(-final_op.atom.position, HexRotation.R0))
            glyph_transform = glyph_transform.rotate_about(arm_position, rotation_to_output)

            product_glyph = Product(self.arena, self, glyph_transform.position, glyph_transform.rotation,
                                    builder.product)
            grabber_position = self.UPPER_BONDER_TRANSFORM.position.rotate_about(arm_position, rotation_to_output)
            self.outputs[builder.product.id] = _ChainOutput(product_glyph,
                                                            Transform2D(grabber_position, rotation_to_output))
            rotation_to_output = rotation_to_output.rotate_60_counterclockwise()

    def _add_chain_atom(self, builder, index):
        product_id = builder.product.id
        op = builder.operations[index]
        is_last = index == len(builder.operations) - 1

        placed = self.placed_atoms.pop(product_id, None)
        if placed is None:
            self.arm_area.move_grabber_to(self.LOWER_BONDER_TRANSFORM, relative_to=self)
        else:
            self.arm_area.move_grabber_to(self.LOWER_BONDER_TRANSFORM, relative_to=self,
                                          options=ArmMovementOptions(allow_external_bonds=True))
            self.controller.bond_atoms_to(placed)

        self.arm_area.move_grabber_to(self.UPPER_BONDER_TRANSFORM, relative_to=self)

        if is_last:
            self.arm_area.move_grabber_to(self.outputs[product_id].grabber_transform, relative_to=self)
            self.arm_area.drop_atoms(add_to_grid=False)
            logger.debug(f"Finished chain for product {product_id}")
        else:
            self._pivot(op.rotation_to_next)
            self.placed_atoms[product_id] = self.arm_area.drop_atoms()

    def _pivot(self, rotation):
        if self.controller.try_pivot_by(rotation):
            return
        if rotation == HexRotation.R180 and self.controller.try_pivot_by(rotation, clockwise_if_180=True):
            return
        raise SolverError(f"Can't pivot the chain by {rotation} without a collision.")


def _get_star_center(product):
    return max(product.atoms, key=lambda a: a.bond_count)


def _get_bond_directions(atom):
    return frozenset(d for d, b in atom.bonds.items() if b != BondType.NONE)


class Star2Assembler(MoleculeAssembler):
    """
    Builds molecules shaped like this:

             O
            /
        O - O
            \\
             O

    The assembly arm holds the centre atom on a multi-bonder; each outer atom
    is bonded on the same cell and pivoted out of the way. The finished star is
    swung onto the first product glyph and passed along to the others by the
    output arms.

    Attributes:
        assembly_arm (Arm): Holds the centre atom
        output_arms (list): One arm per product after the first
        output_locations (dict): Product ID -> index of its product glyph
        output_rotations (dict): Product ID -> rotation of the first glyph that lines the product up
    """

    frame_rotation = HexRotation.R120

    STAR_DIRECTIONS = {
        frozenset([HexRotation.R60, HexRotation.R180, HexRotation.R300]): HexRotation.R300,
        frozenset([HexRotation.R0, HexRotation.R120, HexRotation.R240]): HexRotation.R0,
    }
    # Direction of each outer atom from the centre, in the order they are added, once the star is dropped
    OUTER_ATOM_DIRECTIONS = [HexRotation.R240, HexRotation.R0, HexRotation.R120]

    def __init__(self, parent, writer, arm_area, products):
        super().__init__(parent, writer, arm_area)
        Glyph(self.arena, self, Vector2(1, 0), HexRotation.R60, GlyphType.MultiBonding)
        self.assembly_arm = Arm(self.arena, self, Vector2(0, -3), HexRotation.R60, ArmType.Arm1, 3)
        Track.straight(self.arena, self, self.assembly_arm.transform.position, HexRotation.R0, 1)

        self.output_arms = []
        self.output_locations = {}
        self.output_rotations = {}
        for index, product in enumerate(products):
            center = _get_star_center(product)
            rotation = self.get_output_rotation(product)
            self.output_rotations[product.id] = rotation

            transform = Transform2D(Vector2(4 + index * 3, -3), rotation + HexRotation(index))
            transform = transform.apply(Transform2D(-center.position, HexRotation.R0))
            Product(self.arena, self, transform.position, transform.rotation, product)
            self.output_locations[product.id] = index
            if index > 0:
                self.output_arms.append(Arm(self.arena, self, Vector2(1 + index * 3, 0), HexRotation.R240,
                                            ArmType.Arm1, 3))

            self.plans[product.id] = AssemblyPlan([
                self._grab_center,
                self._bond_outer_atom,
                self._bond_outer_atom,
                partial(self._finish_star, index),
            ])

    @classmethod
    def is_product_compatible(cls, product):
        if product.shape != MoleculeShape.Star2:
            return False
        return _get_bond_directions(_get_star_center(product)) in cls.STAR_DIRECTIONS

    @classmethod
    def get_output_rotation(cls, product):
        return cls.STAR_DIRECTIONS[_get_bond_directions(_get_star_center(product))]

    @classmethod
    def get_element_order(cls, product):
        center = _get_star_center(product)
        rotation = cls.get_output_rotation(product)
        outer_atoms = [product.get_adjacent_atom(center.position, direction - rotation)
                       for direction in cls.OUTER_ATOM_DIRECTIONS]
        return [center.element] + [a.element for a in outer_atoms]

    def _grab_center(self):
        self.drop_atom()
        self.writer.write(self.assembly_arm, [Instruction.Grab, Instruction.MovePositive])

    def _bond_outer_atom(self):
        self.drop_atom()
        self.writer.write(self.assembly_arm, [Instruction.PivotClockwise, Instruction.PivotClockwise])

    def _finish_star(self, output_location):
        self.drop_atom()
        self.writer.write(self.assembly_arm, [Instruction.RotateClockwise, Instruction.Reset])
        self.writer.adjust_time(-1)

        # Each output arm turns the star onto the next product glyph
        for arm in self.output_arms[:output_location]:
            self.writer.write_grab_reset_action(arm, Instruction.RotateCounterclockwise)


class BondProgrammer:
    """
    Instructions that carry a row of atoms held by the upper pistons across the
    60 and 120 degree bonders, bonding it to the row below where the product
    needs it.

    Attributes:
        width (int): Width of the assembly area
        molecule (Molecule): The product
        row (int): Row being bonded to the one below it
        instructions (list): Moves for the upper arms (and the active lower arms)
        return_instructions (list): Moves that bring the arms back afterwards
        used_bonders (list): (GlyphType, HexRotation) of every bonder the instructions use
    """

    def __init__(self, width, molecule, row):
        self.width = width
        self.molecule = molecule
        self.row = row
        self.instructions = None
        self.return_instructions = []
        self.used_bonders = []

    def generate(self):
        if self.instructions is not None:
            raise SolverError("BondProgrammer.generate can only be called once.")
        self.instructions = []
        self._move_through_bonder(HexRotation.R60, self.width, lambda a: a.bonds[HexRotation.R60] == BondType.SINGLE)
        self._move_through_bonder(HexRotation.R120, self.width - 1,
                                  lambda a: a.bonds[HexRotation.R120] == BondType.SINGLE)
        self._optimize()
        distance = sum(1 for i in self.instructions if i == Instruction.MovePositive)
        self.return_instructions = [Instruction.MoveNegative] * distance

    def _move_through_bonder(self, direction, count, should_bond):
        for i in range(count):
            self.instructions.append(Instruction.MovePositive)
            atom = self.molecule.get_atom(Vector2(self.width - 1 - i, self.row))
            if atom is not None and should_bond(atom):
                self.instructions.extend([Instruction.Retract, Instruction.Extend])
                self.used_bonders.append((GlyphType.Bonding, direction))

    def _optimize(self):
        # Trailing moves achieve nothing
        while self.instructions and self.instructions[-1] == Instruction.MovePositive:
            self.instructions.pop()

        # Stay retracted between two bonds in a row
        i = 0
        while i < len(self.instructions) - 2:
            if self.instructions[i:i + 3] == [Instruction.Extend, Instruction.MovePositive, Instruction.Retract]:
                self.instructions[i:i + 3] = [Instruction.MovePositive]
            i += 1


class ProductConveyor(GameObject):
    """
    Moves finished products from the assembly area up to their own product glyph.

    Products are stacked on top of each other; the one built at the bottom of
    the stack needs no moving.

    Attributes:
        outputs (dict): Product ID -> (grab position, drop position) along the conveyor
        output_arm (Arm): None if no product needs moving
    """

    ARM_POSITION = Vector2(-1, 1)

    def __init__(self, parent, writer, products, position):
        super().__init__(parent.arena, parent, Transform2D(position, HexRotation.R0))
        self.writer = writer
        self.outputs = {}

        total_height = 0
        for product in reversed(products):
            Product(self.arena, self, Vector2(0, total_height), HexRotation.R0, product)
            grab_position = min(a.position.y for a in product.atoms if a.position.x == 0)
            self.outputs[product.id] = (grab_position, grab_position + total_height)
            total_height += product.height

        self.output_arm = None
        track_length = max(drop for _, drop in self.outputs.values())
        if track_length > 0:
            self.output_arm = Arm(self.arena, self, self.ARM_POSITION, HexRotation.R300, ArmType.Arm1)
            Track.straight(self.arena, self, self.ARM_POSITION, HexRotation.R60, track_length)

    def move_product_to_output(self, product):
        grab_position, drop_position = self.outputs[product.id]
        if grab_position == drop_position:
            return

        self.writer.adjust_time(-grab_position)
        self.writer.write(self.output_arm, [Instruction.MovePositive] * grab_position)
        self.writer.write(self.output_arm, Instruction.Grab)
        self.writer.write(self.output_arm, [Instruction.MovePositive] * (drop_position - grab_position))
        self.writer.write(self.output_arm, Instruction.Reset)


class UniversalAssembler(MoleculeAssembler):
    """
    Builds any product row by row, top row first.

    A bank of lower pistons takes atoms from the drop point, right to left,
    and moves them along a bonder into place. Once a row is complete, a bank of
    upper pistons lifts it and carries it over the 60 and 120 degree bonders to
    bond it to the next row.

    Attributes:
        width (int): Widest product
        lower_arms (list): Pistons that lay out each row
        upper_arms (list): Pistons that hold finished rows
        bonders (list): Every bonder glyph
        used_bonders (set): Handles of the bonders some instruction relies on
        conveyor (ProductConveyor): Moves finished products to their glyphs
    """

    frame_rotation = HexRotation.R120

    def __init__(self, parent, writer, arm_area, products):
        super().__init__(parent, writer, arm_area)
        self.width = max(p.width for p in products)
        self.bonders = []
        self.used_bonders = set()
        self.current_arm = self.width - 1
        self.assembled_atoms = []

        self._create_arms()
        self._create_bonders(products)
        self._create_tracks()
        self.conveyor = ProductConveyor(self, writer, products, Vector2(2, 1))

        for product in products:
            self.plans[product.id] = AssemblyPlan(self._create_steps(product))

    def _create_arms(self):
        self.lower_arms = [Arm(self.arena, self, Vector2(-self.width + x + 1, -2), HexRotation.R60, ArmType.Piston, 2)
                           for x in range(self.width)]
        self.upper_arms = [Arm(self.arena, self, Vector2(x + 2, -1), HexRotation.R60, ArmType.Piston, 2)
                           for x in range(self.width)]

    def _create_bonders(self, products):
        has_60_bonds = any(a.bonds[HexRotation.R60] == BondType.SINGLE for p in products for a in p.atoms)
        has_120_bonds = any(a.bonds[HexRotation.R120] == BondType.SINGLE for p in products for a in p.atoms)

        x = 0
        self._add_bonder(x, HexRotation.R0)
        x += 2
        if has_60_bonds:
            x += self.width
            self._add_bonder(x, HexRotation.R60)
        else:
            x += 1
        if has_120_bonds:
            x += self.width
            self._add_bonder(x, HexRotation.R120)

    def _add_bonder(self, x, direction):
        self.bonders.append(Glyph(self.arena, self, Vector2(x, 0), direction, GlyphType.Bonding))

    def _create_tracks(self):
        lower_track_length = self.width * 4 - 1
        Track.straight(self.arena, self, Vector2(-self.width + 1, -2), HexRotation.R0, lower_track_length)
        Track.straight(self.arena, self, Vector2(2, -1), HexRotation.R0, lower_track_length - self.width - 1)

    @staticmethod
    def get_element_order(product):
        return [a.element for a in product.get_atoms_in_input_order()]

    def _create_steps(self, product):
        steps = []
        for row in range(product.height - 1, -1, -1):
            atoms = sorted(product.get_row(row), key=lambda a: a.position.x, reverse=True)
            for index, atom in enumerate(atoms):
                steps.append(partial(self._add_product_atom, product, row, atom,
                                     is_row_start=index == 0, is_row_end=index == len(atoms) - 1))
        return steps

    def _add_product_atom(self, product, row, atom, is_row_start, is_row_end):
        if is_row_start:
            if row == product.height - 1:
                self.assembled_atoms = []
            self.current_arm = self.width - 1

        self.drop_atom()
        self._grab_atom(atom)
        if is_row_end:
            self._finish_row(product, row)
            if row == 0:
                self.writer.adjust_time(-1)
                self.conveyor.move_product_to_output(product)

    def _grab_atom(self, atom):
        self.assembled_atoms.append(atom)
        arm = self.lower_arms[self.current_arm]
        if atom.bonds[HexRotation.R0] == BondType.SINGLE:
            # Already bonded to the atom waiting on the bonder, so the arm holding that one takes both
            self._set_used_bonders(HexRotation.R0)
        else:
            distance = (self.width - 1) - self.current_arm
            self.writer.adjust_time(-distance)
            self.writer.write(arm, [Instruction.MovePositive] * distance)
            self.writer.write(arm, Instruction.Grab)

        self.writer.write(arm, Instruction.MovePositive)
        if atom.bonds[HexRotation.R180] != BondType.SINGLE:
            self.writer.write(arm, [Instruction.MovePositive] * (atom.position.x + 1))
            self.current_arm -= 1

    def _finish_row(self, product, row):
        active_arms = self.lower_arms[self.current_arm + 1:]
        programmer = BondProgrammer(self.width, product, row)
        programmer.generate()
        for _, direction in programmer.used_bonders:
            self._set_used_bonders(direction)

        if row == product.height - 1:
            self._finish_first_row(product, row, active_arms, programmer)
        else:
            self._finish_other_row(product, row, active_arms, programmer)

    def _finish_first_row(self, product, row, active_arms, programmer):
        if row == 0 and not programmer.instructions:
            # A single row with nothing to bond can be dropped straight on the product glyph
            self.writer.write(active_arms, [Instruction.Extend, Instruction.Reset])
            return

        self.writer.write(active_arms, Instruction.Reset)
        self.writer.adjust_time(-2)

        grab_arms = [self.upper_arms[a.position.x] for a in self._get_atoms_to_grab(product, row)]
        self.writer.write(grab_arms, [Instruction.Retract, Instruction.Grab, Instruction.Extend])
        if not programmer.instructions:
            self.writer.write(self.upper_arms, Instruction.Extend)
            return

        self.writer.write(self.upper_arms, programmer.instructions)
        self.writer.write(self.upper_arms, programmer.return_instructions)
        self.writer.write(self.upper_arms, Instruction.Drop if row == 0 else Instruction.Extend)

    def _finish_other_row(self, product, row, active_arms, programmer):
        self.writer.write(active_arms, Instruction.Extend)
        self.writer.write(active_arms + self.upper_arms, programmer.instructions)
        # The lower arms needn't move back before resetting
        self.writer.write(active_arms, Instruction.Reset, update_time=False)

        if row > 0:
            # Put the molecule down and pick it up again by its new bottom row
            self.writer.write(self.upper_arms, [Instruction.Drop, Instruction.Retract])
            grab_arms = [self.upper_arms[a.position.x] for a in self._get_atoms_to_grab(product, row)]
            self.writer.write(grab_arms, Instruction.Grab)
            self.writer.write(self.upper_arms, programmer.return_instructions)
            self.writer.write(self.upper_arms, Instruction.Extend)
        else:
            self.writer.write(self.upper_arms, programmer.return_instructions)
            self.writer.write(self.upper_arms, Instruction.Reset)

    def _get_connected_atoms(self, start_atom):
        """Assembled atoms reachable from start_atom through bonds."""
        by_position = {a.position: a for a in self.assembled_atoms}
        seen = {start_atom.position}
        connected = set()
        to_process = deque([start_atom])
        while to_process:
            atom = to_process.popleft()
            for direction, bond_type in atom.bonds.items():
                if bond_type == BondType.NONE:
                    continue
                other_position = atom.position.offset_in_direction(direction)
                if other_position in by_position and other_position not in seen:
                    seen.add(other_position)
                    connected.add(other_position)
                    to_process.append(by_position[other_position])
        return connected

    def _get_atoms_to_grab(self, product, row):
        """One atom of the row for every separate piece of the partly built molecule."""
        atoms = []
        connected = set()
        for x in range(self.width - 1, -1, -1):
            atom = product.get_atom(Vector2(x, row))
            if atom is not None and atom.position not in connected:
                atoms.append(atom)
                connected.update(self._get_connected_atoms(atom))
        return atoms

    def _set_used_bonders(self, direction):
        bonders = [b for b in self.bonders if b.transform.rotation == direction]
        if not bonders:
            raise SolverError(f"No bonder with direction {direction} in the assembly area.")
        self.used_bonders.update(b.handle for b in bonders)

    def optimize_parts(self):
        for bonder in self.bonders:
            if bonder.handle not in self.used_bonders:
                logger.debug(f"Removing unused bonder at {bonder.transform.position}")
                bonder.remove()


class MoleculeAssemblerFactory:
    """
    Chooses how the products will be assembled, trying the most specific
    assembler first.

    Attributes:
        products (list): The products to build
        assembler_type (type): The MoleculeAssembler subclass to create
        element_orders (dict): Product ID -> elements in the order the assembler needs them
    """

    def __init__(self, products):
        self.products = list(products)
        self.chain_builders = None

        if any(p.has_triplex for p in self.products):
            raise UnsupportedError("Products with triplex bonds can't be assembled.")
        if any(p.has_repeats for p in self.products):
            raise UnsupportedError("Products with repeats can't be assembled.")

        if all(len(p.atoms) == 1 for p in self.products) and len(self.products) <= MonoatomicAssembler.MAX_PRODUCTS:
            self.assembler_type = MonoatomicAssembler
            self.element_orders = {p.id: [p.atoms[0].element] for p in self.products}
        elif (all(ChainAssembler.is_product_compatible(p) for p in self.products)
              and len(self.products) <= ChainAssembler.MAX_PRODUCTS):
            self.assembler_type = ChainAssembler
            self.chain_builders = [ChainBuilder(p) for p in self.products]
            self.element_orders = {b.product.id: b.get_elements_in_build_order() for b in self.chain_builders}
        elif all(Star2Assembler.is_product_compatible(p) for p in self.products):
            self.assembler_type = Star2Assembler
            self.element_orders = {p.id: Star2Assembler.get_element_order(p) for p in self.products}
        else:
            self.assembler_type = UniversalAssembler
            self.element_orders = {p.id: UniversalAssembler.get_element_order(p) for p in self.products}

        logger.debug(f"Using {self.assembler_type.__name__} for {len(self.products)} products")

    def create_assembler(self, parent, writer, arm_area):
        if self.assembler_type is ChainAssembler:
            return ChainAssembler(parent, writer, arm_area, self.chain_builders)
        return self.assembler_type(parent, writer, arm_area, self.products)

    def get_product_element_order(self, product):
        return self.element_orders[product.id]
