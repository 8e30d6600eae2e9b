#! .venv\Scripts\python.exe

"""
Molecule Inputs Module

Atom generators that take atoms off reagents.

Main Components:
- MoleculeInput: One reagent glyph and the grab that picks its molecule up
- MonoatomicDisassembler: Up to four single-atom reagents
- LinearDisassembler: One straight-line reagent, split atom by atom on an unbonder
- MoleculeDisassemblerFactory: Chooses the disassembler and the order reagent atoms arrive in
"""

from ArmPathFinder import ArmMovementOptions
from AtomCollection import AtomCollection
from AtomGenerators import AtomGenerator
from GameObjects import GameObject, Glyph, Reagent
from HexGeometry import Vector2, HexRotation, Transform2D
from PuzzleModel import GlyphType, MoleculeShape
from SolverErrors import SolverError, UnsupportedError
from logging_config import setup_logger
logger = setup_logger("MoleculeInputs")


class MoleculeInput(GameObject):
    """
    A reagent glyph placed so that its molecule's (0, 0) atom is at this object's origin.

    Attributes:
        arm_area (ArmArea): The main arm that grabs the molecule
        molecule (Molecule): The reagent
        reagent (Reagent): The placed reagent glyph
    """

    INPUT_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)

    def __init__(self, parent, arm_area, writer, transform, molecule):
        super().__init__(parent.arena, parent, transform)
        self.arm_area = arm_area
        self.writer = writer
        self.molecule = molecule
        self.reagent = Reagent(self.arena, self, Vector2(0, 0), HexRotation.R0, molecule)

    @property
    def required_access_points(self):
        return [self.INPUT_TRANSFORM]

    def grab_molecule(self):
        """Move to the reagent and grab a fresh copy of its molecule."""
        self.writer.new_fragment()
        self.arm_area.move_grabber_to(self.INPUT_TRANSFORM, relative_to=self)
        molecule = AtomCollection.from_molecule(self.molecule, self.reagent.get_world_transform())
        # The reagent respawns, so its cells stay occupied
        self.arm_area.grab_atoms(molecule, remove_from_grid=False)
        return molecule


class MonoatomicDisassembler(AtomGenerator):
    """
    Grabs atoms from up to four single-atom reagents.

    Attributes:
        inputs (dict): Reagent ID -> MoleculeInput
        access_point_order (list): Reagent IDs in the order their access points are listed
    """

    MAX_REAGENTS = 4

    def __init__(self, arm_area, writer, reagents):
        super().__init__(arm_area, writer)
        if any(len(r.atoms) > 1 for r in reagents):
            raise SolverError("MonoatomicDisassembler can't handle reagents with multiple atoms.")
        if len(reagents) > self.MAX_REAGENTS:
            raise SolverError(f"MonoatomicDisassembler can't handle more than {self.MAX_REAGENTS} distinct reagents.")

        self.inputs = {}
        self.access_point_order = []
        self._create_inputs(list(reagents))

    def _create_inputs(self, reagents):
        if len(reagents) == 1:
            self._add_input(reagents[0], Transform2D())
            return

        position = Vector2(self.arm_area.arm_length, 0).rotate_by(HexRotation.R240)
        transforms = [
            Transform2D(position + Vector2(1, -1), HexRotation.R300),
            Transform2D(position, HexRotation.R300),
            Transform2D(Vector2(-1, 0), HexRotation.R0),
            Transform2D(Vector2(2, -1), HexRotation.R0),
        ]
        for index, reagent in enumerate(reagents):
            # The fourth input sits before the first on the track
            self._add_input(reagent, transforms[index], add_access_point_at_start=index == 3)

    def _add_input(self, reagent, transform, add_access_point_at_start=False):
        self.inputs[reagent.id] = MoleculeInput(self, self.arm_area, self.writer, transform, reagent)
        if add_access_point_at_start:
            self.access_point_order.insert(0, reagent.id)
        else:
            self.access_point_order.append(reagent.id)

    @property
    def required_access_points(self):
        points = []
        for reagent_id in self.access_point_order:
            element_input = self.inputs[reagent_id]
            points.extend(element_input.transform.apply(p) for p in element_input.required_access_points)
        return points

    def generate(self, element, id):
        self.inputs[id].grab_molecule()


class LinearDisassembler(AtomGenerator):
    """
    Takes a straight-line reagent apart one atom at a time.

    The molecule is laid across a glyph of unbonding so that its first atom is
    on the inner cell; the main arm keeps that atom and leaves the rest of the
    molecule behind on the outer side, to be picked up by the next request.

    Attributes:
        input (MoleculeInput): The reagent
        pending_atoms (AtomCollection): What was left on the grid by the last split, None if nothing was
    """

    MAX_REAGENTS = 1

    INNER_UNBONDER_TRANSFORM = Transform2D(Vector2(0, 0), HexRotation.R0)
    OUTER_UNBONDER_TRANSFORM = Transform2D(Vector2(1, 0), HexRotation.R0)
    REAGENT_TRANSFORM = Transform2D(Vector2(1, -1), HexRotation.R0)

    def __init__(self, arm_area, writer, reagents):
        super().__init__(arm_area, writer)
        if any(r.height > 1 for r in reagents):
            raise SolverError("LinearDisassembler can't handle non-linear reagents.")
        if len(reagents) > self.MAX_REAGENTS:
            raise SolverError(f"LinearDisassembler can't handle more than {self.MAX_REAGENTS} distinct reagents.")

        Glyph(self.arena, self, self.INNER_UNBONDER_TRANSFORM.position, HexRotation.R0, GlyphType.Unbonding)
        self.input = MoleculeInput(self, arm_area, writer, self.REAGENT_TRANSFORM, reagents[0])
        self.pending_atoms = None

    @property
    def required_access_points(self):
        return [self.REAGENT_TRANSFORM, self.INNER_UNBONDER_TRANSFORM, self.OUTER_UNBONDER_TRANSFORM]

    def generate(self, element, id):
        world = self.get_world_transform()
        outer_position = world.apply(self.OUTER_UNBONDER_TRANSFORM.position)

        if self.pending_atoms is None:
            molecule = self.input.grab_molecule()
            atom_to_unbond = molecule.get_atom(Vector2(0, 0))
            atom_to_unbond_from = molecule.get_atom(Vector2(1, 0))
        elif len(self.pending_atoms) == 1:
            # A fresh collection for the last atom so it is at (0, 0) and has no bonds
            last_atom = AtomCollection.from_element(self.pending_atoms.atoms[0].element,
                                                    Transform2D(outer_position, HexRotation.R0))
            self.arm_area.move_grabber_to(self.OUTER_UNBONDER_TRANSFORM, relative_to=self)
            self.arm_area.grab_atoms(last_atom)
            self.pending_atoms = None
            return
        else:
            molecule = self.pending_atoms
            self.arm_area.move_grabber_to(self.OUTER_UNBONDER_TRANSFORM, relative_to=self)
            self.arm_area.grab_atoms(molecule)
            atom_to_unbond = molecule.get_atom_at_world_position(outer_position)
            atom_to_unbond_from = molecule.get_atom_at_world_position(outer_position + Vector2(1, 0))

        if atom_to_unbond is None or atom_to_unbond_from is None:
            raise SolverError("LinearDisassembler expected two atoms in a row to unbond.")

        target_position = self.INNER_UNBONDER_TRANSFORM.position - atom_to_unbond.position
        self.arm_area.move_atoms_to(Transform2D(target_position, HexRotation.R0), relative_to=self,
                                    options=ArmMovementOptions(allow_unbonding=True))
        molecule.remove_bond(atom_to_unbond, atom_to_unbond_from)
        self.pending_atoms = self.controller.remove_all_except_grabbed_atom()
        logger.debug(f"Split off {atom_to_unbond}, {len(self.pending_atoms)} atoms left on the unbonder")


class MoleculeDisassemblerFactory:
    """
    Chooses how the reagents will be taken apart.

    Attributes:
        reagents (list): The reagents that will be used
        disassembler_type (type): The AtomGenerator subclass to create
    """

    def __init__(self, reagents):
        self.reagents = list(reagents)
        if all(len(r.atoms) == 1 for r in self.reagents):
            if len(self.reagents) > MonoatomicDisassembler.MAX_REAGENTS:
                raise UnsupportedError(
                    f"Can't handle more than {MonoatomicDisassembler.MAX_REAGENTS} monoatomic reagents.")
            self.disassembler_type = MonoatomicDisassembler
        elif len(self.reagents) == 1 and self.reagents[0].shape == MoleculeShape.Linear:
            self.disassembler_type = LinearDisassembler
        else:
            raise UnsupportedError("Can only handle single-atom reagents or a single linear reagent.")
        logger.debug(f"Using {self.disassembler_type.__name__} for {len(self.reagents)} reagents")

    def create_disassembler(self, arm_area, writer):
        return self.disassembler_type(arm_area, writer, self.reagents)

    def get_reagent_element_order(self, reagent):
        """Elements of a reagent in the order its atoms are handed out."""
        if self.disassembler_type is LinearDisassembler:
            return [a.element for a in sorted(reagent.atoms, key=lambda a: a.position.x)]
        return [a.element for a in reagent.get_atoms_in_input_order()]
