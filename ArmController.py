#! .venv\Scripts\python.exe

"""
Arm Controller Module

Drives the main arm: plans its movement, writes the instructions and keeps the
held atoms and the grid in step with what the arm does.

Main Components:
- ArmController: Grab, drop, move, pivot, bond and reset operations
- ArmArea: The root object owning the main arm, its track, the grid and the controller
"""

from ArmPathFinder import ArmPathFinder, GLYPH_BOND_PAIRS
from AtomCollection import AtomCollection
from CollisionDetector import RotationalCollisionDetector
from GameObjects import GameObject, Arm, Track
from GridState import GridState
from HexGeometry import Vector2, HexRotation, Transform2D
from PuzzleModel import ArmType, GlyphType, Instruction
from SolverConfig import load_config
from SolverErrors import SolverError
from TrackPathBuilder import TrackPathBuilder
from logging_config import setup_logger
logger = setup_logger("ArmController")


class ArmController:
    """
    Operations on the main arm.

    Attributes:
        arm (Arm): The arm being controlled
        writer (ProgramWriter): Where instructions are written
        grid_state (GridState): Occupancy updated as atoms are grabbed and dropped
        path_finder (ArmPathFinder): Plans movement along the arm's track
        arm_transform (Transform2D): Current world transform of the arm's base
        grabbed_atoms (AtomCollection): Atoms currently held, None if the grabber is empty
    """

    def __init__(self, arm, track, grid_state, writer, collision_detector=None):
        self.arm = arm
        self.writer = writer
        self.grid_state = grid_state
        self.collision_detector = collision_detector or RotationalCollisionDetector(grid_state)
        self.path_finder = ArmPathFinder(arm.extension, track.get_all_path_cells(), track.is_looping,
                                         grid_state, self.collision_detector)
        self.arm_transform = arm.get_world_transform()
        self.grabbed_atoms = None

    @property
    def arm_length(self):
        return self.arm.extension

    def get_grabber_position(self):
        return self.arm_transform.apply(Vector2(self.arm_length, 0))

    def grabber_transform_to_arm_transform(self, grabber_transform):
        return grabber_transform.apply(Transform2D(Vector2(-self.arm_length, 0), HexRotation.R0))

    def _require_grabbed_atoms(self, action):
        if self.grabbed_atoms is None:
            raise SolverError(f"Cannot {action} when not holding any atoms.")

    def move_grabber_to(self, transform, relative_to=None, arm_rotation_offset=None, options=None):
        """
        Move the arm so its grabber is at a transform.

        Args:
            transform (Transform2D): Target grabber position and arm direction
            relative_to (GameObject): Object whose local coordinates transform is in; None for world coordinates
            arm_rotation_offset (HexRotation): Extra rotation of the arm about its base
            options (ArmMovementOptions): Interactions the held atoms may cause on the way
        """
        if relative_to is not None:
            transform = relative_to.get_world_transform().apply(transform)
        target = self.grabber_transform_to_arm_transform(transform)
        if arm_rotation_offset is not None:
            target = target.with_rotation(target.rotation + arm_rotation_offset)

        instructions = self.path_finder.find_path(self.arm_transform, target, self.grabbed_atoms, options)
        self.writer.write(self.arm, instructions)

        if self.grabbed_atoms is not None:
            relative = target.apply(self.arm_transform.inverse())
            self.grabbed_atoms.world_transform = relative.apply(self.grabbed_atoms.world_transform)
        self.arm_transform = target

    def move_atoms_to(self, transform, relative_to=None, options=None):
        """Move the arm so the held atoms end up at a transform."""
        self._require_grabbed_atoms("move atoms")
        if relative_to is not None:
            transform = relative_to.get_world_transform().apply(transform)

        instructions, final_arm_transform = self.path_finder.find_molecule_path(
            self.arm_transform, transform, self.grabbed_atoms, options)
        self.writer.write(self.arm, instructions)
        self.grabbed_atoms.world_transform = transform
        self.arm_transform = final_arm_transform

    def grab_atoms(self, atoms, remove_from_grid=True):
        if self.grabbed_atoms is not None:
            raise SolverError("Cannot grab atoms when already holding some.")

        grabber_position = self.get_grabber_position()
        if not any(position == grabber_position for _, position in atoms.get_world_atom_positions()):
            raise SolverError(f"Cannot grab atoms as no atom is located at the current grabber position {grabber_position}.")

        if remove_from_grid:
            self.grid_state.unregister_atoms(atoms)
        self.grabbed_atoms = atoms
        self.writer.write(self.arm, Instruction.Grab)

    def drop_atoms(self, add_to_grid=True):
        self._require_grabbed_atoms("drop atoms")
        if add_to_grid:
            self.grid_state.register_atoms(self.grabbed_atoms)
        atoms = self.grabbed_atoms
        self.grabbed_atoms = None
        self.writer.write(self.arm, Instruction.Drop)
        return atoms

    def bond_atoms_to(self, collection):
        """
        Join the held atoms to a collection lying on the grid, bonding every pair
        of atoms that sit on the two cells of a bonder. The arm then holds the
        combined collection.
        """
        self._require_grabbed_atoms("bond atoms")
        self.grid_state.unregister_atoms(collection)
        collection.merge(self.grabbed_atoms)
        self.grabbed_atoms = collection
        self._add_bonder_bonds(collection)

    def _add_bonder_bonds(self, collection):
        by_position = {position: atom for atom, position in collection.get_world_atom_positions()}
        bonders = {}
        for position in by_position:
            glyph = self.grid_state.get_glyph_object(position)
            if glyph is not None and glyph.type in (GlyphType.Bonding, GlyphType.MultiBonding):
                bonders[glyph.handle] = glyph

        for glyph in bonders.values():
            footprint = glyph.get_footprint()
            for first, second in GLYPH_BOND_PAIRS[glyph.type]:
                atom1 = by_position.get(footprint[first])
                atom2 = by_position.get(footprint[second])
                if atom1 is not None and atom2 is not None and not collection.are_bonded(atom1, atom2):
                    collection.add_bond(atom1, atom2)
                    logger.debug(f"Bonded {atom1} to {atom2} on bonder at {footprint[0]}")

    def remove_all_except_grabbed_atom(self):
        """
        Leave every held atom except the one in the grabber on the grid.

        Returns:
            AtomCollection: The atoms left behind
        """
        self._require_grabbed_atoms("unbond atoms")
        grabber_position = self.get_grabber_position()
        grabbed_atom = self.grabbed_atoms.get_atom_at_world_position(grabber_position)
        if grabbed_atom is None:
            raise SolverError(f"No held atom is at the grabber position {grabber_position}.")

        others = [atom for atom in self.grabbed_atoms.atoms if atom is not grabbed_atom]
        dropped_atoms = self.grabbed_atoms.split_off(others)
        self.grid_state.register_atoms(dropped_atoms)
        self.grabbed_atoms = AtomCollection.from_element(grabbed_atom.element, Transform2D(grabber_position, HexRotation.R0))
        return dropped_atoms

    def pivot_by(self, delta_rotation, clockwise_if_180=False):
        """Pivot the held atoms about the grabber, one 60 degree pivot at a time."""
        if delta_rotation == HexRotation.R0:
            return
        self._require_grabbed_atoms("pivot")

        grabber_position = self.get_grabber_position()
        for step in HexRotation.R0.calculate_delta_rotations_to(delta_rotation, clockwise_if_180):
            if step == HexRotation.R60:
                self.writer.write(self.arm, Instruction.PivotCounterclockwise)
            else:
                self.writer.write(self.arm, Instruction.PivotClockwise)
            self.grabbed_atoms.world_transform = self.grabbed_atoms.world_transform.rotate_about(grabber_position, step)

    def try_pivot_by(self, delta_rotation, clockwise_if_180=False):
        """
        Pivot the held atoms only if no step of the pivot collides.

        Returns:
            bool: True if the pivot was written, False if nothing was written
        """
        if delta_rotation == HexRotation.R0:
            return True
        self._require_grabbed_atoms("pivot")

        current_transform = self.grabbed_atoms.world_transform
        grabber_position = self.get_grabber_position()
        for step in HexRotation.R0.calculate_delta_rotations_to(delta_rotation, clockwise_if_180):
            if self.collision_detector.will_atoms_collide_while_pivoting(
                    self.grabbed_atoms, current_transform, self.arm_transform.position, grabber_position, step):
                return False
            current_transform = current_transform.rotate_about(grabber_position, step)

        self.pivot_by(delta_rotation, clockwise_if_180)
        return True

    def reset_arm(self):
        """Reset the arm to its starting transform, leaving anything it holds on the grid."""
        self.writer.write(self.arm, Instruction.Reset)
        self.arm_transform = self.arm.get_world_transform()
        if self.grabbed_atoms is not None:
            self.grid_state.register_atoms(self.grabbed_atoms)
            self.grabbed_atoms = None


class ArmArea(GameObject):
    """
    The root of a solution's objects: the main arm with its track, the grid and
    the controller that moves the arm. Atom generators are its children.

    Attributes:
        writer (ProgramWriter): Shared by every atom generator
        grid_state (GridState): Shared occupancy
        main_arm (Arm): The arm every atom generator uses
        track (Track): Created by create_components
        controller (ArmController): Created by create_components
    """

    def __init__(self, arena, writer, arm_length=None, config=None):
        super().__init__(arena, None)
        config = config or load_config()
        self.writer = writer
        self.grid_state = GridState()
        self.collision_detector = RotationalCollisionDetector(self.grid_state, config)
        self.main_arm = Arm(arena, self, Vector2(0, 0), HexRotation.R0, ArmType.Arm1,
                            arm_length or config["arm"]["length"])
        self.track = None
        self.controller = None

    @property
    def arm_length(self):
        return self.main_arm.extension

    def create_components(self, access_points):
        """
        Build the main arm's track through every access point and place the arm.

        Args:
            access_points (list): Grabber transforms, in world coordinates, the arm must reach
        """
        if not access_points:
            raise SolverError("No access points to build the main arm track through.")

        offset = Transform2D(Vector2(-self.arm_length, 0), HexRotation.R0)
        arm_transforms = [point.apply(offset) for point in access_points]
        path = TrackPathBuilder([t.position for t in arm_transforms]).find_path()
        self.track = Track(self.arena, self, path[0], TrackPathBuilder.create_segments(path))

        start = next(t for t in arm_transforms if t.position == path[0])
        self.main_arm.transform = start
        self.controller = ArmController(self.main_arm, self.track, self.grid_state, self.writer,
                                        self.collision_detector)
        logger.info(f"Main arm track has {len(path)} cells, looping={self.track.is_looping}")

    # Pass-throughs so atom generators can treat the area like the controller

    def move_grabber_to(self, transform, relative_to=None, arm_rotation_offset=None, options=None):
        self.controller.move_grabber_to(transform, relative_to, arm_rotation_offset, options)

    def move_atoms_to(self, transform, relative_to=None, options=None):
        self.controller.move_atoms_to(transform, relative_to, options)

    def grab_atoms(self, atoms, remove_from_grid=True):
        self.controller.grab_atoms(atoms, remove_from_grid)

    def drop_atoms(self, add_to_grid=True):
        return self.controller.drop_atoms(add_to_grid)

    def reset_arm(self):
        self.controller.reset_arm()

    @property
    def grabbed_atoms(self):
        return self.controller.grabbed_atoms

