#! .venv\Scripts\python.exe

"""
Rotational Collision Detector

Checks whether atoms swept by an arm rotation (or a grabber pivot) pass through
another atom or the base of the arm. Static occupancy is handled by the path
finder; this only covers what happens in between two hex positions.

Hex cells are converted to screen-space vectors so the distance of each object
from the centre of rotation can be compared. A moving atom and a stationary
object are closest when they are collinear with the centre, so a collision
needs the radial gap to be smaller than the sum of radii and the object to lie
inside the sextant swept by the atom.
"""

import numpy as np

from HexGeometry import HexRotation
from SolverConfig import load_config
from logging_config import setup_logger
logger = setup_logger("CollisionDetector")


class RotationalCollisionDetector:
    """
    Sweep collision checks against the atoms registered in the grid.

    Attributes:
        grid_state (GridState): Source of the stationary atoms
        hex_size_x (float): Screen width of a hex step along x
        hex_size_y (float): Screen height of a hex step along y
        atom_radius (float): Radius used for every atom
        arm_base_radius (float): Radius of the rotating arm's base
    """

    def __init__(self, grid_state, config=None):
        self.grid_state = grid_state
        settings = (config or load_config())["collision"]
        self.hex_size_x = float(settings["hex_size_x"])
        self.hex_size_y = float(settings["hex_size_y"])
        self.atom_radius = float(settings["atom_radius"])
        self.arm_base_radius = float(settings["arm_base_radius"])

    def to_rect(self, offsets):
        """Convert an (n, 2) array of hex offsets into screen-space vectors."""
        offsets = np.asarray(offsets, dtype=float).reshape(-1, 2)
        x = (offsets[:, 0] + offsets[:, 1] / 2.0) * self.hex_size_x
        y = offsets[:, 1] * self.hex_size_y
        return np.stack([x, y], axis=1)

    def will_atoms_collide_while_rotating(self, atoms, current_transform, arm_position, delta_rotation):
        """
        Check if held atoms hit anything while the arm rotates about its base.

        Args:
            atoms (AtomCollection): The held atoms
            current_transform (Transform2D): Transform of the atoms before the rotation
            arm_position (Vector2): Base of the arm, also the centre of rotation
            delta_rotation (HexRotation): R60 or R300

        Returns:
            bool: True if any atom collides
        """
        positions = [p for _, p in atoms.get_transformed_atom_positions(current_transform)]
        return self._will_atoms_collide(positions, arm_position, arm_position, delta_rotation)

    def will_atoms_collide_while_pivoting(self, atoms, current_transform, arm_position, grabber_position,
                                          delta_rotation):
        """Check if held atoms hit anything while they pivot about the grabber."""
        positions = [p for _, p in atoms.get_transformed_atom_positions(current_transform)]
        return self._will_atoms_collide(positions, arm_position, grabber_position, delta_rotation)

    def _will_atoms_collide(self, atom_positions, arm_position, rotation_center, delta_rotation):
        if delta_rotation not in (HexRotation.R60, HexRotation.R300):
            raise ValueError(f"Collision checks only support rotations by +/- 60 degrees but were given {delta_rotation}.")

        collidable = self.grid_state.get_all_collidable_atom_positions(atom_positions)
        objects = [(p, self.atom_radius) for p in collidable] + [(arm_position, self.arm_base_radius)]
        object_offsets = self.to_rect([tuple(p - rotation_center) for p, _ in objects])
        object_radii = np.array([r for _, r in objects])
        object_distances = np.linalg.norm(object_offsets, axis=1)

        for atom_position in atom_positions:
            if self._will_atom_collide(atom_position, rotation_center, delta_rotation, objects,
                                       object_offsets, object_radii, object_distances):
                logger.debug(f"Atom at {atom_position} collides rotating {delta_rotation} about {rotation_center}")
                return True
        return False

    def _will_atom_collide(self, atom_position, rotation_center, delta_rotation, objects, object_offsets,
                           object_radii, object_distances):
        atom_offset = self.to_rect([tuple(atom_position - rotation_center)])[0]
        rotated_offset = self.to_rect([tuple((atom_position - rotation_center).rotate_by(delta_rotation))])[0]
        atom_distance = np.linalg.norm(atom_offset)

        not_same_cell = np.array([position != atom_position for position, _ in objects])
        close = np.abs(object_distances - atom_distance) < self.atom_radius + object_radii

        # 2D cross products: negative means the object is counterclockwise of the atom
        cross_start = atom_offset[0] * object_offsets[:, 1] - atom_offset[1] * object_offsets[:, 0]
        cross_end = rotated_offset[0] * object_offsets[:, 1] - rotated_offset[1] * object_offsets[:, 0]
        if delta_rotation == HexRotation.R60:
            in_sextant = (cross_start >= 0) & (cross_end <= 0)
        else:
            in_sextant = (cross_start <= 0) & (cross_end >= 0)

        return bool(np.any(not_same_cell & close & in_sextant))
