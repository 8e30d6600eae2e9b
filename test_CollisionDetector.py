import unittest

import numpy as np

from AtomCollection import AtomCollection
from CollisionDetector import RotationalCollisionDetector
from GridState import GridState
from HexGeometry import Vector2, HexRotation, Transform2D
from PuzzleModel import Element
from SolverConfig import DEFAULT_CONFIG


def detector_with_atom(position):
    grid = GridState()
    grid.register_atom(position, Element.Salt)
    return RotationalCollisionDetector(grid, DEFAULT_CONFIG)


class TestRotationalCollisionDetector(unittest.TestCase):

    def setUp(self):
        # A single atom held two cells from the arm's base
        self.atoms = AtomCollection.from_element(Element.Fire, Transform2D(Vector2(2, 0), HexRotation.R0))
        self.arm_position = Vector2(0, 0)

    def collides(self, obstacle, delta_rotation):
        detector = detector_with_atom(obstacle)
        return detector.will_atoms_collide_while_rotating(self.atoms, self.atoms.world_transform,
                                                          self.arm_position, delta_rotation)

    def test_to_rect(self):
        detector = RotationalCollisionDetector(GridState(), DEFAULT_CONFIG)
        np.testing.assert_allclose(detector.to_rect([(1, 0), (0, 1)]), [[82.0, 0.0], [41.0, 71.0]])

    def test_obstacle_inside_counterclockwise_sweep(self):
        self.assertTrue(self.collides(Vector2(1, 1), HexRotation.R60))

    def test_obstacle_on_other_side(self):
        self.assertFalse(self.collides(Vector2(2, -1), HexRotation.R60))
        self.assertTrue(self.collides(Vector2(2, -1), HexRotation.R300))

    def test_distant_obstacle(self):
        self.assertFalse(self.collides(Vector2(5, 5), HexRotation.R60))
        self.assertFalse(self.collides(Vector2(-2, 0), HexRotation.R300))

    def test_held_atoms_are_not_obstacles(self):
        self.assertFalse(self.collides(Vector2(2, 0), HexRotation.R60))

    def test_only_single_steps(self):
        detector = RotationalCollisionDetector(GridState(), DEFAULT_CONFIG)
        with self.assertRaises(ValueError):
            detector.will_atoms_collide_while_rotating(self.atoms, self.atoms.world_transform, self.arm_position,
                                                       HexRotation.R120)


if __name__ == "__main__":
    unittest.main()
