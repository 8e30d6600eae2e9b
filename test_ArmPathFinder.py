import unittest

from ArmPathFinder import ArmPathFinder, ArmMovementOptions
from AtomCollection import AtomCollection
from CollisionDetector import RotationalCollisionDetector
from GameObjects import ObjectArena, GameObject, Glyph
from GridState import GridState
from HexGeometry import Vector2, HexRotation, Transform2D
from PuzzleModel import Atom, Element, GlyphType, Instruction
from SolverConfig import DEFAULT_CONFIG
from SolverErrors import SolverError
from TrackPathBuilder import TrackPathBuilder


def straight_track(length):
    return [Vector2(i, 0) for i in range(length)]


def held_pair():
    """Two bonded atoms held by an arm at (0, 0) R0 with extension 1."""
    atoms = AtomCollection([Atom(Element.Fire, Vector2(0, 0)), Atom(Element.Fire, Vector2(1, 0))],
                           Transform2D(Vector2(1, 0), HexRotation.R0))
    atoms.add_bond(atoms.atoms[0], atoms.atoms[1])
    return atoms


class TestArmPathFinder(unittest.TestCase):

    def setUp(self):
        self.grid = GridState()
        self.detector = RotationalCollisionDetector(self.grid, DEFAULT_CONFIG)

    def create_finder(self, cells, is_looping=False, arm_length=1):
        return ArmPathFinder(arm_length, cells, is_looping, self.grid, self.detector)

    def test_empty_arm_path(self):
        finder = self.create_finder(straight_track(3))
        instructions = finder.find_path(Transform2D(Vector2(0, 0), HexRotation.R0),
                                        Transform2D(Vector2(2, 0), HexRotation.R180))
        self.assertEqual(len(instructions), 5)
        self.assertEqual(instructions.count(Instruction.MovePositive), 2)

    def test_no_instructions_when_already_there(self):
        finder = self.create_finder(straight_track(2))
        transform = Transform2D(Vector2(1, 0), HexRotation.R240)
        self.assertEqual(finder.find_path(transform, transform), [])

    def test_rotation_deferred_past_obstacle(self):
        # Rotating at the start would put the outer atom on this cell
        self.grid.register_atom(Vector2(0, 2), Element.Salt)
        finder = self.create_finder(straight_track(4))

        instructions = finder.find_path(Transform2D(Vector2(0, 0), HexRotation.R0),
                                        Transform2D(Vector2(3, 0), HexRotation.R120), held_pair())

        self.assertEqual(instructions[0], Instruction.MovePositive)
        self.assertEqual(instructions.count(Instruction.MovePositive), 3)
        self.assertEqual(instructions.count(Instruction.RotateCounterclockwise), 2)
        self.assertEqual(len(instructions), 5)

    def replay(self, finder, instructions, start, atoms, options=None):
        """Step through the instructions, checking every position the held atoms pass through."""
        options = options or ArmMovementOptions()
        relative = start.inverse().apply(atoms.world_transform)
        index = finder.track_cells.index(start.position)
        arm = start
        for instruction in instructions:
            if instruction in (Instruction.MovePositive, Instruction.MoveNegative):
                index += 1 if instruction == Instruction.MovePositive else -1
                self.assertTrue(0 <= index < len(finder.track_cells), msg=f"{instruction} leaves the track")
                next_arm = Transform2D(finder.track_cells[index], arm.rotation)
            else:
                delta = HexRotation.R60 if instruction == Instruction.RotateCounterclockwise else HexRotation.R300
                self.assertFalse(self.detector.will_atoms_collide_while_rotating(
                    atoms, arm.apply(relative), arm.position, delta), msg=f"{instruction} at {arm} sweeps into an atom")
                next_arm = Transform2D(arm.position, arm.rotation + delta)

            self.assertTrue(finder.is_valid_atoms_transform(atoms, next_arm.apply(relative), options),
                            msg=f"{instruction} puts the atoms on an occupied cell at {next_arm}")
            arm = next_arm
        return arm

    def test_every_step_of_a_path_is_clear(self):
        self.grid.register_atom(Vector2(0, 2), Element.Salt)
        self.grid.register_atom(Vector2(1, -1), Element.Salt)
        finder = self.create_finder(straight_track(5))
        start = Transform2D(Vector2(0, 0), HexRotation.R0)

        for target in (Transform2D(Vector2(3, 0), HexRotation.R120), Transform2D(Vector2(3, 0), HexRotation.R240),
                       Transform2D(Vector2(4, 0), HexRotation.R180)):
            instructions = finder.find_path(start, target, held_pair())
            self.assertEqual(self.replay(finder, instructions, start, held_pair()), target)

    def test_replay_rejects_a_blocked_rotation(self):
        self.grid.register_atom(Vector2(0, 2), Element.Salt)
        finder = self.create_finder(straight_track(4))
        start = Transform2D(Vector2(0, 0), HexRotation.R0)
        with self.assertRaises(AssertionError):
            self.replay(finder, [Instruction.RotateCounterclockwise, Instruction.RotateCounterclockwise],
                        start, held_pair())

    def test_unreachable_target(self):
        self.grid.register_atom(Vector2(2, 1), Element.Salt)
        finder = self.create_finder(straight_track(4))
        with self.assertRaises(SolverError):
            finder.find_path(Transform2D(Vector2(0, 0), HexRotation.R0),
                             Transform2D(Vector2(3, 0), HexRotation.R120), held_pair())

    def test_target_off_track(self):
        finder = self.create_finder(straight_track(2))
        with self.assertRaises(SolverError):
            finder.find_path(Transform2D(Vector2(0, 0), HexRotation.R0), Transform2D(Vector2(5, 0), HexRotation.R0))

    def test_looping_track_wraps(self):
        ring = [Vector2(1, 0), Vector2(0, 1), Vector2(-1, 1), Vector2(-1, 0), Vector2(0, -1), Vector2(1, -1)]
        finder = self.create_finder(ring, is_looping=True)
        instructions = finder.find_path(Transform2D(ring[0], HexRotation.R0), Transform2D(ring[5], HexRotation.R0))
        self.assertEqual(instructions, [Instruction.MoveNegative])

    def test_molecule_path(self):
        finder = self.create_finder(straight_track(3))
        atoms = held_pair()
        instructions, arm_transform = finder.find_molecule_path(
            Transform2D(Vector2(0, 0), HexRotation.R0), Transform2D(Vector2(3, 0), HexRotation.R0), atoms)
        self.assertEqual(instructions, [Instruction.MovePositive, Instruction.MovePositive])
        self.assertEqual(arm_transform, Transform2D(Vector2(2, 0), HexRotation.R0))

    def test_bonding_needs_permission(self):
        arena = ObjectArena()
        root = GameObject(arena, None)
        bonder = Glyph(arena, root, Vector2(3, 0), HexRotation.R0, GlyphType.Bonding)
        self.grid.register_glyph(bonder)
        self.grid.register_atom(Vector2(4, 0), Element.Water)

        finder = self.create_finder(straight_track(3))
        single = AtomCollection.from_element(Element.Fire, Transform2D(Vector2(3, 0), HexRotation.R0))
        self.assertFalse(finder.is_valid_atoms_transform(single, single.world_transform, ArmMovementOptions()))
        self.assertTrue(finder.is_valid_atoms_transform(single, single.world_transform,
                                                        ArmMovementOptions(allow_external_bonds=True)))

    def test_unbonding_needs_permission(self):
        arena = ObjectArena()
        root = GameObject(arena, None)
        unbonder = Glyph(arena, root, Vector2(1, 0), HexRotation.R0, GlyphType.Unbonding)
        self.grid.register_glyph(unbonder)

        finder = self.create_finder(straight_track(2))
        atoms = held_pair()
        self.assertFalse(finder.is_valid_atoms_transform(atoms, atoms.world_transform, ArmMovementOptions()))
        self.assertTrue(finder.is_valid_atoms_transform(atoms, atoms.world_transform,
                                                        ArmMovementOptions(allow_unbonding=True)))


class TestTrackPathBuilder(unittest.TestCase):

    def test_prefers_closed_loop(self):
        ring = [Vector2(1, 0), Vector2(1, -1), Vector2(0, 1), Vector2(-1, 1), Vector2(-1, 0), Vector2(0, -1)]
        path = TrackPathBuilder(ring).find_path()
        self.assertEqual(set(path), set(ring))
        self.assertEqual(path[0].distance_between(path[-1]), 1)

    def test_duplicate_points_are_merged(self):
        path = TrackPathBuilder([Vector2(0, 0), Vector2(1, 0), Vector2(0, 0)]).find_path()
        self.assertEqual(len(path), 2)

    def test_disconnected_points(self):
        with self.assertRaises(SolverError):
            TrackPathBuilder([Vector2(0, 0), Vector2(5, 5)]).find_path()

    def test_segments(self):
        segments = TrackPathBuilder.create_segments([Vector2(0, 0), Vector2(1, 0), Vector2(1, 1)])
        self.assertEqual([s.direction for s in segments], [HexRotation.R0, HexRotation.R60])
        self.assertEqual([s.length for s in segments], [1, 1])


if __name__ == "__main__":
    unittest.main()
