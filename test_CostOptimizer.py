import unittest

from CostOptimizer import CostOptimizer
from GameObjects import ObjectArena, GameObject, Arm, Glyph, Track, Solution
from HexGeometry import Vector2, HexRotation
from ProgramWriter import Program
from PuzzleModel import ArmType, GlyphType, Instruction, Puzzle

G = Instruction.Grab
R = Instruction.Drop
C = Instruction.Reset


class TestCostOptimizer(unittest.TestCase):

    def setUp(self):
        self.arena = ObjectArena()
        self.root = GameObject(self.arena, None)
        self.puzzle = Puzzle("test", [], [], [ArmType.Arm1, ArmType.Piston], [GlyphType.Bonding])
        self.program = Program()

    def create_solution(self, *objects):
        return Solution(self.puzzle, objects, self.program)

    def add_arm(self, position, instructions, type=ArmType.Arm1):
        arm = Arm(self.arena, self.root, position, HexRotation.R0, type)
        self.program.instructions[arm] = list(instructions)
        return arm

    def test_arm_that_never_grabs_is_removed(self):
        worker = self.add_arm(Vector2(0, 0), [G, Instruction.RotateClockwise, R])
        idle = self.add_arm(Vector2(4, 0), [Instruction.RotateClockwise, Instruction.Wait])
        solution = self.create_solution(worker, idle)

        CostOptimizer(solution).optimize()

        self.assertEqual(solution.get_objects(Arm), [worker])
        self.assertNotIn(idle, self.program.instructions)
        self.assertIsNone(idle.parent)
        self.assertEqual(solution.metrics.arms, 1)

    def test_arm_without_instructions_is_removed(self):
        worker = self.add_arm(Vector2(0, 0), [G, R])
        spare = Arm(self.arena, self.root, Vector2(3, 0), HexRotation.R0, ArmType.Arm1)
        solution = self.create_solution(worker, spare)

        CostOptimizer(solution).optimize()
        self.assertEqual(solution.get_objects(Arm), [worker])

    def test_piston_without_extension_becomes_arm(self):
        piston = self.add_arm(Vector2(0, 0), [G, Instruction.RotateClockwise, R], type=ArmType.Piston)
        extending = self.add_arm(Vector2(4, 0), [G, Instruction.Extend, R, C], type=ArmType.Piston)
        solution = self.create_solution(piston, extending)

        CostOptimizer(solution).optimize()

        self.assertEqual(piston.type, ArmType.Arm1)
        self.assertEqual(extending.type, ArmType.Piston)
        self.assertEqual(solution.metrics.cost, 20 + 40)

    def test_track_is_trimmed_to_travelled_cells(self):
        track = Track.straight(self.arena, self.root, Vector2(0, 0), HexRotation.R0, 3)
        arm = self.add_arm(Vector2(1, 0), [G, Instruction.MovePositive, R, C])
        glyph = Glyph(self.arena, self.root, Vector2(0, 2), HexRotation.R0, GlyphType.Bonding)
        solution = self.create_solution(track, arm, glyph)

        CostOptimizer(solution).optimize()

        self.assertEqual(track.get_all_path_cells(), [Vector2(1, 0), Vector2(2, 0)])
        self.assertEqual(solution.metrics.cost, 20 + 10 + 2 * 5)

    def test_unused_track_is_removed(self):
        track = Track.straight(self.arena, self.root, Vector2(0, 0), HexRotation.R0, 2)
        arm = self.add_arm(Vector2(0, 0), [G, Instruction.RotateClockwise, R, C])
        solution = self.create_solution(track, arm)

        CostOptimizer(solution).optimize()

        self.assertEqual(solution.get_objects(Track), [])
        self.assertEqual(solution.metrics.cost, 20)

    def test_looping_track_wraps_around(self):
        ring = [Vector2(1, 0), Vector2(0, 1), Vector2(-1, 1), Vector2(-1, 0), Vector2(0, -1), Vector2(1, -1)]
        arm = self.add_arm(Vector2(1, 0), [G, Instruction.MoveNegative, R])
        solution = self.create_solution(arm)

        used = CostOptimizer(solution).get_track_cells_used_by_arm(ring, True, arm)
        self.assertEqual(list(used), [0, 1, 2, 3, 4, 5])

    def test_arm_off_track_uses_nothing(self):
        arm = self.add_arm(Vector2(5, 5), [G, Instruction.MovePositive, R])
        solution = self.create_solution(arm)
        used = CostOptimizer(solution).get_track_cells_used_by_arm([Vector2(0, 0), Vector2(1, 0)], False, arm)
        self.assertEqual(len(used), 0)


if __name__ == "__main__":
    unittest.main()
