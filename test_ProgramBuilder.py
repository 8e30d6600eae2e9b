import unittest

from GameObjects import ObjectArena, GameObject, Arm
from HexGeometry import Vector2, HexRotation
from ProgramBuilder import ProgramBuilder, calculate_reset_time, replace_sequence_with_repeat
from ProgramWriter import ProgramWriter, to_rotation_instructions
from PuzzleModel import ArmType, Instruction

G = Instruction.Grab
R = Instruction.Drop
C = Instruction.Reset
N = Instruction.NONE


def create_arms(count):
    arena = ObjectArena()
    root = GameObject(arena, None)
    return [Arm(arena, root, Vector2(i * 3, 0), HexRotation.R0, ArmType.Arm1) for i in range(count)]


class TestProgramWriter(unittest.TestCase):

    def test_write_advances_cursor(self):
        arm, = create_arms(1)
        writer = ProgramWriter()
        writer.write(arm, [G, R])
        writer.write(arm, Instruction.RotateClockwise)
        self.assertEqual(writer.current_fragment.instructions[arm], [G, R, Instruction.RotateClockwise])

    def test_write_without_updating_time(self):
        first, second = create_arms(2)
        writer = ProgramWriter()
        writer.write(first, [G, R], update_time=False)
        writer.write(second, [G])
        self.assertEqual(writer.current_fragment.instructions[second], [G])
        self.assertEqual(writer.writer.time, 1)

    def test_negative_time_pads_every_arm(self):
        first, second = create_arms(2)
        writer = ProgramWriter()
        writer.write(first, [G])
        writer.adjust_time(-3)
        writer.write(second, [G])
        self.assertEqual(writer.current_fragment.instructions[first], [N, N, G])
        self.assertEqual(writer.current_fragment.instructions[second], [G])

    def test_grab_reset_action_overlaps_next_action(self):
        arm, = create_arms(1)
        writer = ProgramWriter()
        writer.write_grab_reset_action(arm, Instruction.RotateClockwise)
        writer.write_grab_reset_action(arm, Instruction.RotateClockwise)
        self.assertEqual(writer.current_fragment.instructions[arm],
                         [G, Instruction.RotateClockwise, G, Instruction.RotateClockwise, C])

    def test_last_fragment_for_arm(self):
        first, second = create_arms(2)
        writer = ProgramWriter()
        fragment = writer.current_fragment
        writer.write(first, G)
        writer.new_fragment()
        writer.write(second, G)
        self.assertIs(writer.get_last_fragment_for_arm(first), fragment)
        self.assertIsNone(writer.get_last_fragment_for_arm(create_arms(1)[0]))

    def test_rotation_instructions(self):
        self.assertEqual(to_rotation_instructions([HexRotation.R60, HexRotation.R300]),
                         [Instruction.RotateCounterclockwise, Instruction.RotateClockwise])


class TestProgramBuilder(unittest.TestCase):

    def test_fragments_for_same_arm_are_sequential(self):
        arm, = create_arms(1)
        writer = ProgramWriter()
        writer.write(arm, [G, R])
        writer.new_fragment()
        writer.write(arm, [G, R])

        program = ProgramBuilder(writer.fragments).build()
        self.assertEqual(program.instructions[arm], [G, R, G, R])

    def test_fragments_for_different_arms_overlap(self):
        first, second = create_arms(2)
        writer = ProgramWriter()
        writer.write(first, [G, R])
        writer.new_fragment()
        writer.write(second, [G, R])

        program = ProgramBuilder(writer.fragments).build()
        self.assertEqual(program.get_first_instruction_index(first), 0)
        self.assertEqual(program.get_first_instruction_index(second), 0)

    def test_reset_time_is_waited_for(self):
        arm, = create_arms(1)
        writer = ProgramWriter()
        writer.write(arm, [G, Instruction.RotateClockwise, Instruction.RotateClockwise, R, C])
        writer.new_fragment()
        writer.write(arm, [G])

        program = ProgramBuilder(writer.fragments).build()
        # The reset undoes two rotations, so the next grab waits an extra cycle
        self.assertEqual(program.instructions[arm].index(G, 1), 6)

    def test_removed_arms_are_skipped(self):
        first, second = create_arms(2)
        writer = ProgramWriter()
        writer.write([first, second], [G, R])
        second.remove()

        program = ProgramBuilder(writer.fragments).build()
        self.assertNotIn(second, program.instructions)

    def test_period_override_replaces_final_wait(self):
        arm, = create_arms(1)
        writer = ProgramWriter()
        writer.write(arm, [G, R, Instruction.Wait])
        program = ProgramBuilder(writer.fragments).build()
        self.assertEqual(program.instructions[arm][-1], Instruction.PeriodOverride)

    def test_calculate_reset_time(self):
        self.assertEqual(calculate_reset_time([], 1), 1)
        self.assertEqual(calculate_reset_time([G, Instruction.RotateCounterclockwise] * 2, 1), 3)
        self.assertEqual(calculate_reset_time([Instruction.Extend, Instruction.MovePositive, R], 1), 2)

    def test_replace_sequence_with_repeat(self):
        instructions = [G, C, N, G, C, G, C, G]
        replace_sequence_with_repeat(instructions, [G, C], 2)
        self.assertEqual(instructions, [G, C, N, Instruction.Repeat, N, Instruction.Repeat, N, G])


if __name__ == "__main__":
    unittest.main()
