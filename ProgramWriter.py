#! .venv\Scripts\python.exe

"""
Program Writer Module

Per-arm instruction timelines and the time-cursor used to write them.

Code generation writes into fragments: each fragment is a full multi-arm
timeline for one logical operation, written relative to its own cursor. The
ProgramBuilder later stitches the fragments together.

Main Components:
- Program: Instructions per arm
- InstructionWriter: A time cursor over one Program
- ProgramWriter: The fragments and the writer for the current one
"""

from HexGeometry import HexRotation
from PuzzleModel import Instruction
from logging_config import setup_logger
logger = setup_logger("ProgramWriter")


class Program:
    """
    Instructions for every arm, indexed by cycle.

    Attributes:
        instructions (dict): Arm -> list of Instruction, padded with Instruction.NONE
    """

    def __init__(self):
        self.instructions = {}

    def get_arm_instructions(self, arm):
        return self.instructions.setdefault(arm, [])

    def get_last_instruction_index(self, arm):
        """Index of the last instruction that isn't NONE, or -1 if the arm has none."""
        instructions = self.instructions.get(arm, [])
        for index in range(len(instructions) - 1, -1, -1):
            if instructions[index] != Instruction.NONE:
                return index
        return -1

    def get_first_instruction_index(self, arm):
        instructions = self.instructions.get(arm, [])
        for index, instruction in enumerate(instructions):
            if instruction != Instruction.NONE:
                return index
        return -1

    def pad_start(self, count):
        for arm_instructions in self.instructions.values():
            arm_instructions[0:0] = [Instruction.NONE] * count

    def to_dict(self):
        return {
            arm.unique_id: "".join(i.to_debug_string() for i in instructions)
            for arm, instructions in sorted(self.instructions.items())
        }

    def __str__(self):
        lines = []
        for arm in sorted(self.instructions):
            text = "".join(i.to_debug_string() for i in self.instructions[arm])
            lines.append(f"Arm {arm.unique_id:2}: {text}")
        return "\n".join(lines)


def to_rotation_instructions(delta_rotations):
    """Rotate instructions for a list of single 60 degree steps (R60 or R300)."""
    return [Instruction.RotateCounterclockwise if delta == HexRotation.R60 else Instruction.RotateClockwise
            for delta in delta_rotations]


def _as_list(value):
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class InstructionWriter:
    """
    Writes instructions into a Program at a movable time cursor.

    Attributes:
        program (Program): The timeline being written
        time (int): Cycle the next instruction is written at
    """

    def __init__(self, program):
        self.program = program
        self.time = 0

    def add_instructions(self, arms, instructions, update_time):
        for arm in arms:
            arm_instructions = self.program.get_arm_instructions(arm)
            end = self.time + len(instructions)
            if end > len(arm_instructions):
                arm_instructions.extend([Instruction.NONE] * (end - len(arm_instructions)))
            arm_instructions[self.time:end] = instructions

        if update_time:
            self.time += len(instructions)

    def adjust_time(self, delta_time):
        """Move the cursor; moving before cycle 0 shifts every timeline right instead."""
        self.time += delta_time
        if self.time < 0:
            self.program.pad_start(-self.time)
            self.time = 0


class ProgramWriter:
    """
    Writes instructions into a list of fragments.

    Attributes:
        fragments (list): Every Program fragment in creation order
    """

    def __init__(self):
        self.fragments = []
        self.writer = None
        self.new_fragment()

    @property
    def current_fragment(self):
        return self.fragments[-1]

    def new_fragment(self):
        fragment = Program()
        self.fragments.append(fragment)
        self.writer = InstructionWriter(fragment)
        return fragment

    def write(self, arms, instructions, update_time=True):
        """
        Write instructions for one or more arms at the cursor.

        Args:
            arms: An Arm or a list of arms, all given the same instructions
            instructions: An Instruction or a list of them
            update_time (bool): Advance the cursor past the written instructions
        """
        arms = _as_list(arms)
        instructions = _as_list(instructions)
        if not instructions:
            return
        self.writer.add_instructions(arms, instructions, update_time)

    def write_grab_reset_action(self, arms, instructions, update_time=True):
        """Grab, do the instructions and reset, leaving the cursor on the reset so chained actions overlap."""
        self.write(arms, [Instruction.Grab] + _as_list(instructions) + [Instruction.Reset], update_time)
        if update_time:
            self.adjust_time(-1)

    def adjust_time(self, delta_time):
        self.writer.adjust_time(delta_time)

    def get_last_fragment_for_arm(self, arm):
        """The most recent fragment with any instruction for the arm, or None."""
        for fragment in reversed(self.fragments):
            if fragment.get_last_instruction_index(arm) >= 0:
                return fragment
        return None
