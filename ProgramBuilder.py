#! .venv\Scripts\python.exe

"""
Program Builder Module

Merges the fragments written during code generation into one program.

Fragments are added last to first. Each earlier fragment is shifted left of the
program built so far by just enough that, for every arm the two share, the
fragment's last instruction (plus the time a trailing Reset takes to complete)
finishes before the program's first instruction for that arm. Arms that were
removed from the solution are skipped.

The finished program is then compacted: the longest timeline ending in a Wait
gets a PeriodOverride, and each arm's first sequence ending in a Reset is
replaced with Repeat wherever it occurs again straight afterwards.
"""

from PuzzleModel import Instruction
from ProgramWriter import Program
from logging_config import setup_logger
logger = setup_logger("ProgramBuilder")


MAX_EXTENSION = 3


class ProgramBuilder:
    """
    Attributes:
        fragments (list): Program fragments in the order they were written
        program (Program): The merged result
    """

    def __init__(self, fragments):
        self.fragments = list(fragments)
        self.program = Program()

    def build(self):
        logger.info(f"Building program from {len(self.fragments)} fragments")
        for fragment in reversed(self.fragments):
            self.add_fragment(fragment)

        self.add_period_override()
        self.add_repeats()

        logger.debug(f"Final program:\n{self.program}")
        return self.program

    def add_fragment(self, fragment):
        time_shift = self.calculate_time_shift(fragment)
        if time_shift > 0:
            self.program.pad_start(time_shift)

        start_time = -time_shift if time_shift < 0 else 0
        for arm, fragment_instructions in fragment.instructions.items():
            if arm.parent is None:
                logger.debug(f"Ignoring instructions for removed arm {arm.unique_id}")
                continue

            program_instructions = self.program.get_arm_instructions(arm)
            if start_time > len(program_instructions):
                program_instructions.extend([Instruction.NONE] * (start_time - len(program_instructions)))

            for i, instruction in enumerate(fragment_instructions):
                time = start_time + i
                if time < len(program_instructions):
                    program_instructions[time] = instruction
                else:
                    program_instructions.append(instruction)

    def calculate_time_shift(self, fragment):
        max_time_shift = None
        for arm, fragment_instructions in fragment.instructions.items():
            last_index = fragment.get_last_instruction_index(arm)
            if last_index < 0:
                continue
            if fragment_instructions[last_index] == Instruction.Reset:
                last_index += self.calculate_reset_time(fragment, arm, last_index) - 1

            first_index = self.program.get_first_instruction_index(arm)
            if first_index >= 0:
                shift = last_index + 1 - first_index
                max_time_shift = shift if max_time_shift is None else max(max_time_shift, shift)

        return max_time_shift if max_time_shift is not None else 0

    def calculate_reset_time(self, fragment, arm, index):
        """Cycles a Reset at the given index takes, from everything the arm did since its previous Reset."""
        instructions = []
        for prior_fragment in self.fragments:
            if prior_fragment is fragment:
                break
            instructions.extend(prior_fragment.instructions.get(arm, []))
        instructions.extend(fragment.instructions[arm][:index])

        last_reset = max((i for i, instruction in enumerate(instructions) if instruction == Instruction.Reset),
                         default=-1)
        return calculate_reset_time(instructions[last_reset + 1:], arm.extension)

    def add_period_override(self):
        max_length = None
        max_instructions = None
        for instructions in self.program.instructions.values():
            last_index = _find_last_index(instructions)
            if last_index >= 0 and instructions[last_index] == Instruction.Wait:
                length = last_index - _find_first_index(instructions)
                if max_length is None or length > max_length:
                    max_length = length
                    max_instructions = instructions

        if max_instructions is not None:
            max_instructions[_find_last_index(max_instructions)] = Instruction.PeriodOverride

    def add_repeats(self):
        for instructions in self.program.instructions.values():
            start = _find_first_index(instructions)
            if start < 0 or Instruction.Reset not in instructions[start:]:
                continue
            end = instructions.index(Instruction.Reset, start)
            replace_sequence_with_repeat(instructions, instructions[start:end + 1], end + 1)


def calculate_reset_time(instructions, initial_extension):
    """
    Cycles needed to undo a list of instructions.

    Dropping a held molecule, restoring the extension, rotation and track
    position each take a cycle per step; even a no-op Reset takes one cycle.
    """
    is_grabbing = False
    extension = initial_extension
    delta_rotation = 0
    delta_position = 0
    for instruction in instructions:
        if instruction == Instruction.Grab:
            is_grabbing = True
        elif instruction == Instruction.Drop:
            is_grabbing = False
        elif instruction == Instruction.RotateClockwise:
            delta_rotation = (delta_rotation - 1) % 6
        elif instruction == Instruction.RotateCounterclockwise:
            delta_rotation = (delta_rotation + 1) % 6
        elif instruction == Instruction.Extend:
            extension = min(extension + 1, MAX_EXTENSION)
        elif instruction == Instruction.Retract:
            extension = max(extension - 1, 0)
        elif instruction == Instruction.MovePositive:
            delta_position += 1
        elif instruction == Instruction.MoveNegative:
            delta_position -= 1
        elif instruction not in (Instruction.NONE, Instruction.Wait, Instruction.PivotClockwise,
                                 Instruction.PivotCounterclockwise):
            raise ValueError(f"Unexpected instruction: '{instruction}'.")

    reset_time = 1 if is_grabbing else 0
    reset_time += abs(extension - initial_extension)
    reset_time += 3 - abs(delta_rotation - 3)
    reset_time += abs(delta_position)
    return max(reset_time, 1)


def replace_sequence_with_repeat(instructions, sequence, start_index):
    """
    Replace copies of sequence that follow start_index with a single Repeat each.

    Stops at the first non-matching instruction, since Repeat always repeats
    from the start of the program (or the previous Repeat).
    """
    i = start_index
    while i < len(instructions):
        if instructions[i] == Instruction.NONE:
            i += 1
            continue
        if instructions[i:i + len(sequence)] != sequence:
            return
        instructions[i] = Instruction.Repeat
        for j in range(1, len(sequence)):
            instructions[i + j] = Instruction.NONE
        i += len(sequence)


def _find_first_index(instructions):
    for index, instruction in enumerate(instructions):
        if instruction != Instruction.NONE:
            return index
    return -1


def _find_last_index(instructions):
    for index in range(len(instructions) - 1, -1, -1):
        if instructions[index] != Instruction.NONE:
            return index
    return -1
