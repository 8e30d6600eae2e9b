#! .venv\Scripts\python.exe

"""
Cost Optimizer Module

Deletes hardware a finished solution doesn't need. None of the changes alter
what the program does: arms that never grab are removed with their
instructions, pistons that never change length become plain arms and tracks are
cut down to the cells an arm actually travels over.
"""

from GameObjects import Arm, Track
from PuzzleModel import ArmType, Instruction
from logging_config import setup_logger
logger = setup_logger("CostOptimizer")


class CostOptimizer:
    """
    Attributes:
        solution (Solution): The solution to optimise in place
    """

    def __init__(self, solution):
        self.solution = solution

    def optimize(self):
        cost_before = self.solution.update_metrics().cost

        self.remove_unused_arms()
        self.convert_pistons_to_arms()
        self.remove_unused_tracks()

        cost_after = self.solution.update_metrics().cost
        logger.info(f"Optimised solution cost from {cost_before} to {cost_after}")
        return self.solution

    def remove_unused_arms(self):
        program = self.solution.program
        unused = [arm for arm in self.solution.get_objects(Arm) if arm not in program.instructions]
        self._remove_arms(unused)

        never_grab = [arm for arm, instructions in program.instructions.items() if Instruction.Grab not in instructions]
        self._remove_arms(never_grab)

    def _remove_arms(self, arms):
        for arm in list(arms):
            # The wheel acts on atoms without grabbing them
            if arm.type == ArmType.VanBerlo:
                continue
            logger.debug(f"Removing unused arm {arm.unique_id}")
            self.solution.program.instructions.pop(arm, None)
            if arm in self.solution.objects:
                self.solution.remove_object(arm)

    def convert_pistons_to_arms(self):
        for arm, instructions in self.solution.program.instructions.items():
            if arm.type != ArmType.Piston:
                continue
            if Instruction.Extend in instructions or Instruction.Retract in instructions:
                continue
            logger.debug(f"Converting piston {arm.unique_id} to an arm")
            arm.type = ArmType.Arm1

    def remove_unused_tracks(self):
        for track in self.solution.get_objects(Track):
            cells = track.get_all_path_cells()
            used_cells = set()
            for arm in self.solution.get_objects(Arm):
                used_cells.update(self.get_track_cells_used_by_arm(cells, track.is_looping, arm))

            if not used_cells:
                logger.debug(f"Removing unused track at {track.get_world_transform().position}")
                self.solution.remove_object(track)
            else:
                track.trim_path(min(used_cells), max(used_cells))

    def get_track_cells_used_by_arm(self, track_cells, is_looping, arm):
        """
        Replay an arm's track movement and return the indexes it visits.

        Returns an empty range if the arm isn't on the track or never moves along
        it. Repeat is ignored since every repeated sequence ends with a Reset.
        """
        position = arm.get_world_transform().position
        if position not in track_cells:
            return range(0)

        start_index = track_cells.index(position)
        min_index = max_index = index = start_index
        for instruction in self.solution.program.instructions.get(arm, []):
            if instruction == Instruction.MovePositive:
                if index < len(track_cells) - 1:
                    index += 1
                elif is_looping:
                    index = 0
            elif instruction == Instruction.MoveNegative:
                if index > 0:
                    index -= 1
                elif is_looping:
                    index = len(track_cells) - 1
            elif instruction == Instruction.Reset:
                index = start_index
            min_index = min(min_index, index)
            max_index = max(max_index, index)

        if max_index > min_index:
            return range(min_index, max_index + 1)
        return range(0)
