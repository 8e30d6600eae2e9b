#! .venv\Scripts\python.exe

"""
Arm Path Finder Module

Finds the cheapest way to move an arm along its track and rotate it between two
transforms without the atoms it is holding hitting anything.

The search state is (track index, rotation). Every track step and every 60
degree rotation costs one instruction, so a uniform cost search with the
|index delta| + rotation distance heuristic returns a minimum-instruction path.

Main Components:
- ArmMovementOptions: Interactions a move is allowed to cause
- ArmPathFinder: The search itself and its conversion to instructions
"""

import heapq

from HexGeometry import HexRotation, Transform2D
from PuzzleModel import CARDINALS, GlyphType, Instruction
from SolverErrors import SolverError
from logging_config import setup_logger
logger = setup_logger("ArmPathFinder")


# Pairs of footprint indexes that a glyph bonds (or unbonds) together
GLYPH_BOND_PAIRS = {
    GlyphType.Bonding: [(0, 1)],
    GlyphType.MultiBonding: [(0, 1), (0, 2), (0, 3)],
    GlyphType.Unbonding: [(0, 1)],
}


class ArmMovementOptions:
    """
    Interactions a held molecule may cause while it moves.

    Attributes:
        allow_calcification (bool): Cardinal atoms may pass over a calcification glyph
        allow_external_bonds (bool): A held atom may be bonded to an atom lying on the grid
        allow_internal_bonds (bool): Two held atoms may be bonded together
        allow_unbonding (bool): Two held atoms may be unbonded
    """

    def __init__(self, allow_calcification=False, allow_external_bonds=False, allow_internal_bonds=False,
                 allow_unbonding=False):
        self.allow_calcification = allow_calcification
        self.allow_external_bonds = allow_external_bonds
        self.allow_internal_bonds = allow_internal_bonds
        self.allow_unbonding = allow_unbonding

    def __repr__(self):
        flags = [name for name, value in vars(self).items() if value]
        return f"ArmMovementOptions({', '.join(flags)})"


class ArmPathFinder:
    """
    Plans arm movement along a track.

    Attributes:
        arm_length (int): Distance from the arm's base to its grabber
        track_cells (list): World cells of the track in order
        is_looping (bool): Whether the last cell is joined to the first
        grid_state (GridState): Occupancy used for static collision checks
        collision_detector (RotationalCollisionDetector): Sweep checks for rotations
    """

    def __init__(self, arm_length, track_cells, is_looping, grid_state, collision_detector):
        self.arm_length = arm_length
        self.track_cells = list(track_cells)
        self.is_looping = is_looping
        self.grid_state = grid_state
        self.collision_detector = collision_detector
        self.track_indexes = {cell: index for index, cell in enumerate(self.track_cells)}

    def is_on_track(self, position):
        return position in self.track_indexes

    def _get_track_index(self, transform, name):
        index = self.track_indexes.get(transform.position)
        if index is None:
            raise SolverError(f"{name} position {transform.position} is not on the track.")
        return index

    def find_path(self, start_transform, end_transform, grabbed_atoms=None, options=None):
        """
        Find the instructions that take the arm from one transform to another.

        Args:
            start_transform (Transform2D): Current arm base position and rotation
            end_transform (Transform2D): Target arm base position and rotation
            grabbed_atoms (AtomCollection): Atoms held by the arm, None if it is empty
            options (ArmMovementOptions): Interactions the held atoms may cause

        Returns:
            list: Move and rotate instructions, empty if the arm is already there
        """
        options = options or ArmMovementOptions()
        start = (self._get_track_index(start_transform, "Starting"), start_transform.rotation.value)
        end = (self._get_track_index(end_transform, "Ending"), end_transform.rotation.value)

        relative_atoms_transform = None
        if grabbed_atoms is not None and len(grabbed_atoms) > 0:
            relative_atoms_transform = start_transform.inverse().apply(grabbed_atoms.world_transform)

        path = self._find_shortest_path(start, end, grabbed_atoms, relative_atoms_transform, options)
        if path is None:
            raise SolverError(f"Cannot find path from {start_transform} to {end_transform}.")

        instructions = self._get_instructions_for_path(start, path)
        logger.debug(f"Path {start_transform} -> {end_transform}: {''.join(i.value for i in instructions)}")
        return instructions

    def find_molecule_path(self, start_arm_transform, target_molecule_transform, atoms, options=None):
        """
        Find the instructions that put a held molecule at a target transform.

        Returns:
            tuple: (instructions, final arm transform)
        """
        relative_atoms_transform = start_arm_transform.inverse().apply(atoms.world_transform)
        arm_target = target_molecule_transform.apply(relative_atoms_transform.inverse())
        if not self.is_on_track(arm_target.position):
            raise SolverError(
                f"Molecule target {target_molecule_transform} needs the arm at {arm_target.position}, which is not on the track.")
        return self.find_path(start_arm_transform, arm_target, atoms, options), arm_target

    def heuristic(self, state, goal):
        index_distance = abs(goal[0] - state[0])
        if self.is_looping:
            index_distance = min(index_distance, len(self.track_cells) - index_distance)
        return index_distance + HexRotation(state[1]).distance_to(HexRotation(goal[1]))

    def _get_arm_transform(self, state):
        return Transform2D(self.track_cells[state[0]], HexRotation(state[1]))

    def _get_neighbors(self, state):
        index, rotation = state
        count = len(self.track_cells)
        if index < count - 1:
            yield (index + 1, rotation), None
        elif self.is_looping and count > 1:
            yield (0, rotation), None
        if index > 0:
            yield (index - 1, rotation), None
        elif self.is_looping and count > 1:
            yield (count - 1, rotation), None
        yield (index, (rotation + 1) % 6), HexRotation.R60
        yield (index, (rotation - 1) % 6), HexRotation.R300

    def _find_shortest_path(self, start, goal, grabbed_atoms, relative_atoms_transform, options):
        open_list = []
        heapq.heappush(open_list, (self.heuristic(start, goal), start))
        came_from = {}
        g_costs = {start: 0}

        while open_list:
            _, current = heapq.heappop(open_list)
            if current == goal:
                return self._reconstruct_path(came_from, current)

            for neighbor, rotation_delta in self._get_neighbors(current):
                tentative_g_cost = g_costs[current] + 1
                if neighbor in g_costs and tentative_g_cost >= g_costs[neighbor]:
                    continue
                if relative_atoms_transform is not None and not self._is_valid_move(
                        current, neighbor, rotation_delta, grabbed_atoms, relative_atoms_transform, options):
                    continue

                came_from[neighbor] = current
                g_costs[neighbor] = tentative_g_cost
                heapq.heappush(open_list, (tentative_g_cost + self.heuristic(neighbor, goal), neighbor))

        return None

    def _reconstruct_path(self, came_from, current):
        path = []
        while current in came_from:
            path.append(current)
            current = came_from[current]
        path.reverse()
        return path

    def _is_valid_move(self, current, neighbor, rotation_delta, grabbed_atoms, relative_atoms_transform, options):
        arm_transform = self._get_arm_transform(neighbor)
        if not self.is_valid_atoms_transform(grabbed_atoms, arm_transform.apply(relative_atoms_transform), options):
            return False

        if rotation_delta is not None:
            current_arm = self._get_arm_transform(current)
            if self.collision_detector.will_atoms_collide_while_rotating(
                    grabbed_atoms, current_arm.apply(relative_atoms_transform), current_arm.position, rotation_delta):
                return False

        return True

    def is_valid_atoms_transform(self, atoms, atoms_transform, options):
        """
        Check that held atoms could rest at the given transform.

        Args:
            atoms (AtomCollection): The held atoms
            atoms_transform (Transform2D): Where the collection would be
            options (ArmMovementOptions): Interactions that are allowed

        Returns:
            bool: True if nothing blocks the atoms there
        """
        positions = atoms.get_transformed_atom_positions(atoms_transform)
        held = {position: atom for atom, position in positions}
        bonders = []

        for atom, position in positions:
            if self.grid_state.get_atom(position) is not None:
                return False
            if self.grid_state.get_arm(position) is not None:
                return False

            glyph = self.grid_state.get_glyph_object(position)
            if glyph is None:
                continue
            if glyph.type == GlyphType.Calcification and atom.element in CARDINALS and not options.allow_calcification:
                return False
            if glyph.type in GLYPH_BOND_PAIRS and glyph not in bonders:
                bonders.append(glyph)

        for glyph in bonders:
            footprint = glyph.get_footprint()
            for first, second in GLYPH_BOND_PAIRS[glyph.type]:
                if not self._is_valid_bonder_pair(glyph.type, footprint[first], footprint[second], held, atoms, options):
                    return False

        return True

    def _is_valid_bonder_pair(self, glyph_type, cell1, cell2, held, atoms, options):
        atom1 = held.get(cell1)
        atom2 = held.get(cell2)

        if glyph_type == GlyphType.Unbonding:
            if atom1 is not None and atom2 is not None and atoms.are_bonded(atom1, atom2):
                return options.allow_unbonding
            return True

        if atom1 is not None and atom2 is not None:
            if not atoms.are_bonded(atom1, atom2):
                return options.allow_internal_bonds
            return True

        if atom1 is not None or atom2 is not None:
            other_cell = cell2 if atom1 is not None else cell1
            if self.grid_state.get_atom(other_cell) is not None:
                return options.allow_external_bonds

        return True

    def _get_instructions_for_path(self, start, path):
        instructions = []
        previous = start
        count = len(self.track_cells)
        for state in path:
            if state[0] != previous[0]:
                if state[0] == previous[0] + 1 or (self.is_looping and previous[0] == count - 1 and state[0] == 0):
                    instructions.append(Instruction.MovePositive)
                else:
                    instructions.append(Instruction.MoveNegative)
            else:
                rotation_delta = (state[1] - previous[1]) % 6
                if rotation_delta <= 3:
                    instructions.append(Instruction.RotateCounterclockwise)
                else:
                    instructions.append(Instruction.RotateClockwise)
            previous = state
        return instructions
