#! .venv\Scripts\python.exe

"""
Grid State Module

The shared occupancy registry of the board: which cells hold atoms, glyphs,
track and static arms. It enforces nothing; the arm path finder decides what
counts as a collision. This lets placement code reserve cells with dummy atoms.

Registering an atom over an occupied cell remembers the previous occupant, so
registering a collection and immediately unregistering it restores the grid
exactly.
"""

from HexGeometry import Vector2
from SolverErrors import SolverError
from logging_config import setup_logger
logger = setup_logger("GridState")


class GridState:
    """
    Occupancy of every hex cell.

    Attributes:
        atoms (dict): Vector2 -> stack of Elements, the last is the current occupant
        glyphs (dict): Vector2 -> Glyph covering that cell
        arms (dict): Vector2 -> static Arm based at that cell
        tracks (dict): Vector2 -> Track passing through that cell
    """

    def __init__(self):
        self.atoms = {}
        self.glyphs = {}
        self.arms = {}
        self.tracks = {}

    @staticmethod
    def _to_world(position, relative_to):
        if relative_to is None:
            return position
        return relative_to.get_world_transform().apply(position)

    def register_atom(self, position, element, relative_to=None):
        position = self._to_world(position, relative_to)
        self.atoms.setdefault(position, []).append(element)

    def unregister_atom(self, position, relative_to=None):
        position = self._to_world(position, relative_to)
        stack = self.atoms.get(position)
        if not stack:
            raise SolverError(f"Cannot unregister an atom at {position} as none is registered there.")
        stack.pop()
        if not stack:
            del self.atoms[position]

    def register_atoms(self, collection, relative_to=None):
        for atom, position in collection.get_world_atom_positions():
            self.register_atom(position, atom.element, relative_to)

    def unregister_atoms(self, collection, relative_to=None):
        for atom, position in reversed(collection.get_world_atom_positions()):
            self.unregister_atom(position, relative_to)

    def register_molecule(self, origin, transform, atoms, relative_to=None):
        """
        Register template atoms placed so that the atom at origin lands on the transform's position.

        Args:
            origin (Vector2): Template position that maps to transform.position
            transform (Transform2D): Placement of the template
            atoms (list): Atoms with template positions
            relative_to (GameObject): Object whose local coordinates transform is in
        """
        for atom in atoms:
            self.register_atom(transform.apply(atom.position - origin), atom.element, relative_to)

    def unregister_molecule(self, origin, transform, atoms, relative_to=None):
        for atom in reversed(list(atoms)):
            self.unregister_atom(transform.apply(atom.position - origin), relative_to)

    def register_reagent(self, reagent):
        self.register_molecule(Vector2(0, 0), reagent.get_world_transform(), reagent.molecule.atoms)

    def register_glyph(self, glyph):
        for cell in glyph.get_footprint():
            if cell in self.glyphs:
                logger.warning(f"{glyph.type.name} glyph overlaps a {self.glyphs[cell].type.name} glyph at {cell}")
            self.glyphs[cell] = glyph

    def register_track(self, track):
        for cell in track.get_all_path_cells():
            self.tracks[cell] = track

    def register_static_arm(self, arm):
        self.arms[arm.get_world_transform().position] = arm

    def unregister_static_arm(self, arm):
        self.arms.pop(arm.get_world_transform().position, None)

    def get_atom(self, position):
        stack = self.atoms.get(position)
        return stack[-1] if stack else None

    def get_glyph(self, position):
        glyph = self.glyphs.get(position)
        return glyph.type if glyph is not None else None

    def get_glyph_object(self, position):
        return self.glyphs.get(position)

    def get_arm(self, position):
        return self.arms.get(position)

    def get_track(self, position):
        return self.tracks.get(position)

    def is_track_cell(self, position):
        return position in self.tracks

    def get_all_atom_positions(self):
        return list(self.atoms.keys())

    def get_all_collidable_atom_positions(self, exclude=()):
        """Positions of every registered atom except the given ones (usually the atoms being moved)."""
        exclude = set(exclude)
        return [position for position in self.atoms if position not in exclude]

    def snapshot(self):
        """Copy of the atom occupancy, for comparing before and after a change."""
        return {position: list(stack) for position, stack in self.atoms.items()}

    def __str__(self):
        return (f"GridState(atoms={len(self.atoms)}, glyph cells={len(self.glyphs)}, "
                f"track cells={len(self.tracks)}, static arms={len(self.arms)})")
