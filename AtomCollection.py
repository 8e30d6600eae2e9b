#! .venv\Scripts\python.exe

"""
Atom collections: atoms moving or resting together as one rigid body.

A collection is owned either by the arm currently holding it or by the grid
when it is placed. Atom positions are local to the collection; world_transform
places them on the board. Bonds are always kept symmetric.
"""

from HexGeometry import Vector2, HexRotation, Transform2D
from PuzzleModel import Atom, BondType
from SolverErrors import SolverError


class AtomCollection:
    """
    A rigid group of atoms.

    Attributes:
        atoms (list): Atoms with positions local to the collection
        world_transform (Transform2D): Where the collection sits on the board
    """

    def __init__(self, atoms=None, world_transform=None):
        self.atoms = list(atoms) if atoms else []
        self.world_transform = world_transform if world_transform is not None else Transform2D()

    @classmethod
    def from_molecule(cls, molecule, world_transform):
        return cls([a.copy() for a in molecule.atoms], world_transform)

    @classmethod
    def from_element(cls, element, world_transform):
        return cls([Atom(element, Vector2(0, 0))], world_transform)

    def __len__(self):
        return len(self.atoms)

    def get_atom(self, local_position):
        for atom in self.atoms:
            if atom.position == local_position:
                return atom
        return None

    def get_atom_at_world_position(self, world_position):
        return self.get_atom(self.world_transform.inverse().apply(world_position))

    def get_world_atom_positions(self):
        """(atom, world position) for every atom."""
        return [(atom, self.world_transform.apply(atom.position)) for atom in self.atoms]

    def get_transformed_atom_positions(self, transform):
        """(atom, position) for every atom if the collection were placed at transform."""
        return [(atom, transform.apply(atom.position)) for atom in self.atoms]

    def add_atom(self, element, world_position):
        local = self.world_transform.inverse().apply(world_position)
        if self.get_atom(local) is not None:
            raise SolverError(f"Collection already has an atom at {world_position}")
        atom = Atom(element, local)
        self.atoms.append(atom)
        return atom

    def remove_atom(self, atom):
        for direction in HexRotation.ALL:
            if atom.bonds[direction] != BondType.NONE:
                neighbour = self.get_atom(atom.position.offset_in_direction(direction))
                if neighbour is not None:
                    neighbour.bonds[direction + HexRotation.R180] = BondType.NONE
                atom.bonds[direction] = BondType.NONE
        self.atoms.remove(atom)

    def _direction_between(self, atom1, atom2):
        offset = atom2.position - atom1.position
        direction = offset.to_rotation()
        if direction is None or offset.length() != 1:
            raise SolverError(f"Atoms at {atom1.position} and {atom2.position} are not adjacent")
        return direction

    def add_bond(self, atom1, atom2, bond_type=BondType.SINGLE):
        direction = self._direction_between(atom1, atom2)
        atom1.bonds[direction] = bond_type
        atom2.bonds[direction + HexRotation.R180] = bond_type

    def remove_bond(self, atom1, atom2):
        direction = self._direction_between(atom1, atom2)
        atom1.bonds[direction] = BondType.NONE
        atom2.bonds[direction + HexRotation.R180] = BondType.NONE

    def are_bonded(self, atom1, atom2):
        return atom1.bonds[self._direction_between(atom1, atom2)] != BondType.NONE

    def merge(self, other):
        """Move every atom of another collection into this one, keeping world positions and bonds."""
        relative = self.world_transform.inverse().apply(other.world_transform)
        for atom in other.atoms:
            if self.get_atom(relative.apply(atom.position)) is not None:
                raise SolverError(f"Cannot merge collections: both have an atom at {relative.apply(atom.position)}")
        for atom in other.atoms:
            atom.position = relative.apply(atom.position)
            atom.bonds = {d + relative.rotation: b for d, b in atom.bonds.items()}
            self.atoms.append(atom)
        other.atoms = []

    def split_off(self, atoms):
        """Remove the given atoms into a new collection at the same world transform; bonds across the split are broken."""
        atoms = list(atoms)
        for atom in atoms:
            for direction in HexRotation.ALL:
                if atom.bonds[direction] == BondType.NONE:
                    continue
                neighbour = self.get_atom(atom.position.offset_in_direction(direction))
                if neighbour is not None and neighbour not in atoms:
                    self.remove_bond(atom, neighbour)
        for atom in atoms:
            self.atoms.remove(atom)
        return AtomCollection(atoms, self.world_transform)

    def has_symmetric_bonds(self):
        for atom in self.atoms:
            for direction, bond_type in atom.bonds.items():
                if bond_type == BondType.NONE:
                    continue
                neighbour = self.get_atom(atom.position.offset_in_direction(direction))
                if neighbour is None or neighbour.bonds[direction + HexRotation.R180] != bond_type:
                    return False
        return True

    def copy(self):
        return AtomCollection([a.copy() for a in self.atoms], self.world_transform)

    def __repr__(self):
        return f"AtomCollection({[a for a in self.atoms]}, {self.world_transform})"
