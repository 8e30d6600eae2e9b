#! .venv\Scripts\python.exe

"""
Puzzle Model Module

Data types describing a puzzle: the chemical elements, bonds, atoms and molecules
that make up reagents and products, the glyph and arm kinds a puzzle may allow,
and the per-cycle arm instructions a solution is written in.

Main Components:
- Element / BondType / GlyphType / ArmType / Instruction: enumerations
- Atom: one element at a molecule-relative position with bonds in six directions
- Molecule: a reagent or product template, normalised so its minimum X/Y are 0
- Puzzle: reagents, products, allowed parts and the output scale
"""

from enum import Enum, IntFlag

from HexGeometry import Vector2, HexRotation, Transform2D
from logging_config import setup_logger
logger = setup_logger("PuzzleModel")


class Element(Enum):
    Salt = 0
    Air = 1
    Fire = 2
    Water = 3
    Earth = 4
    Quicksilver = 5
    Lead = 6
    Tin = 7
    Iron = 8
    Copper = 9
    Silver = 10
    Gold = 11
    Mors = 12
    Vitae = 13
    Quintessence = 14
    Repeat = 15

    def __lt__(self, other):
        return self.value < other.value

    def to_debug_string(self):
        return _DEBUG_STRINGS[self]


_DEBUG_STRINGS = {
    Element.Salt: "Sa", Element.Air: "Ai", Element.Fire: "Fi", Element.Water: "Wa",
    Element.Earth: "Ea", Element.Quicksilver: "Qs", Element.Lead: "Pb", Element.Tin: "Sn",
    Element.Iron: "Fe", Element.Copper: "Cu", Element.Silver: "Ag", Element.Gold: "Au",
    Element.Mors: "Mo", Element.Vitae: "Vi", Element.Quintessence: "Qt", Element.Repeat: "..",
}

# Periodic table
CARDINALS = [Element.Air, Element.Fire, Element.Water, Element.Earth]
METALS = [Element.Lead, Element.Tin, Element.Iron, Element.Copper, Element.Silver, Element.Gold]
MORS_VITAE = [Element.Mors, Element.Vitae]
ALL_ELEMENTS = [e for e in Element if e != Element.Repeat]


def get_metal_purity(metal):
    """Purity of a metal: Lead is 1 and every step up the metal chain doubles it."""
    return 1 << METALS.index(metal)


def get_metal_difference(metal1, metal2):
    return METALS.index(metal2) - METALS.index(metal1)


def get_metals_with_purity_same_or_lower(purity):
    return [m for m in METALS if get_metal_purity(m) <= purity]


def get_lowest_metal(elements):
    metals = [e for e in elements if e in METALS]
    return min(metals, key=METALS.index) if metals else None


def next_metal(metal):
    return METALS[METALS.index(metal) + 1]


class BondType(IntFlag):
    NONE = 0
    SINGLE = 1
    TRIPLEX_RED = 2
    TRIPLEX_YELLOW = 4
    TRIPLEX_GRAY = 8
    TRIPLEX = 14


class GlyphType(Enum):
    Bonding = "bonding"
    MultiBonding = "multi-bonding"
    TriplexBonding = "triplex-bonding"
    Unbonding = "unbonding"
    Calcification = "calcification"
    Duplication = "duplication"
    Projection = "projection"
    Purification = "purification"
    Animismus = "animismus"
    Disposal = "disposal"
    Equilibrium = "equilibrium"
    Unification = "unification"
    Dispersion = "dispersion"


# Cells covered by each glyph in its own frame
GLYPH_FOOTPRINTS = {
    GlyphType.Bonding: [(0, 0), (1, 0)],
    GlyphType.MultiBonding: [(0, 0), (1, 0), (0, -1), (-1, 1)],
    GlyphType.TriplexBonding: [(0, 0), (1, 0), (0, 1)],
    GlyphType.Unbonding: [(0, 0), (1, 0)],
    GlyphType.Calcification: [(0, 0)],
    GlyphType.Duplication: [(0, 0), (1, 0)],
    GlyphType.Projection: [(0, 0), (1, 0)],
    GlyphType.Purification: [(0, 0), (1, 0), (0, 1)],
    GlyphType.Animismus: [(0, 0), (1, 0), (0, 1), (1, -1)],
    GlyphType.Disposal: [(0, 0), (1, 0), (0, 1), (-1, 1), (-1, 0), (0, -1), (1, -1)],
    GlyphType.Equilibrium: [(0, 0)],
    GlyphType.Unification: [(0, 0), (0, 1), (-1, 1), (0, -1), (1, -1)],
    GlyphType.Dispersion: [(0, 0), (1, 0), (1, -1), (0, -1), (-1, 0)],
}


class ArmType(Enum):
    Arm1 = "arm1"
    Arm2 = "arm2"
    Arm3 = "arm3"
    Arm6 = "arm6"
    Piston = "piston"
    VanBerlo = "baron"


class Instruction(Enum):
    """Per-cycle arm instructions, valued by their debug character."""
    NONE = "."
    Wait = "-"
    PivotCounterclockwise = "Q"
    PivotClockwise = "E"
    Extend = "W"
    Retract = "S"
    Drop = "R"
    Grab = "F"
    MoveNegative = "T"
    MovePositive = "G"
    RotateCounterclockwise = "A"
    RotateClockwise = "D"
    PeriodOverride = "X"
    Reset = "C"
    Repeat = "V"

    def to_debug_string(self):
        return self.value

    def is_rotation(self):
        return self in (Instruction.RotateClockwise, Instruction.RotateCounterclockwise)

    def is_movement(self):
        return self in (Instruction.MoveNegative, Instruction.MovePositive)


class MoleculeType(Enum):
    Reagent = "reagent"
    Product = "product"


class MoleculeShape(Enum):
    Monoatomic = "monoatomic"
    Linear = "linear"
    Star2 = "star2"
    Complex = "complex"


def _empty_bonds():
    return {rotation: BondType.NONE for rotation in HexRotation.ALL}


class Atom:
    """
    An atom of a molecule or of a collection of atoms on the board.

    Attributes:
        element (Element): Can change when a glyph transmutes the atom
        position (Vector2): Position relative to the owning molecule or collection
        bonds (dict): HexRotation -> BondType for all six directions
    """

    def __init__(self, element, position, bonds=None):
        self.element = element
        self.position = position
        self.bonds = _empty_bonds()
        if bonds:
            for direction, bond_type in bonds.items():
                self.bonds[HexRotation(direction)] = BondType(bond_type)

    @property
    def bond_count(self):
        return sum(1 for b in self.bonds.values() if b != BondType.NONE)

    def copy(self):
        return Atom(self.element, self.position, self.bonds)

    def __repr__(self):
        return f"{self.element.to_debug_string()}@{self.position}"


class Molecule:
    """
    A reagent or product template.

    Atoms are translated so the minimum X and Y coordinates are 0. Products and
    reagents without repeats are also rotated so the height is their shortest
    dimension; glyph_transform records the transform from the original atom
    positions to the current ones, which is needed when placing the glyph.
    """

    REPEAT_COUNT = 6

    def __init__(self, type, atoms, id):
        self.type = type
        self.id = id
        self.atoms = list(atoms)
        if not self.atoms:
            raise ValueError(f"{type.value} {id} has no atoms")

        self.glyph_transform = Transform2D()
        self.width = self.height = self.diagonal_length = 0

        self._validate_bonds()
        self.has_repeats = any(a.element == Element.Repeat for a in self.atoms)
        self.has_triplex = any(b == BondType.TRIPLEX for a in self.atoms for b in a.bonds.values())

        self._adjust_bounds()
        self._normalize_orientation()

    @property
    def is_linear(self):
        return self.height == 1

    @property
    def size(self):
        return max(self.height, self.width, self.diagonal_length)

    @property
    def shape(self):
        if len(self.atoms) == 1:
            return MoleculeShape.Monoatomic
        if self.is_linear and all(a.bond_count <= 2 for a in self.atoms) and self._is_connected_chain():
            return MoleculeShape.Linear
        if len(self.atoms) == 4:
            counts = sorted(a.bond_count for a in self.atoms)
            if counts == [1, 1, 1, 3]:
                return MoleculeShape.Star2
        return MoleculeShape.Complex

    def _is_connected_chain(self):
        row = sorted(self.atoms, key=lambda a: a.position.x)
        for left, right in zip(row, row[1:]):
            if right.position.x - left.position.x != 1 or left.bonds[HexRotation.R0] == BondType.NONE:
                return False
        return True

    def _validate_bonds(self):
        by_position = {a.position: a for a in self.atoms}
        if len(by_position) != len(self.atoms):
            raise ValueError(f"{self.type.value} {self.id} has two atoms in the same cell")
        for atom in self.atoms:
            for direction, bond_type in atom.bonds.items():
                if bond_type == BondType.NONE:
                    continue
                other = by_position.get(atom.position.offset_in_direction(direction))
                if other is None or other.bonds[direction + HexRotation.R180] != bond_type:
                    raise ValueError(
                        f"{self.type.value} {self.id} has an asymmetric bond at {atom.position} direction {direction}")

    def _adjust_bounds(self):
        min_x = min(a.position.x for a in self.atoms)
        min_y = min(a.position.y for a in self.atoms)
        max_x = max(a.position.x for a in self.atoms)
        max_y = max(a.position.y for a in self.atoms)

        self.width = max_x - min_x + 1
        self.height = max_y - min_y + 1
        diagonals = [a.position.x + a.position.y for a in self.atoms]
        self.diagonal_length = max(diagonals) - min(diagonals) + 1

        offset = Vector2(min_x, min_y)
        for atom in self.atoms:
            atom.position = atom.position - offset
        self.glyph_transform = Transform2D(self.glyph_transform.position - offset, self.glyph_transform.rotation)

    def _normalize_orientation(self):
        if self.has_repeats:
            return

        for _ in range(2):
            if self.height > self.width or self.height > self.diagonal_length:
                self.rotate_by(HexRotation.R300)

    def rotate_by(self, rotation):
        for atom in self.atoms:
            atom.position = atom.position.rotate_by(rotation)
            old_bonds = dict(atom.bonds)
            for direction, bond_type in old_bonds.items():
                atom.bonds[direction + rotation] = bond_type

        self.glyph_transform = Transform2D(Vector2.ZERO, rotation).apply(self.glyph_transform)
        self._adjust_bounds()

    def get_atom(self, position):
        for atom in self.atoms:
            if atom.position == position:
                return atom
        return None

    def get_adjacent_atom(self, position, direction):
        return self.get_atom(position.offset_in_direction(direction))

    def get_adjacent_bonded_atoms(self, atom):
        """Pairs of (direction, atom) for every atom bonded to the given one."""
        return [(direction, self.get_adjacent_atom(atom.position, direction))
                for direction, bond_type in atom.bonds.items() if bond_type != BondType.NONE]

    def get_row(self, row):
        atoms = [self.get_atom(Vector2(x, row)) for x in range(self.width)]
        return [a for a in atoms if a is not None]

    def get_atoms_in_input_order(self):
        return sorted(self.atoms, key=lambda a: (-a.position.y, -a.position.x))

    def get_element_counts(self):
        counts = {}
        for atom in self.atoms:
            counts[atom.element] = counts.get(atom.element, 0) + 1
        return counts

    def expand_repeats(self):
        """
        Replace the repeat atom by copying the rest of the molecule so there are
        six copies in total, bonded together along the repeat atom's row.
        """
        repeat_atoms = [a for a in self.atoms if a.element == Element.Repeat]
        if not repeat_atoms:
            return
        if len(repeat_atoms) > 1:
            raise ValueError("Molecule has more than one repeating atom.")

        repeat_atom = repeat_atoms[0]
        leftmost_atom = self.get_row(repeat_atom.position.y)[0]
        width = repeat_atom.position.x - leftmost_atom.position.x
        if width == 0:
            raise ValueError("Molecule has no atom to the left of the repeating atom.")

        atoms_to_copy = [a for a in self.atoms if a is not repeat_atom]
        for repeat in range(1, self.REPEAT_COUNT):
            offset = Vector2(repeat * width, 0)
            for atom in atoms_to_copy:
                new_atom = Atom(atom.element, atom.position + offset, atom.bonds)
                self.atoms.append(new_atom)
                if atom is leftmost_atom:
                    # Join the copy to the previous one using the repeat atom's bonds
                    for direction in HexRotation.ALL:
                        if repeat_atom.bonds[direction] != BondType.NONE:
                            new_atom.bonds[direction] = repeat_atom.bonds[direction]

        repeat_atom.position = repeat_atom.position + Vector2((self.REPEAT_COUNT - 1) * width, 0)
        repeat_atom.element = leftmost_atom.element

        self._adjust_bounds()
        logger.debug(f"Expanded repeats of {self.type.value} {self.id} to {len(self.atoms)} atoms")

    def to_dict(self):
        return {
            "type": self.type.value,
            "id": self.id,
            "atoms": [
                {
                    "element": atom.element.name,
                    "position": [atom.position.x, atom.position.y],
                    "bonds": {str(d.value): int(b) for d, b in atom.bonds.items() if b != BondType.NONE},
                }
                for atom in self.atoms
            ],
        }

    @classmethod
    def from_dict(cls, data):
        atoms = [
            Atom(Element[a["element"]], Vector2(*a["position"]),
                 {int(d): BondType(b) for d, b in a.get("bonds", {}).items()})
            for a in data["atoms"]
        ]
        return cls(MoleculeType(data["type"]), atoms, data["id"])

    def __str__(self):
        rows = []
        for y in range(self.height - 1, -1, -1):
            cells = []
            for x in range(self.width):
                atom = self.get_atom(Vector2(x, y))
                cells.append(atom.element.to_debug_string() if atom else "  ")
            rows.append(" " * y + " ".join(cells))
        return "\n".join(rows)


def create_molecule(type, id, atoms, bonds=(), bond_type=BondType.SINGLE):
    """
    Build a molecule from plain data.

    Args:
        type (MoleculeType): Reagent or product
        id (int): Molecule identifier
        atoms (list): (Element, (x, y)) pairs
        bonds (list): ((x1, y1), (x2, y2)) pairs of adjacent atom positions to bond
        bond_type (BondType): Kind of bond created for every pair

    Returns:
        Molecule: The normalised molecule
    """
    by_position = {}
    for element, (x, y) in atoms:
        by_position[Vector2(x, y)] = Atom(element, Vector2(x, y))

    for p1, p2 in bonds:
        a, b = Vector2(*p1), Vector2(*p2)
        direction = (b - a).to_rotation()
        if direction is None or (b - a).length() != 1:
            raise ValueError(f"Atoms at {a} and {b} are not adjacent")
        by_position[a].bonds[direction] = bond_type
        by_position[b].bonds[direction + HexRotation.R180] = bond_type

    return Molecule(type, by_position.values(), id)


class Puzzle:
    """
    A puzzle definition.

    Attributes:
        name (str): Puzzle name used in log messages
        reagents (list): Reagent molecules
        products (list): Product molecules
        allowed_arm_types (set): ArmType values the solution may use
        allowed_glyphs (set): GlyphType values the solution may use
        output_scale (int): Multiplier on the number of products to output
    """

    def __init__(self, name, reagents, products, allowed_arm_types, allowed_glyphs, output_scale=1):
        self.name = name
        self.reagents = list(reagents)
        self.products = list(products)
        self.allowed_arm_types = set(allowed_arm_types)
        self.allowed_glyphs = set(allowed_glyphs)
        self.output_scale = output_scale

    def get_all_reagent_elements(self):
        return {a.element for r in self.reagents for a in r.atoms}

    def get_all_product_elements(self):
        return {a.element for p in self.products for a in p.atoms}

    def __str__(self):
        return (f"Puzzle(name={self.name}, reagents={len(self.reagents)}, products={len(self.products)}, "
                f"output_scale={self.output_scale})")
