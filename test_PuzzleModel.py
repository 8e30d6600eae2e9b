import unittest

from HexGeometry import Vector2, HexRotation
from PuzzleModel import (Atom, BondType, Element, Molecule, MoleculeShape, MoleculeType, create_molecule,
                         get_metal_difference, get_metal_purity, get_lowest_metal, next_metal)


def make_chain(elements, id=0, type=MoleculeType.Product):
    atoms = [(e, (x, 0)) for x, e in enumerate(elements)]
    bonds = [((x, 0), (x + 1, 0)) for x in range(len(elements) - 1)]
    return create_molecule(type, id, atoms, bonds)


class TestPeriodicTable(unittest.TestCase):

    def test_metal_helpers(self):
        self.assertEqual(get_metal_purity(Element.Lead), 1)
        self.assertEqual(get_metal_purity(Element.Gold), 32)
        self.assertEqual(get_metal_difference(Element.Lead, Element.Iron), 2)
        self.assertEqual(next_metal(Element.Copper), Element.Silver)
        self.assertEqual(get_lowest_metal([Element.Salt, Element.Silver, Element.Tin]), Element.Tin)
        self.assertIsNone(get_lowest_metal([Element.Salt]))


class TestMolecule(unittest.TestCase):

    def test_bonds_are_symmetric(self):
        molecule = make_chain([Element.Fire, Element.Water, Element.Air])
        for atom in molecule.atoms:
            for direction, bond_type in atom.bonds.items():
                if bond_type != BondType.NONE:
                    other = molecule.get_adjacent_atom(atom.position, direction)
                    self.assertEqual(other.bonds[direction + HexRotation.R180], bond_type)

    def test_asymmetric_bond_is_rejected(self):
        first = Atom(Element.Fire, Vector2(0, 0), {0: BondType.SINGLE})
        second = Atom(Element.Fire, Vector2(1, 0))
        with self.assertRaises(ValueError):
            Molecule(MoleculeType.Product, [first, second], 0)

    def test_normalised_to_origin(self):
        molecule = create_molecule(MoleculeType.Reagent, 0, [(Element.Salt, (5, 3)), (Element.Salt, (6, 3))],
                                   [((5, 3), (6, 3))])
        self.assertEqual(sorted(a.position for a in molecule.atoms), [Vector2(0, 0), Vector2(1, 0)])
        self.assertEqual(molecule.width, 2)
        self.assertEqual(molecule.height, 1)
        self.assertTrue(molecule.is_linear)

    def test_vertical_molecule_is_laid_flat(self):
        molecule = create_molecule(MoleculeType.Product, 0,
                                   [(Element.Salt, (0, 0)), (Element.Salt, (0, 1)), (Element.Salt, (0, 2))],
                                   [((0, 0), (0, 1)), ((0, 1), (0, 2))])
        self.assertEqual(molecule.height, 1)
        self.assertEqual(molecule.shape, MoleculeShape.Linear)

    def test_shapes(self):
        self.assertEqual(make_chain([Element.Salt]).shape, MoleculeShape.Monoatomic)
        self.assertEqual(make_chain([Element.Salt, Element.Fire]).shape, MoleculeShape.Linear)

        star = create_molecule(MoleculeType.Product, 0,
                               [(Element.Salt, (1, 1)), (Element.Fire, (2, 1)), (Element.Water, (0, 2)),
                                (Element.Air, (1, 0))],
                               [((1, 1), (2, 1)), ((1, 1), (0, 2)), ((1, 1), (1, 0))])
        self.assertEqual(star.shape, MoleculeShape.Star2)

    def test_input_order(self):
        molecule = create_molecule(MoleculeType.Reagent, 0,
                                   [(Element.Fire, (0, 0)), (Element.Water, (1, 0)), (Element.Air, (0, 1))],
                                   [((0, 0), (1, 0)), ((0, 0), (0, 1))])
        order = [a.element for a in molecule.get_atoms_in_input_order()]
        self.assertEqual(order[0], Element.Air)
        self.assertEqual(order[1:], [Element.Water, Element.Fire])

    def test_expand_repeats(self):
        molecule = create_molecule(MoleculeType.Product, 0, [(Element.Fire, (0, 0)), (Element.Repeat, (1, 0))],
                                   [((0, 0), (1, 0))])
        self.assertTrue(molecule.has_repeats)
        molecule.expand_repeats()
        self.assertEqual(len(molecule.atoms), Molecule.REPEAT_COUNT + 1)
        self.assertTrue(all(a.element == Element.Fire for a in molecule.atoms))

    def test_dict_round_trip_keeps_bonds(self):
        molecule = make_chain([Element.Fire, Element.Water], id=3)
        copy = Molecule.from_dict(molecule.to_dict())
        self.assertEqual(copy.id, 3)
        self.assertEqual(sum(a.bond_count for a in copy.atoms), 2)


if __name__ == "__main__":
    unittest.main()
