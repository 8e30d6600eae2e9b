import json
import os
import tempfile
import unittest
from unittest import mock

from ArmController import ArmController
from AtomGenerators import (AtomBuffer, AtomBufferWithWaste, MetalProjector, MetalPurifier, MorsVitaeGenerator,
                            QuintessenceDisperser, QuintessenceGenerator, VanBerloGenerator)
from GameObjects import Arm, Glyph, Product, Reagent
from MoleculeAssemblers import UniversalAssembler
from MoleculeInputs import LinearDisassembler
from PuzzleModel import ArmType, BondType, Element, GlyphType, Instruction, MoleculeType, Puzzle, create_molecule
from PuzzleSolver import PuzzleSolver, solve_puzzle
from SolverConfig import DEFAULT_CONFIG, load_config
from SolverErrors import SolveOk, SolveUnsupported

ALL_ARMS = [ArmType.Arm1, ArmType.Arm2, ArmType.Arm3, ArmType.Arm6, ArmType.Piston]


def monoatomic(type, id, element):
    return create_molecule(type, id, [(element, (0, 0))])


def reagents(*elements):
    return [monoatomic(MoleculeType.Reagent, id, element) for id, element in enumerate(elements)]


def products(*elements):
    return [monoatomic(MoleculeType.Product, id, element) for id, element in enumerate(elements)]


def line(type, id, *elements):
    return create_molecule(type, id, [(element, (x, 0)) for x, element in enumerate(elements)],
                           [((x, 0), (x + 1, 0)) for x in range(len(elements) - 1)])


def placed(atoms, transform):
    """Elements by world position, and bonds as pairs of world positions."""
    elements = {transform.apply(a.position): a.element for a in atoms}
    bonds = {frozenset([transform.apply(a.position), transform.apply(a.position.offset_in_direction(direction))])
             for a in atoms for direction, bond_type in a.bonds.items() if bond_type != BondType.NONE}
    return elements, bonds


class TestPuzzleSolver(unittest.TestCase):

    def test_salt_to_salt(self):
        puzzle = Puzzle("salt", [monoatomic(MoleculeType.Reagent, 0, Element.Salt)],
                        [monoatomic(MoleculeType.Product, 0, Element.Salt)], ALL_ARMS, [])

        result = solve_puzzle(puzzle, DEFAULT_CONFIG)

        self.assertIsInstance(result, SolveOk, msg=repr(result))
        solution = result.solution
        instructions = [i for arm_instructions in solution.program.instructions.values() for i in arm_instructions]
        self.assertIn(Instruction.Grab, instructions)
        self.assertIn(Instruction.Drop, instructions)
        self.assertEqual(solution.get_objects(Glyph), [])
        self.assertEqual(len(solution.get_objects(Reagent)), 1)
        self.assertGreater(solution.metrics.cost, 0)
        self.assertEqual(solution.metrics.arms, len(solution.get_objects(Arm)))

        data = solution.to_dict()
        self.assertEqual(data["puzzle"], "salt")
        self.assertTrue(data["program"])

    def test_triplex_between_other_atoms_is_unsupported(self):
        product = create_molecule(MoleculeType.Product, 0, [(Element.Water, (0, 0)), (Element.Water, (1, 0))],
                                  [((0, 0), (1, 0))], bond_type=BondType.TRIPLEX)
        puzzle = Puzzle("triplex", [monoatomic(MoleculeType.Reagent, 0, Element.Water)], [product], ALL_ARMS,
                        [GlyphType.TriplexBonding])

        result = PuzzleSolver(puzzle, DEFAULT_CONFIG).solve()
        self.assertIsInstance(result, SolveUnsupported)
        self.assertIn("triplex", result.reason)

    def test_missing_glyph_is_unsupported(self):
        puzzle = Puzzle("mors", [monoatomic(MoleculeType.Reagent, 0, Element.Salt)],
                        [monoatomic(MoleculeType.Product, 0, Element.Mors)], ALL_ARMS, [])

        result = PuzzleSolver(puzzle, DEFAULT_CONFIG).solve()
        self.assertFalse(result.ok)
        self.assertIsInstance(result, SolveUnsupported)


class TestSolvedProducts(unittest.TestCase):
    """Whole solves that go through each atom generator, checking the products end up on their glyphs."""

    def solve(self, puzzle, generator_type, method_name):
        drops = []
        drop_atoms = ArmController.drop_atoms

        def record_drop(controller, add_to_grid=True):
            atoms = drop_atoms(controller, add_to_grid)
            drops.append(placed(atoms.atoms, atoms.world_transform))
            return atoms

        spy = mock.patch.object(generator_type, method_name, autospec=True,
                                side_effect=getattr(generator_type, method_name))
        with mock.patch.object(ArmController, "drop_atoms", record_drop), spy as calls:
            result = solve_puzzle(puzzle, DEFAULT_CONFIG)

        self.assertIsInstance(result, SolveOk, msg=repr(result))
        self.assertTrue(calls.called, msg=f"{generator_type.__name__}.{method_name} was never used")
        return result.solution, drops

    def assert_products_dropped_on_glyphs(self, solution, drops):
        product_glyphs = solution.get_objects(Product)
        self.assertTrue(product_glyphs)
        for product in product_glyphs:
            expected = placed(product.molecule.atoms, product.get_world_transform())
            self.assertIn(expected, drops, msg=f"Product {product.molecule.id} never dropped on its glyph")

    def glyph_types(self, solution):
        return {g.type for g in solution.get_objects(Glyph)}

    def test_mors_and_vitae(self):
        puzzle = Puzzle("animismus", reagents(Element.Salt), products(Element.Mors, Element.Vitae), ALL_ARMS,
                        [GlyphType.Animismus])
        solution, drops = self.solve(puzzle, MorsVitaeGenerator, "generate")
        self.assert_products_dropped_on_glyphs(solution, drops)

    def test_metal_purification(self):
        puzzle = Puzzle("purification", reagents(Element.Lead), products(Element.Tin), ALL_ARMS,
                        [GlyphType.Purification])
        solution, drops = self.solve(puzzle, MetalPurifier, "consume")
        self.assert_products_dropped_on_glyphs(solution, drops)
        self.assertIn(GlyphType.Purification, self.glyph_types(solution))

    def test_metal_projection(self):
        puzzle = Puzzle("projection", reagents(Element.Lead, Element.Quicksilver), products(Element.Tin), ALL_ARMS,
                        [GlyphType.Projection])
        solution, drops = self.solve(puzzle, MetalProjector, "consume")
        self.assert_products_dropped_on_glyphs(solution, drops)

    def test_quintessence_dispersion_with_disposal(self):
        puzzle = Puzzle("dispersion", reagents(Element.Quintessence), products(Element.Earth), ALL_ARMS,
                        [GlyphType.Dispersion, GlyphType.Disposal])
        solution, drops = self.solve(puzzle, QuintessenceDisperser, "consume")
        self.assert_products_dropped_on_glyphs(solution, drops)
        self.assertIn(GlyphType.Disposal, self.glyph_types(solution))

    def test_dispersion_waste_is_chained_without_disposal(self):
        puzzle = Puzzle("dispersion waste", reagents(Element.Quintessence), products(Element.Earth), ALL_ARMS,
                        [GlyphType.Dispersion, GlyphType.Bonding])
        solution, drops = self.solve(puzzle, AtomBufferWithWaste, "consume")
        self.assert_products_dropped_on_glyphs(solution, drops)
        self.assertIn(GlyphType.Bonding, self.glyph_types(solution))
        self.assertNotIn(GlyphType.Disposal, self.glyph_types(solution))

    def test_unbonded_waste_is_chained_without_disposal(self):
        puzzle = Puzzle("reagent waste", [line(MoleculeType.Reagent, 0, Element.Fire, Element.Water)],
                        products(Element.Water), ALL_ARMS, [GlyphType.Unbonding, GlyphType.Bonding])
        solution, drops = self.solve(puzzle, AtomBufferWithWaste, "consume")
        self.assert_products_dropped_on_glyphs(solution, drops)

    def test_quintessence_unification(self):
        puzzle = Puzzle("unification", reagents(Element.Fire, Element.Water, Element.Earth, Element.Air),
                        products(Element.Quintessence), ALL_ARMS, [GlyphType.Unification])
        solution, drops = self.solve(puzzle, QuintessenceGenerator, "consume")
        self.assert_products_dropped_on_glyphs(solution, drops)

    def test_van_berlo(self):
        puzzle = Puzzle("duplication", reagents(Element.Salt), products(Element.Fire),
                        ALL_ARMS + [ArmType.VanBerlo], [GlyphType.Duplication])
        solution, drops = self.solve(puzzle, VanBerloGenerator, "generate")
        self.assert_products_dropped_on_glyphs(solution, drops)
        self.assertIn(ArmType.VanBerlo, [a.type for a in solution.get_objects(Arm)])

    def test_reversed_chain_is_buffered(self):
        # The reagent hands out fire first but the chain is built from earth
        puzzle = Puzzle("reversed chain", [line(MoleculeType.Reagent, 0, Element.Fire, Element.Water, Element.Earth)],
                        [line(MoleculeType.Product, 0, Element.Earth, Element.Water, Element.Fire)], ALL_ARMS,
                        [GlyphType.Bonding, GlyphType.Unbonding])
        solution, drops = self.solve(puzzle, AtomBuffer, "generate")
        self.assert_products_dropped_on_glyphs(solution, drops)

    def test_linear_reagent(self):
        puzzle = Puzzle("linear", [line(MoleculeType.Reagent, 0, Element.Fire, Element.Water)],
                        products(Element.Fire, Element.Water), ALL_ARMS, [GlyphType.Unbonding])
        solution, drops = self.solve(puzzle, LinearDisassembler, "generate")
        self.assert_products_dropped_on_glyphs(solution, drops)

    def test_triangle_product(self):
        triangle = create_molecule(MoleculeType.Product, 0,
                                   [(Element.Fire, (0, 0)), (Element.Water, (1, 0)), (Element.Earth, (0, 1))],
                                   [((0, 0), (1, 0)), ((1, 0), (0, 1)), ((0, 0), (0, 1))])
        puzzle = Puzzle("triangle", reagents(Element.Fire, Element.Water, Element.Earth), [triangle], ALL_ARMS,
                        [GlyphType.Bonding])
        solution, _ = self.solve(puzzle, UniversalAssembler, "_add_product_atom")
        self.assertEqual([p.molecule.id for p in solution.get_objects(Product)], [0])
        self.assertIn(GlyphType.Bonding, self.glyph_types(solution))


class TestSolverConfig(unittest.TestCase):

    def test_missing_file_gives_defaults(self):
        config = load_config(os.path.join(tempfile.gettempdir(), "no_such_solver_config.json"))
        self.assertEqual(config, DEFAULT_CONFIG)
        self.assertIsNot(config, DEFAULT_CONFIG)

    def test_partial_file_overrides_named_values(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "config.json")
            with open(path, "w") as file:
                json.dump({"arm": {"length": 3}, "collision": {"atom_radius": 30}}, file)

            config = load_config(path)

        self.assertEqual(config["arm"]["length"], 3)
        self.assertEqual(config["collision"]["atom_radius"], 30)
        self.assertEqual(config["collision"]["hex_size_x"], DEFAULT_CONFIG["collision"]["hex_size_x"])
        self.assertEqual(DEFAULT_CONFIG["arm"]["length"], 2)


if __name__ == "__main__":
    unittest.main()
