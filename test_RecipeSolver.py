import unittest

from PuzzleModel import ArmType, Element, GlyphType, MoleculeType, Puzzle, create_molecule
from RecipeSolver import (Reaction, ReactionType, Recipe, RecipeBuilder, get_product_copy_counts, solve_recipe)
from SolverErrors import RecipeInfeasible, RecipeOk, RecipeUnsupported, SolverError


def monoatomic(type, id, element):
    return create_molecule(type, id, [(element, (0, 0))])


def make_puzzle(reagents, products, glyphs=(), arms=(ArmType.Arm1,), output_scale=1):
    return Puzzle("test", reagents, products, arms, glyphs, output_scale)


class TestRecipe(unittest.TestCase):

    def test_usage_never_exceeds_maximum(self):
        recipe = Recipe()
        recipe.add_reaction(Reaction(ReactionType.Reagent, 0, {}, {Element.Salt: 1}), 1)
        recipe.record_reaction_usage(ReactionType.Reagent, id=0)
        self.assertFalse(recipe.has_available_reactions(ReactionType.Reagent, id=0))
        with self.assertRaises(SolverError):
            recipe.record_reaction_usage(ReactionType.Reagent, id=0)

    def test_copy_is_independent(self):
        recipe = Recipe()
        recipe.add_reaction(Reaction(ReactionType.Reagent, 0, {}, {Element.Salt: 1}), 2)
        copy = recipe.copy()
        copy.record_reaction_usage(ReactionType.Reagent, id=0)
        self.assertEqual(recipe.get_reaction_usages(ReactionType.Reagent)[0].current_usages, 0)


class TestRecipeSolver(unittest.TestCase):

    def test_mors_vitae_from_salt(self):
        puzzle = make_puzzle(
            [monoatomic(MoleculeType.Reagent, 0, Element.Salt)],
            [monoatomic(MoleculeType.Product, 0, Element.Mors), monoatomic(MoleculeType.Product, 1, Element.Vitae)],
            glyphs=[GlyphType.Animismus])

        result = solve_recipe(puzzle)
        self.assertIsInstance(result, RecipeOk)
        recipe = result.recipe
        self.assertEqual(recipe.get_reaction_usages(ReactionType.Reagent, id=0)[0].max_usages, 2)
        self.assertEqual(recipe.get_reaction_usages(ReactionType.Animismus)[0].max_usages, 1)
        self.assertFalse(recipe.has_waste)
        self.assertTrue(recipe.check_mass_balance())

    def test_mass_balance_with_waste(self):
        reagent = create_molecule(MoleculeType.Reagent, 0, [(Element.Fire, (0, 0)), (Element.Water, (1, 0))],
                                  [((0, 0), (1, 0))])
        puzzle = make_puzzle([reagent], [monoatomic(MoleculeType.Product, 0, Element.Fire)],
                             glyphs=[GlyphType.Unbonding])

        result = solve_recipe(puzzle)
        self.assertTrue(result.ok)
        self.assertTrue(result.recipe.has_waste)
        self.assertTrue(result.recipe.check_mass_balance())

    def test_exact_balance_uses_larger_output_scale(self):
        reagent = create_molecule(MoleculeType.Reagent, 0, [(Element.Fire, (0, 0)), (Element.Fire, (1, 0))],
                                  [((0, 0), (1, 0))])
        puzzle = make_puzzle([reagent], [monoatomic(MoleculeType.Product, 0, Element.Fire)],
                             glyphs=[GlyphType.Unbonding])

        result = solve_recipe(puzzle)
        self.assertTrue(result.ok)
        self.assertFalse(result.recipe.has_waste)
        self.assertEqual(result.recipe.get_reaction_usages(ReactionType.Product, id=0)[0].max_usages, 2)

    def test_missing_glyph_is_unsupported(self):
        puzzle = make_puzzle([monoatomic(MoleculeType.Reagent, 0, Element.Salt)],
                             [monoatomic(MoleculeType.Product, 0, Element.Mors)])
        self.assertIsInstance(solve_recipe(puzzle), RecipeUnsupported)

    def test_infeasible_when_element_is_never_produced(self):
        builder = RecipeBuilder(max_output_scale=2)
        builder.add_reagents([monoatomic(MoleculeType.Reagent, 0, Element.Salt)])
        builder.add_products([monoatomic(MoleculeType.Product, 0, Element.Fire)], 1)
        self.assertIsInstance(builder.generate_recipe(), RecipeInfeasible)

    def test_product_copy_counts(self):
        plain = monoatomic(MoleculeType.Product, 0, Element.Fire)
        repeating = create_molecule(MoleculeType.Product, 1, [(Element.Fire, (0, 0)), (Element.Repeat, (1, 0))],
                                    [((0, 0), (1, 0))])
        self.assertEqual(get_product_copy_counts([plain], 1), {0: 1})
        self.assertEqual(get_product_copy_counts([plain, repeating], 2), {0: 12, 1: 1})


if __name__ == "__main__":
    unittest.main()
