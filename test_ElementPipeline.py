import unittest

from ElementGenerators import (CommandSequence, CommandType, InputGenerator, MorsVitaeGenerator,
                               OutputGenerator, SingleStackElementBuffer)
from ElementPipeline import ElementPipeline, SolutionPlan
from PuzzleModel import ArmType, Element, GlyphType, MoleculeType, Puzzle, create_molecule
from RecipeSolver import ReactionType, solve_recipe
from SolverErrors import SolverError


def monoatomic(type, id, element):
    return create_molecule(type, id, [(element, (0, 0))])


def build_pipeline(reagents, products, glyphs=()):
    puzzle = Puzzle("test", reagents, products, [ArmType.Arm1], glyphs)
    recipe = solve_recipe(puzzle).recipe
    return ElementPipeline(SolutionPlan(puzzle, recipe)), recipe


def count_commands(commands, command_type, generator_type):
    return sum(1 for c in commands if c.type == command_type and isinstance(c.element_generator, generator_type))


class TestElementPipeline(unittest.TestCase):

    def test_direct_pipeline(self):
        pipeline, recipe = build_pipeline([monoatomic(MoleculeType.Reagent, 0, Element.Salt)],
                                          [monoatomic(MoleculeType.Product, 0, Element.Salt)])
        self.assertEqual([type(g) for g in pipeline.element_generators],
                         [InputGenerator, SingleStackElementBuffer, OutputGenerator])

        commands = list(pipeline.generate_command_sequence())
        self.assertEqual(commands[0].type, CommandType.Generate)
        self.assertIsInstance(commands[0].element_generator, InputGenerator)
        self.assertEqual(commands[-1].type, CommandType.Consume)
        self.assertIsInstance(commands[-1].element_generator, OutputGenerator)
        self.assertFalse(recipe.has_available_reactions(ReactionType.Reagent))

    def test_animismus_pipeline(self):
        pipeline, recipe = build_pipeline(
            [monoatomic(MoleculeType.Reagent, 0, Element.Salt)],
            [monoatomic(MoleculeType.Product, 0, Element.Mors), monoatomic(MoleculeType.Product, 1, Element.Vitae)],
            glyphs=[GlyphType.Animismus])
        self.assertIn(MorsVitaeGenerator, [type(g) for g in pipeline.element_generators])

        commands = pipeline.generate_command_sequence()
        self.assertEqual(count_commands(commands, CommandType.Generate, InputGenerator), 2)
        self.assertEqual(count_commands(commands, CommandType.Consume, MorsVitaeGenerator), 2)
        self.assertEqual(count_commands(commands, CommandType.Consume, OutputGenerator), 2)

        # Every reaction of the recipe has been used up
        for reaction_type in (ReactionType.Reagent, ReactionType.Animismus, ReactionType.Product):
            self.assertFalse(recipe.has_available_reactions(reaction_type))

    def test_product_element_order_is_followed(self):
        reagent = create_molecule(MoleculeType.Reagent, 0, [(Element.Fire, (0, 0)), (Element.Water, (1, 0))],
                                  [((0, 0), (1, 0))])
        product = create_molecule(MoleculeType.Product, 0, [(Element.Fire, (0, 0)), (Element.Water, (1, 0))],
                                  [((0, 0), (1, 0))])
        puzzle = Puzzle("test", [reagent], [product], [ArmType.Arm1], [GlyphType.Bonding])
        recipe = solve_recipe(puzzle).recipe
        plan = SolutionPlan(puzzle, recipe, product_element_orders={0: [Element.Water, Element.Fire]})

        commands = ElementPipeline(plan).generate_command_sequence()
        consumed = [c.element for c in commands
                    if c.type == CommandType.Consume and isinstance(c.element_generator, OutputGenerator)]
        self.assertEqual(consumed, [Element.Water, Element.Fire])


class TestSingleStackElementBuffer(unittest.TestCase):

    def setUp(self):
        self.commands = CommandSequence()
        self.buffer = SingleStackElementBuffer(self.commands, None)

    def test_restored_and_wasted_atoms(self):
        for element in (Element.Fire, Element.Water, Element.Earth):
            self.buffer.store_element(element)
        self.assertEqual(self.buffer.restore_element([Element.Fire, Element.Earth]), Element.Earth)
        self.assertEqual(self.buffer.restore_element([Element.Fire]), Element.Fire)

        last = list(self.commands)[-1]
        self.assertEqual((last.type, last.id), (CommandType.Generate, 0))

        info = self.buffer.get_buffer_info()
        self.assertEqual((info.multi_atom, info.uses_restore, info.wastes_atoms), (True, True, True))
        self.assertEqual([e.is_waste for e in info.elements], [False, True, False])
        self.assertEqual([e.restore_order for e in info.elements], [1, None, 0])

    def test_restore_missing_element(self):
        self.buffer.store_element(Element.Fire)
        self.assertTrue(self.buffer.can_restore_element(Element.Fire))
        self.assertFalse(self.buffer.can_restore_element(Element.Salt))
        with self.assertRaises(SolverError):
            self.buffer.restore_element([Element.Salt])


if __name__ == "__main__":
    unittest.main()
