import unittest
from unittest import mock

from ArmController import ArmArea
from AtomGenerators import AtomBufferWithWaste
from ElementGenerators import BufferedElement, BufferInfo
from GameObjects import ObjectArena, Glyph
from HexGeometry import Vector2
from ProgramWriter import ProgramWriter
from PuzzleModel import Element, GlyphType, Instruction
from SolverConfig import DEFAULT_CONFIG
from SolverErrors import SolverError


def buffered(element, index, restore_order=None):
    stored = BufferedElement(element, index)
    if restore_order is not None:
        stored.is_stored = False
        stored.restore_order = restore_order
    return stored


class TestAtomBufferWithWaste(unittest.TestCase):

    def setUp(self):
        self.writer = ProgramWriter()
        self.arm_area = ArmArea(ObjectArena(), self.writer, config=DEFAULT_CONFIG)
        # The main arm isn't placed, so only record what the buffer asks of it
        for name in ("move_grabber_to", "drop_atoms", "grab_atoms"):
            patcher = mock.patch.object(self.arm_area, name)
            patcher.start()
            self.addCleanup(patcher.stop)

    def create_buffer(self, elements):
        info = BufferInfo(multi_atom=len(elements) > 1,
                          uses_restore=any(e.restore_order is not None for e in elements),
                          wastes_atoms=any(e.is_waste for e in elements),
                          elements=elements)
        return AtomBufferWithWaste(self.arm_area, self.writer, info)

    def buffer_arm_instructions(self, buffer):
        return [i for fragment in self.writer.fragments
                for i in fragment.get_arm_instructions(buffer.arm) if i != Instruction.NONE]

    def test_glyphs_follow_buffer_usage(self):
        waste_only = self.create_buffer([buffered(Element.Fire, 0), buffered(Element.Air, 1)])
        self.assertEqual([c.type for c in waste_only.children if isinstance(c, Glyph)], [GlyphType.Bonding])

        mixed = self.create_buffer([buffered(Element.Fire, 0), buffered(Element.Air, 1, restore_order=0)])
        self.assertCountEqual([c.type for c in mixed.children if isinstance(c, Glyph)],
                              [GlyphType.Bonding, GlyphType.Unbonding])

    def test_waste_is_bonded_to_the_chain(self):
        buffer = self.create_buffer([buffered(Element.Fire, 0), buffered(Element.Water, 1)])
        buffer.consume(Element.Fire, 0)
        self.assertEqual(self.buffer_arm_instructions(buffer),
                         [Instruction.Grab] + AtomBufferWithWaste.BOND_TO_CHAIN + [Instruction.Reset])

        buffer.consume(Element.Water, 1)
        self.assertEqual([s.index for s in buffer.stored_elements], [0, 1])
        self.assertEqual(self.arm_area.drop_atoms.call_args_list, [mock.call(add_to_grid=False)] * 2)

    def test_restored_atom_is_kept_in_front_of_waste(self):
        buffer = self.create_buffer([buffered(Element.Air, 0, restore_order=0), buffered(Element.Fire, 1)])
        buffer.consume(Element.Air, 0)
        buffer.consume(Element.Fire, 1)

        self.assertEqual([s.index for s in buffer.stored_elements], [1, 0])
        buffer.generate(Element.Air, 0)
        self.assertEqual([s.index for s in buffer.stored_elements], [1])
        self.arm_area.grab_atoms.assert_called_once()
        self.assertEqual(self.arm_area.grab_atoms.call_args.kwargs, {"remove_from_grid": False})

    def test_atoms_come_back_in_restore_order(self):
        elements = [buffered(Element.Air, 0, restore_order=0), buffered(Element.Earth, 1, restore_order=1),
                    buffered(Element.Fire, 2)]
        buffer = self.create_buffer(elements)
        for element in elements:
            buffer.consume(element.element, element.index)

        self.assertEqual([s.index for s in buffer.stored_elements], [2, 1, 0])
        with self.assertRaises(SolverError):
            buffer.generate(Element.Earth, 1)
        buffer.generate(Element.Air, 0)
        buffer.generate(Element.Earth, 1)
        self.assertEqual([s.index for s in buffer.stored_elements], [2])

    def test_too_many_out_of_order_atoms(self):
        elements = [buffered(Element.Air, i, restore_order=i) for i in range(3)] + [buffered(Element.Fire, 3)]
        buffer = self.create_buffer(elements)
        for element in elements[:3]:
            buffer.consume(element.element, element.index)
        with self.assertRaises(SolverError):
            buffer.consume(Element.Fire, 3)

    def test_chain_cells_are_reserved_while_solving(self):
        buffer = self.create_buffer([buffered(Element.Fire, 0)])
        grid = self.arm_area.grid_state

        buffer.begin_solution()
        self.assertEqual(grid.get_atom(Vector2(1, 1)), Element.Salt)
        self.assertEqual(len(grid.get_all_atom_positions()), AtomBufferWithWaste.CHAIN_LENGTH)
        buffer.end_solution()
        self.assertEqual(grid.get_all_atom_positions(), [])


if __name__ == "__main__":
    unittest.main()
