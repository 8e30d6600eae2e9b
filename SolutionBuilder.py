#! .venv\Scripts\python.exe

"""
Solution Builder Module

Creates the atom generator for every stage of the element pipeline and lays
them out around the main arm.

The generators are placed in reverse pipeline order, starting with the output
area, each one a sector further clockwise around the arm's base. A generator
wider than one sector pushes the base along, so the track the main arm runs on
grows with the number and size of the generators.
"""

from AtomGenerators import (DummyAtomGenerator, WasteDisposer, AtomBuffer, AtomBufferWithWaste, MetalProjector,
                            MetalPurifier, QuintessenceDisperser, QuintessenceGenerator, SaltGenerator,
                            SaltGeneratorNoCardinalPassThrough, VanBerloGenerator, MorsVitaeGenerator, OutputArea)
from ArmController import ArmArea
from ElementPipeline import SolutionPlan
import ElementGenerators
from GameObjects import ObjectArena, Arm, Glyph, Reagent, Track
from HexGeometry import Vector2, HexRotation, Transform2D
from MoleculeAssemblers import MoleculeAssemblerFactory
from MoleculeInputs import MoleculeDisassemblerFactory
from PuzzleModel import GlyphType
from RecipeSolver import ReactionType
from SolverConfig import load_config
from SolverErrors import SolverError
from logging_config import setup_logger
logger = setup_logger("SolutionBuilder")


class SolutionBuilder:
    """
    Builds the objects of a solution for one recipe.

    Attributes:
        puzzle (Puzzle): The puzzle being solved
        recipe (Recipe): The reactions the solution will use
        writer (ProgramWriter): Shared by every atom generator
        required_reagents (list): Reagents the recipe takes atoms from
        disassembler_factory (MoleculeDisassemblerFactory): Chooses how reagents are taken apart
        assembler_factory (MoleculeAssemblerFactory): Chooses how products are built
        arm_area (ArmArea): Root of every placed object, created by create_atom_generators
        atom_generators (list): In the order they were placed, output area first
    """

    def __init__(self, puzzle, recipe, writer, config=None):
        self.puzzle = puzzle
        self.recipe = recipe
        self.writer = writer
        self.config = config or load_config()

        self.required_reagents = [r for r in puzzle.reagents
                                  if recipe.has_available_reactions(ReactionType.Reagent, id=r.id)]
        self.disassembler_factory = MoleculeDisassemblerFactory(self.required_reagents)
        self.assembler_factory = MoleculeAssemblerFactory(puzzle.products)

        self.arm_area = None
        self.atom_generators = []

    def create_plan(self):
        return SolutionPlan(
            self.puzzle, self.recipe,
            reagent_element_orders={r.id: self.disassembler_factory.get_reagent_element_order(r)
                                    for r in self.required_reagents},
            product_element_orders={p.id: self.assembler_factory.get_product_element_order(p)
                                    for p in self.puzzle.products},
            use_pending_elements_in_order=False)

    def create_atom_generators(self, pipeline):
        """
        Create and place an atom generator for every element generator, then
        build the main arm's track through all of their access points.

        Must be called after the pipeline has generated its command sequence,
        since buffers and the purifier are sized from what the commands need.
        """
        self.arm_area = ArmArea(ObjectArena(), self.writer, config=self.config)

        base = Transform2D()
        offset = Transform2D(Vector2(self.arm_area.arm_length, 0), HexRotation.R0)

        # Start with the output area
        for element_generator in reversed(pipeline.element_generators):
            atom_generator = self._create_atom_generator(element_generator)
            atom_generator.transform = base.apply(offset)
            self.atom_generators.append(atom_generator)

            if not atom_generator.is_empty:
                shift = Vector2(1, -1).rotate_by(base.rotation) * (atom_generator.required_width - 1)
                atom_generator.transform = atom_generator.transform.with_position(
                    atom_generator.transform.position + shift)
                base = Transform2D(base.position + shift, base.rotation.rotate_60_clockwise())

            logger.debug(f"Placed {type(atom_generator).__name__} at {atom_generator.transform}")

        access_points = []
        for atom_generator in reversed(self.atom_generators):
            world = atom_generator.get_world_transform()
            access_points.extend(world.apply(point) for point in atom_generator.required_access_points)
        self.arm_area.create_components(access_points)

        self._register_objects_on_grid()
        return self.atom_generators

    def _create_atom_generator(self, element_generator):
        arm_area = self.arm_area
        writer = self.writer

        if isinstance(element_generator, ElementGenerators.InputGenerator):
            atom_generator = self.disassembler_factory.create_disassembler(arm_area, writer)
        elif isinstance(element_generator, ElementGenerators.OutputGenerator):
            atom_generator = OutputArea(arm_area, writer, self.assembler_factory)
        elif isinstance(element_generator, ElementGenerators.SingleStackElementBuffer):
            atom_generator = self._create_atom_buffer(element_generator.get_buffer_info())
        elif isinstance(element_generator, ElementGenerators.MetalProjectorGenerator):
            atom_generator = MetalProjector(arm_area, writer)
        elif isinstance(element_generator, ElementGenerators.MetalPurifierGenerator):
            atom_generator = MetalPurifier(arm_area, writer, element_generator.sequences)
        elif isinstance(element_generator, ElementGenerators.MorsVitaeGenerator):
            atom_generator = MorsVitaeGenerator(arm_area, writer)
        elif isinstance(element_generator, ElementGenerators.QuintessenceDisperserGenerator):
            atom_generator = QuintessenceDisperser(arm_area, writer)
        elif isinstance(element_generator, ElementGenerators.QuintessenceGenerator):
            atom_generator = QuintessenceGenerator(arm_area, writer)
        elif isinstance(element_generator, ElementGenerators.SaltGenerator):
            if element_generator.requires_cardinal_pass_through:
                atom_generator = SaltGenerator(arm_area, writer)
            else:
                atom_generator = SaltGeneratorNoCardinalPassThrough(arm_area, writer)
        elif isinstance(element_generator, ElementGenerators.VanBerloGenerator):
            atom_generator = VanBerloGenerator(arm_area, writer)
        else:
            raise SolverError(f"Unknown element generator type {type(element_generator).__name__}.")

        element_generator.atom_generator = atom_generator
        return atom_generator

    def _create_atom_buffer(self, buffer_info):
        if not buffer_info.elements:
            return DummyAtomGenerator(self.arm_area, self.writer)

        if all(e.is_waste for e in buffer_info.elements) and GlyphType.Disposal in self.puzzle.allowed_glyphs:
            return WasteDisposer(self.arm_area, self.writer)
        if not any(e.is_waste for e in buffer_info.elements):
            return AtomBuffer(self.arm_area, self.writer, buffer_info, self.config)

        return AtomBufferWithWaste(self.arm_area, self.writer, buffer_info)

    def get_all_objects(self):
        return self.arm_area.get_all_objects()

    def _register_objects_on_grid(self):
        grid_state = self.arm_area.grid_state
        objects = self.get_all_objects()

        for glyph in (o for o in objects if isinstance(o, Glyph)):
            grid_state.register_glyph(glyph)

        for reagent in (o for o in objects if isinstance(o, Reagent)):
            grid_state.register_reagent(reagent)

        track_cells = set()
        for track in (o for o in objects if isinstance(o, Track)):
            grid_state.register_track(track)
            track_cells.update(track.get_all_path_cells())

        for arm in (o for o in objects if isinstance(o, Arm)):
            if arm.get_world_transform().position not in track_cells:
                grid_state.register_static_arm(arm)
