#! .venv\Scripts\python.exe

"""
Game Objects Module

Objects placed on the hex grid by a solution: glyphs, arms, tracks, reagent and
product glyphs, plus the groups that position them.

Objects live in an ObjectArena and refer to their parent by integer handle.
A world transform is found by walking the parent handles up to the root, and
removing an object just detaches it from its parent.

Main Components:
- ObjectArena: owns every object and hands out handles and arm IDs
- GameObject: base with a local transform and a parent handle
- Glyph, Arm, Track, Reagent, Product: placeable objects
- Solution / SolutionMetrics: the finished objects and program
"""

from HexGeometry import Vector2, HexRotation, Transform2D
from PuzzleModel import GLYPH_FOOTPRINTS, ArmType, GlyphType, Instruction
from logging_config import setup_logger
logger = setup_logger("GameObjects")


class ObjectArena:
    """
    Storage for every game object of one solution.

    Attributes:
        objects (dict): handle -> GameObject
    """

    def __init__(self):
        self.objects = {}
        self._next_handle = 0
        self._next_arm_id = 0

    def add(self, obj):
        handle = self._next_handle
        self._next_handle += 1
        self.objects[handle] = obj
        return handle

    def next_arm_id(self):
        arm_id = self._next_arm_id
        self._next_arm_id += 1
        return arm_id

    def get(self, handle):
        if handle is None:
            return None
        return self.objects[handle]


class GameObject:
    """
    An object or group of objects on the hex grid.

    Attributes:
        arena (ObjectArena): Owner of this object
        handle (int): This object's handle in the arena
        parent_handle (int): Handle of the parent, None for a root object
        transform (Transform2D): Transform relative to the parent
    """

    def __init__(self, arena, parent, transform=None):
        self.arena = arena
        self.handle = arena.add(self)
        self.parent_handle = None
        self.child_handles = []
        self.transform = transform if transform is not None else Transform2D()
        self.parent = parent

    @property
    def parent(self):
        return self.arena.get(self.parent_handle)

    @parent.setter
    def parent(self, parent):
        current = self.parent
        if current is not None:
            current.child_handles.remove(self.handle)
        self.parent_handle = parent.handle if parent is not None else None
        if parent is not None:
            parent.child_handles.append(self.handle)

    @property
    def children(self):
        return [self.arena.get(h) for h in self.child_handles]

    def get_world_transform(self):
        transform = self.transform
        parent = self.parent
        while parent is not None:
            transform = parent.transform.apply(transform)
            parent = parent.parent
        return transform

    def get_all_objects(self):
        """This object and all its descendants, parents before children."""
        objects = [self]
        for child in self.children:
            objects.extend(child.get_all_objects())
        return objects

    def remove(self):
        self.parent = None

    def to_dict(self):
        world = self.get_world_transform()
        return {
            "kind": type(self).__name__.lower(),
            "position": [world.position.x, world.position.y],
            "rotation": world.rotation.value,
        }


class Glyph(GameObject):
    def __init__(self, arena, parent, position, rotation, type):
        super().__init__(arena, parent, Transform2D(position, rotation))
        self.type = type

    def get_footprint(self):
        """World cells covered by this glyph."""
        world = self.get_world_transform()
        return [world.apply(Vector2(x, y)) for x, y in GLYPH_FOOTPRINTS[self.type]]

    def to_dict(self):
        data = super().to_dict()
        data["type"] = self.type.value
        return data


class Arm(GameObject):
    """
    An arm on the hex grid.

    Attributes:
        type (ArmType): Kind of arm
        extension (int): Distance from the base to the grabber
        unique_id (int): Identifies the arm within its solution; used as the program key order
    """

    def __init__(self, arena, parent, position, rotation, type, extension=1):
        super().__init__(arena, parent, Transform2D(position, rotation))
        self.type = type
        self.extension = extension
        self.unique_id = arena.next_arm_id()

    def get_grabber_position(self):
        world = self.get_world_transform()
        return world.apply(Vector2(self.extension, 0))

    def __lt__(self, other):
        return self.unique_id < other.unique_id

    def __repr__(self):
        return f"Arm({self.unique_id}, {self.type.value})"

    def to_dict(self):
        data = super().to_dict()
        data.update({"type": self.type.value, "extension": self.extension, "id": self.unique_id})
        return data


class TrackSegment:
    def __init__(self, direction, length):
        self.direction = HexRotation(direction)
        self.length = length

    def __repr__(self):
        return f"TrackSegment({self.direction}, {self.length})"


class Track(GameObject):
    """
    A track an arm moves along. The path is relative to the track's own position
    and always starts at (0, 0).
    """

    def __init__(self, arena, parent, position, segments):
        super().__init__(arena, parent, Transform2D(position, HexRotation.R0))
        pos = Vector2(0, 0)
        self.path = [pos]
        for segment in segments:
            for _ in range(segment.length):
                pos = pos.offset_in_direction(segment.direction)
                self.path.append(pos)

    @classmethod
    def straight(cls, arena, parent, position, direction, length):
        return cls(arena, parent, position, [TrackSegment(direction, length)])

    @property
    def is_looping(self):
        return len(self.path) > 2 and self.path[0].distance_between(self.path[-1]) == 1

    def get_all_path_cells(self):
        world = self.get_world_transform()
        return [world.apply(cell) for cell in self.path]

    def trim_path(self, first_index, last_index):
        """Remove the cells before first_index and after last_index."""
        if last_index < first_index:
            raise ValueError("last_index must be greater than or equal to first_index.")

        del self.path[last_index + 1:]
        if first_index > 0:
            del self.path[:first_index]
            origin_offset = self.path[0]
            self.path = [cell - origin_offset for cell in self.path]
            self.transform = Transform2D(self.transform.position + origin_offset, self.transform.rotation)

    def to_dict(self):
        data = super().to_dict()
        data["path"] = [[c.x, c.y] for c in self.get_all_path_cells()]
        return data


class Reagent(GameObject):
    """A reagent glyph; the molecule's atoms appear at the transformed atom positions."""

    def __init__(self, arena, parent, position, rotation, molecule):
        super().__init__(arena, parent, Transform2D(position, rotation))
        self.molecule = molecule

    def to_dict(self):
        data = super().to_dict()
        data["id"] = self.molecule.id
        return data


class Product(GameObject):
    def __init__(self, arena, parent, position, rotation, molecule):
        super().__init__(arena, parent, Transform2D(position, rotation))
        self.molecule = molecule

    def to_dict(self):
        data = super().to_dict()
        data["id"] = self.molecule.id
        return data


ARM_COSTS = {
    ArmType.Arm1: 20, ArmType.Arm2: 30, ArmType.Arm3: 30, ArmType.Arm6: 30,
    ArmType.Piston: 40, ArmType.VanBerlo: 30,
}

GLYPH_COSTS = {
    GlyphType.Bonding: 10, GlyphType.MultiBonding: 30, GlyphType.TriplexBonding: 20,
    GlyphType.Unbonding: 10, GlyphType.Calcification: 10, GlyphType.Duplication: 20,
    GlyphType.Projection: 20, GlyphType.Purification: 20, GlyphType.Animismus: 20,
    GlyphType.Disposal: 0, GlyphType.Equilibrium: 0, GlyphType.Unification: 20,
    GlyphType.Dispersion: 20,
}

TRACK_CELL_COST = 5


class SolutionMetrics:
    """
    Static metrics of a solution. Cycles need a game simulation and are not computed.

    Attributes:
        cost (int): Total part cost
        instructions (int): Number of instructions that occupy a program cell
        arms (int): Number of arms
    """

    def __init__(self, cost, instructions, arms):
        self.cost = cost
        self.instructions = instructions
        self.arms = arms

    @classmethod
    def calculate(cls, objects, program):
        cost = 0
        arms = 0
        for obj in objects:
            if isinstance(obj, Arm):
                cost += ARM_COSTS[obj.type]
                arms += 1
            elif isinstance(obj, Glyph):
                cost += GLYPH_COSTS[obj.type]
            elif isinstance(obj, Track):
                cost += TRACK_CELL_COST * len(obj.path)

        instructions = sum(
            1 for arm_instructions in program.instructions.values() for i in arm_instructions
            if i not in (Instruction.NONE, Instruction.Wait)
        )
        return cls(cost, instructions, arms)

    def __str__(self):
        return f"cost={self.cost}, instructions={self.instructions}, arms={self.arms}"


class Solution:
    """
    A solution to a puzzle.

    Attributes:
        puzzle (Puzzle): The solved puzzle
        objects (list): All placed game objects (groups included)
        program (Program): Instructions per arm
        metrics (SolutionMetrics): Filled in once the solution has been optimised
    """

    def __init__(self, puzzle, objects, program):
        self.puzzle = puzzle
        self.objects = list(objects)
        self.program = program
        self.metrics = None

    def get_objects(self, object_type):
        return [o for o in self.objects if isinstance(o, object_type)]

    def remove_object(self, obj):
        obj.remove()
        self.objects.remove(obj)

    def update_metrics(self):
        placed = [o for o in self.objects if isinstance(o, (Arm, Glyph, Track))]
        self.metrics = SolutionMetrics.calculate(placed, self.program)
        return self.metrics

    def to_dict(self):
        placed = [o for o in self.objects if isinstance(o, (Arm, Glyph, Track, Reagent, Product))]
        return {
            "puzzle": self.puzzle.name,
            "objects": [o.to_dict() for o in placed],
            "program": self.program.to_dict(),
        }

    def __str__(self):
        return f"Solution({self.puzzle.name}, {self.metrics})"
