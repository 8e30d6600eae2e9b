#! .venv\Scripts\python.exe

"""
Hex Geometry Module

Value types for positions and orientations on the hexagonal puzzle board.

Main Components:
- Vector2: Axial hex coordinate (x grows to the right, y grows up-right)
- HexRotation: Rotation in 60 degree steps, positive is counterclockwise
- Transform2D: Rigid transform made of a position and a rotation

All three types are immutable and hashable so they can be used as dictionary
keys by the grid registry and as search states by the arm path finder.
"""


class Vector2:
    """
    Axial coordinate of a hex cell.

    Attributes:
        x (int): Column along the 0 degree axis
        y (int): Column along the 60 degree axis
    """

    __slots__ = ("x", "y")

    def __init__(self, x, y):
        object.__setattr__(self, "x", int(x))
        object.__setattr__(self, "y", int(y))

    def __setattr__(self, name, value):
        raise AttributeError("Vector2 is immutable")

    def __eq__(self, other):
        return isinstance(other, Vector2) and self.x == other.x and self.y == other.y

    def __hash__(self):
        return hash((self.x, self.y))

    def __lt__(self, other):
        return (self.x, self.y) < (other.x, other.y)

    def __add__(self, other):
        return Vector2(self.x + other.x, self.y + other.y)

    def __sub__(self, other):
        return Vector2(self.x - other.x, self.y - other.y)

    def __neg__(self):
        return Vector2(-self.x, -self.y)

    def __mul__(self, scalar):
        return Vector2(self.x * scalar, self.y * scalar)

    __rmul__ = __mul__

    def __iter__(self):
        yield self.x
        yield self.y

    def __repr__(self):
        return f"({self.x}, {self.y})"

    def rotate_by(self, rotation):
        """Rotate this vector about the origin by a HexRotation."""
        x, y = self.x, self.y
        r = HexRotation(rotation).value
        if r == 0:
            return Vector2(x, y)
        if r == 1:
            return Vector2(-y, x + y)
        if r == 2:
            return Vector2(-x - y, x)
        if r == 3:
            return Vector2(-x, -y)
        if r == 4:
            return Vector2(y, -x - y)
        return Vector2(x + y, -x)

    def rotate_about(self, center, rotation):
        return (self - center).rotate_by(rotation) + center

    def offset_in_direction(self, direction, length=1):
        return self + Vector2(length, 0).rotate_by(direction)

    def distance_between(self, other):
        """Number of hex steps between two cells."""
        dx = self.x - other.x
        dy = self.y - other.y
        if (dx >= 0) == (dy >= 0):
            return abs(dx + dy)
        return max(abs(dx), abs(dy))

    def length(self):
        return self.distance_between(Vector2.ZERO)

    def to_rotation(self):
        """
        Direction of a straight-line vector.

        Returns:
            HexRotation or None: The direction pointing along this vector, None
            for the zero vector or vectors that are not on one of the six axes
        """
        n = self.length()
        if n == 0:
            return None
        for rotation in HexRotation.ALL:
            if Vector2(n, 0).rotate_by(rotation) == self:
                return rotation
        return None


Vector2.ZERO = Vector2(0, 0)


class HexRotation:
    """
    A rotation by a multiple of 60 degrees, normalised to 0..5.

    Positive values rotate counterclockwise, matching the game's convention.
    """

    __slots__ = ("value",)

    def __init__(self, value=0):
        if isinstance(value, HexRotation):
            value = value.value
        object.__setattr__(self, "value", int(value) % 6)

    def __setattr__(self, name, value):
        raise AttributeError("HexRotation is immutable")

    def __eq__(self, other):
        if isinstance(other, HexRotation):
            return self.value == other.value
        return NotImplemented

    def __hash__(self):
        return hash(("rot", self.value))

    def __lt__(self, other):
        return self.value < other.value

    def __int__(self):
        return self.value

    def __index__(self):
        return self.value

    def __add__(self, other):
        return HexRotation(self.value + HexRotation(other).value)

    def __sub__(self, other):
        return HexRotation(self.value - HexRotation(other).value)

    def __neg__(self):
        return HexRotation(-self.value)

    def __repr__(self):
        return f"R{self.value * 60}"

    def rotate_60_clockwise(self):
        return HexRotation(self.value - 1)

    def rotate_60_counterclockwise(self):
        return HexRotation(self.value + 1)

    def distance_to(self, other):
        d = (HexRotation(other).value - self.value) % 6
        return min(d, 6 - d)

    def calculate_delta_rotations_to(self, target, clockwise_if_180=False):
        """
        The single 60 degree steps needed to reach target along the shortest way.

        A half turn goes counterclockwise unless clockwise_if_180 is set.
        """
        d = (HexRotation(target).value - self.value) % 6
        if d == 0:
            return []
        if d < 3 or (d == 3 and not clockwise_if_180):
            return [HexRotation.R60] * d
        return [HexRotation.R300] * (6 - d)

    def calculate_rotations_to(self, target, clockwise_if_180=False):
        """Every intermediate rotation (excluding self, including target) on the way to target."""
        rotations = []
        current = self
        for delta in self.calculate_delta_rotations_to(target, clockwise_if_180):
            current = current + delta
            rotations.append(current)
        return rotations

    def calculate_clockwise_delta_rotations_to(self, target):
        d = (self.value - HexRotation(target).value) % 6
        return [HexRotation.R300] * d

    def calculate_counterclockwise_delta_rotations_to(self, target):
        d = (HexRotation(target).value - self.value) % 6
        return [HexRotation.R60] * d


HexRotation.R0 = HexRotation(0)
HexRotation.R60 = HexRotation(1)
HexRotation.R120 = HexRotation(2)
HexRotation.R180 = HexRotation(3)
HexRotation.R240 = HexRotation(4)
HexRotation.R300 = HexRotation(5)
HexRotation.ALL = [HexRotation(i) for i in range(6)]


class Transform2D:
    """
    Rigid transform on the hex grid.

    Attributes:
        position (Vector2): Translation applied after the rotation
        rotation (HexRotation): Rotation about the local origin
    """

    __slots__ = ("position", "rotation")

    def __init__(self, position=None, rotation=None):
        object.__setattr__(self, "position", position if position is not None else Vector2.ZERO)
        object.__setattr__(self, "rotation", HexRotation(rotation) if rotation is not None else HexRotation.R0)

    def __setattr__(self, name, value):
        raise AttributeError("Transform2D is immutable")

    def __eq__(self, other):
        return isinstance(other, Transform2D) and self.position == other.position and self.rotation == other.rotation

    def __hash__(self):
        return hash((self.position, self.rotation))

    def __repr__(self):
        return f"Transform2D({self.position}, {self.rotation})"

    def apply(self, other):
        """
        Apply this transform to a Vector2 (returns a Vector2) or compose it
        with another Transform2D (returns the combined Transform2D).
        """
        if isinstance(other, Transform2D):
            return Transform2D(self.apply(other.position), self.rotation + other.rotation)
        return self.position + other.rotate_by(self.rotation)

    def inverse(self):
        inverse_rotation = -self.rotation
        return Transform2D((-self.position).rotate_by(inverse_rotation), inverse_rotation)

    def rotate_about(self, center, rotation):
        return Transform2D(self.position.rotate_about(center, rotation), self.rotation + rotation)

    def with_position(self, position):
        return Transform2D(position, self.rotation)

    def with_rotation(self, rotation):
        return Transform2D(self.position, rotation)


Transform2D.IDENTITY = Transform2D()
