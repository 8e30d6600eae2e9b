#! .venv\Scripts\python.exe

"""
Builds a track that passes through every given point exactly once.

Points are joined only to neighbours one hex step away, so the track is a
Hamiltonian path over the adjacency graph of the points. A closed path (one
whose ends are adjacent) is preferred because the arm can then move around the
loop in either direction.
"""

from GameObjects import Track, TrackSegment
from SolverErrors import SolverError
from logging_config import setup_logger
logger = setup_logger("TrackPathBuilder")


class TrackPathBuilder:
    """
    Attributes:
        points (list): Distinct track points in the order given
        adjacent_points (dict): Point index -> indexes of the points one step away
    """

    def __init__(self, points):
        self.points = list(dict.fromkeys(points))
        self.adjacent_points = {
            i: [j for j, other in enumerate(self.points) if other.distance_between(point) == 1]
            for i, point in enumerate(self.points)
        }

    def find_path(self):
        """
        Choose the order to visit the points.

        Returns:
            list: The points in track order

        Raises:
            SolverError: If no path visits every point
        """
        first_path = None
        path_count = 0
        for path in self._find_paths():
            path_count += 1
            if first_path is None:
                first_path = path
            if self._is_closed(path):
                logger.debug(f"Using closed path after {path_count} candidates for {len(self.points)} points")
                return [self.points[i] for i in path]

        if first_path is None:
            raise SolverError("Could not construct a track path that uses all points.")

        logger.debug(f"Found {path_count} possible paths for {len(self.points)} points, none closed")
        return [self.points[i] for i in first_path]

    def create_track(self, arena, parent):
        path = self.find_path()
        return Track(arena, parent, path[0], self.create_segments(path))

    @staticmethod
    def create_segments(path):
        segments = []
        for previous_point, point in zip(path, path[1:]):
            direction = (point - previous_point).to_rotation()
            if direction is None:
                raise SolverError(f"Cannot create a straight track segment from {previous_point} to {point}.")
            segments.append(TrackSegment(direction, point.distance_between(previous_point)))
        return segments

    def _is_closed(self, path):
        return len(path) > 2 and path[0] in self.adjacent_points[path[-1]]

    def _find_paths(self):
        """Yield every path that visits all points, depth first from each start point."""
        used = [False] * len(self.points)
        current_path = []

        def build_path(index):
            current_path.append(index)
            used[index] = True
            found_any_adjacent = False
            for adjacent in self.adjacent_points[index]:
                if not used[adjacent]:
                    found_any_adjacent = True
                    yield from build_path(adjacent)
            if not found_any_adjacent and len(current_path) == len(self.points):
                yield list(current_path)
            current_path.pop()
            used[index] = False

        for start in range(len(self.points)):
            yield from build_path(start)
