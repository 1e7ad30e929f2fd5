"""
Toroidal geometry for the Halite match engine.

Two coordinate systems share the same wrap-around map:
- A discrete grid of integer cells (``Map``, ``Grid``) with Manhattan
  distance, four-neighbor enumeration and cardinal moves.
- Continuous positions of ships and planets, measured with Euclidean
  distance along the shortest wrap-around path.

The discrete grid is never authoritative for entity positions. It serves as
a broad-phase index (``SpatialIndex``): continuous positions are bucketed
into cells and proximity queries only examine nearby buckets before the
exact torus distance is checked.

All operations are pure and total for any integer location, including
negative coordinates.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Iterator

import numpy as np

from .errors import ConfigurationError


Location = tuple[int, int]

NEIGHBOR_COUNT = 4


# =============================================================================
# DIRECTIONS
# =============================================================================

class Direction(Enum):
    """Cardinal directions on the grid. North is toward smaller y."""
    NORTH = "n"
    SOUTH = "s"
    EAST = "e"
    WEST = "w"


# =============================================================================
# DISCRETE MAP
# =============================================================================

class Map:
    """
    Wrap-around grid of ``width`` x ``height`` integer cells.

    Cell (0, 0)'s neighbors include cells on the far right column and the
    bottom row.
    """

    def __init__(self, width: int, height: int) -> None:
        if width <= 0 or height <= 0:
            raise ConfigurationError(
                f"Map dimensions must be positive, got {width}x{height}"
            )
        self.width = int(width)
        self.height = int(height)

    def normalize(self, location: Location) -> Location:
        """Wrap a location of any sign onto the map."""
        x, y = location
        return (x % self.width, y % self.height)

    def get_neighbors(self, location: Location) -> list[Location]:
        """
        Return the four locations at Manhattan distance 1.

        Order is east, west, south, north.
        """
        x, y = self.normalize(location)
        return [
            ((x + 1) % self.width, y),
            ((x - 1 + self.width) % self.width, y),
            (x, (y + 1) % self.height),
            (x, (y - 1 + self.height) % self.height),
        ]

    def distance(self, a: Location, b: Location) -> int:
        """
        Manhattan distance between two cells on the wrap-around map.

        Each axis contributes the shorter of the direct difference and the
        difference going around the edge.
        """
        ax, ay = self.normalize(a)
        bx, by = self.normalize(b)
        x_dist = abs(ax - bx)
        y_dist = abs(ay - by)
        return min(x_dist, self.width - x_dist) + min(y_dist, self.height - y_dist)

    def move_location(self, location: Location, direction: Direction) -> Location:
        """Move one cell in a cardinal direction, wrapping at the edges."""
        x, y = self.normalize(location)
        if direction is Direction.NORTH:
            return (x, (y + self.height - 1) % self.height)
        if direction is Direction.SOUTH:
            return (x, (y + 1) % self.height)
        if direction is Direction.EAST:
            return ((x + 1) % self.width, y)
        return ((x + self.width - 1) % self.width, y)

    def locations(self) -> Iterator[Location]:
        """Iterate all cells in row-major order."""
        for y in range(self.height):
            for x in range(self.width):
                yield (x, y)


class Grid(Map):
    """
    A ``Map`` whose cells hold a value, backed by a numpy array.

    The array is indexed ``[y, x]``; all accessors take ``(x, y)`` locations
    and wrap them first.
    """

    def __init__(
        self,
        width: int,
        height: int,
        fill: Any = 0,
        dtype: Any = np.int64,
    ) -> None:
        super().__init__(width, height)
        self.cells = np.full((self.height, self.width), fill, dtype=dtype)

    def get(self, location: Location) -> Any:
        x, y = self.normalize(location)
        return self.cells[y, x].item()

    def set(self, location: Location, value: Any) -> None:
        x, y = self.normalize(location)
        self.cells[y, x] = value

    def add(self, location: Location, amount: Any = 1) -> None:
        x, y = self.normalize(location)
        self.cells[y, x] += amount

    def clear(self, fill: Any = 0) -> None:
        self.cells.fill(fill)

    def total(self) -> Any:
        return self.cells.sum().item()

    def to_bot_string(self) -> str:
        """Serialize as ``width height`` followed by cell values in row order."""
        values = " ".join(str(v) for v in self.cells.ravel().tolist())
        return f"{self.width} {self.height}\n{values}"


# =============================================================================
# CONTINUOUS TORUS
# =============================================================================

def wrap_coordinate(value: float, size: float) -> float:
    """Wrap a real coordinate into ``[0, size)``."""
    wrapped = math.fmod(value, size)
    if wrapped < 0:
        wrapped += size
    # fmod of a tiny negative value can round back up to size
    if wrapped >= size:
        wrapped = 0.0
    return wrapped


def torus_delta(a: float, b: float, size: float) -> float:
    """Signed shortest displacement from ``a`` to ``b`` along one axis."""
    d = math.fmod(b - a, size)
    if d > size / 2:
        d -= size
    elif d < -size / 2:
        d += size
    return d


def torus_distance(
    ax: float, ay: float, bx: float, by: float, width: float, height: float
) -> float:
    """Euclidean distance along the shortest wrap-around path."""
    dx = torus_delta(ax, bx, width)
    dy = torus_delta(ay, by, height)
    return math.hypot(dx, dy)


def angle_to(
    ax: float, ay: float, bx: float, by: float, width: float, height: float
) -> float:
    """Angle in radians of the shortest path from a to b."""
    return math.atan2(torus_delta(ay, by, height), torus_delta(ax, bx, width))


# =============================================================================
# BROAD-PHASE SPATIAL INDEX
# =============================================================================

class SpatialIndex:
    """
    Buckets continuous positions into grid cells for proximity queries.

    The map is divided into ``cols`` x ``rows`` cells, each at least
    ``cell_size`` wide, so a query of radius r only has to visit the cells
    within ceil(r / cell) steps of the query cell. A ``Grid`` keeps the
    per-cell occupancy counts.

    Usage:
        index = SpatialIndex(width, height, cell_size=WEAPON_RADIUS)
        for ship in ships:
            index.insert(ship.ship_id, ship.x, ship.y)
        nearby = index.query(x, y, WEAPON_RADIUS)
    """

    def __init__(self, width: float, height: float, cell_size: float) -> None:
        if cell_size <= 0:
            raise ConfigurationError("cell_size must be positive")
        self.width = float(width)
        self.height = float(height)
        cols = max(1, int(self.width // cell_size))
        rows = max(1, int(self.height // cell_size))
        self.cell_width = self.width / cols
        self.cell_height = self.height / rows
        self.occupancy = Grid(cols, rows)
        self._buckets: dict[Location, list[int]] = {}
        self._positions: dict[int, tuple[float, float]] = {}

    def __len__(self) -> int:
        return len(self._positions)

    def cell_of(self, x: float, y: float) -> Location:
        col = int(wrap_coordinate(x, self.width) // self.cell_width)
        row = int(wrap_coordinate(y, self.height) // self.cell_height)
        return self.occupancy.normalize((col, row))

    def insert(self, entity_id: int, x: float, y: float) -> None:
        cell = self.cell_of(x, y)
        self._buckets.setdefault(cell, []).append(entity_id)
        self._positions[entity_id] = (x, y)
        self.occupancy.add(cell)

    def _cells_around(self, cell: Location, steps: int) -> set[Location]:
        # Walk outward ring by ring through the grid neighbors
        visited = {cell}
        frontier = [cell]
        for _ in range(steps):
            next_frontier = []
            for location in frontier:
                for neighbor in self.occupancy.get_neighbors(location):
                    if neighbor not in visited:
                        visited.add(neighbor)
                        next_frontier.append(neighbor)
            frontier = next_frontier
        return visited

    def query(self, x: float, y: float, radius: float) -> list[int]:
        """Return ids within ``radius`` of (x, y), ascending."""
        steps_x = math.ceil(radius / self.cell_width)
        steps_y = math.ceil(radius / self.cell_height)
        # Manhattan rings of 2 * steps cover the square of cells around the
        # query cell, including the diagonals
        cells = self._cells_around(self.cell_of(x, y), steps_x + steps_y)

        found = []
        for cell in cells:
            for entity_id in self._buckets.get(cell, ()):
                ex, ey = self._positions[entity_id]
                if torus_distance(x, y, ex, ey, self.width, self.height) <= radius:
                    found.append(entity_id)
        return sorted(found)
