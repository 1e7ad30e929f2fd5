"""
Tests for the toroidal geometry module.

Tests cover:
- Grid neighbors, wrap-around Manhattan distance and cardinal moves
- numpy-backed Grid cell access
- Continuous torus helpers
- SpatialIndex queries against a brute-force scan

Run with: pytest tests/test_geometry.py -v
"""

import math
import random

import pytest

from halite_env.errors import ConfigurationError
from halite_env.geometry import (
    NEIGHBOR_COUNT,
    Direction,
    Grid,
    Map,
    SpatialIndex,
    angle_to,
    torus_delta,
    torus_distance,
    wrap_coordinate,
)


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def small_map():
    return Map(5, 4)


# =============================================================================
# DISCRETE MAP
# =============================================================================

class TestMap:
    """Tests for the wrap-around grid."""

    def test_rejects_non_positive_dimensions(self):
        with pytest.raises(ConfigurationError):
            Map(0, 10)
        with pytest.raises(ConfigurationError):
            Map(10, -1)

    def test_corner_neighbors_wrap(self):
        m = Map(10, 10)
        assert m.get_neighbors((0, 0)) == [(1, 0), (9, 0), (0, 1), (0, 9)]

    def test_neighbors_are_at_distance_one(self, small_map):
        for location in small_map.locations():
            neighbors = small_map.get_neighbors(location)
            assert len(neighbors) == NEIGHBOR_COUNT
            for neighbor in neighbors:
                assert small_map.distance(location, neighbor) == 1

    def test_distance_wraps_both_axes(self):
        m = Map(10, 10)
        assert m.distance((0, 0), (9, 9)) == 2
        assert m.distance((0, 0), (5, 5)) == 10
        assert m.distance((2, 3), (2, 3)) == 0

    def test_distance_is_symmetric(self, small_map):
        cells = list(small_map.locations())
        for a in cells:
            for b in cells:
                assert small_map.distance(a, b) == small_map.distance(b, a)

    def test_negative_locations_are_normalized(self):
        m = Map(10, 8)
        assert m.normalize((-1, -1)) == (9, 7)
        assert m.distance((-1, 0), (9, 0)) == 0

    @pytest.mark.parametrize("direction,expected", [
        (Direction.NORTH, (0, 3)),
        (Direction.SOUTH, (0, 1)),
        (Direction.EAST, (1, 0)),
        (Direction.WEST, (4, 0)),
    ])
    def test_move_location_wraps(self, small_map, direction, expected):
        assert small_map.move_location((0, 0), direction) == expected

    def test_move_is_a_neighbor(self, small_map):
        for location in small_map.locations():
            for direction in Direction:
                moved = small_map.move_location(location, direction)
                assert moved in small_map.get_neighbors(location)

    def test_locations_cover_map(self, small_map):
        cells = list(small_map.locations())
        assert len(cells) == 20
        assert len(set(cells)) == 20


class TestGrid:
    """Tests for the numpy-backed grid."""

    def test_add_wraps_location(self):
        grid = Grid(4, 3)
        grid.add((5, 1))
        grid.add((1, -2), 2)
        assert grid.get((1, 1)) == 3
        assert grid.total() == 3

    def test_set_and_clear(self):
        grid = Grid(2, 2)
        grid.set((0, 1), 7)
        assert grid.cells[1, 0] == 7
        grid.clear()
        assert grid.total() == 0

    def test_bot_string(self):
        grid = Grid(2, 2)
        grid.set((1, 0), 5)
        assert grid.to_bot_string() == "2 2\n0 5 0 0"


# =============================================================================
# CONTINUOUS TORUS
# =============================================================================

class TestTorus:
    """Tests for the continuous wrap-around helpers."""

    @pytest.mark.parametrize("value,size,expected", [
        (3.5, 10.0, 3.5),
        (-1.0, 10.0, 9.0),
        (10.0, 10.0, 0.0),
        (25.0, 10.0, 5.0),
        (-1e-20, 10.0, 0.0),
    ])
    def test_wrap_coordinate(self, value, size, expected):
        wrapped = wrap_coordinate(value, size)
        assert wrapped == pytest.approx(expected)
        assert 0.0 <= wrapped < size

    def test_delta_takes_short_way(self):
        assert torus_delta(1.0, 9.0, 10.0) == pytest.approx(-2.0)
        assert torus_delta(9.0, 1.0, 10.0) == pytest.approx(2.0)
        assert torus_delta(2.0, 5.0, 10.0) == pytest.approx(3.0)

    def test_distance_across_corner(self):
        d = torus_distance(1.0, 1.0, 99.0, 99.0, 100.0, 100.0)
        assert d == pytest.approx(math.hypot(2.0, 2.0))

    def test_angle_to_uses_short_path(self):
        angle = angle_to(1.0, 5.0, 99.0, 5.0, 100.0, 100.0)
        assert abs(angle) == pytest.approx(math.pi)


# =============================================================================
# SPATIAL INDEX
# =============================================================================

class TestSpatialIndex:
    """Tests for the broad-phase index."""

    def test_query_across_edge(self):
        index = SpatialIndex(100.0, 100.0, cell_size=5.0)
        index.insert(0, 1.0, 1.0)
        index.insert(1, 98.0, 1.0)
        index.insert(2, 50.0, 50.0)
        assert len(index) == 3
        assert index.query(1.0, 1.0, 5.0) == [0, 1]
        assert index.query(50.0, 50.0, 1.0) == [2]

    def test_occupancy_counts(self):
        index = SpatialIndex(20.0, 20.0, cell_size=5.0)
        index.insert(0, 1.0, 1.0)
        index.insert(1, 2.0, 2.0)
        assert index.occupancy.get((0, 0)) == 2
        assert index.occupancy.total() == 2

    def test_rejects_zero_cell(self):
        with pytest.raises(ConfigurationError):
            SpatialIndex(10.0, 10.0, cell_size=0)

    @pytest.mark.parametrize("cell_size,radius", [
        (5.0, 5.0),
        (1.0, 1.0),
        (7.0, 3.0),
        (3.0, 9.5),
    ])
    def test_matches_brute_force(self, cell_size, radius):
        rng = random.Random(1234)
        width, height = 60.0, 45.0
        points = [(rng.uniform(0, width), rng.uniform(0, height)) for _ in range(150)]
        index = SpatialIndex(width, height, cell_size=cell_size)
        for i, (x, y) in enumerate(points):
            index.insert(i, x, y)

        for qx, qy in points[:30]:
            expected = sorted(
                i for i, (x, y) in enumerate(points)
                if torus_distance(qx, qy, x, y, width, height) <= radius
            )
            assert index.query(qx, qy, radius) == expected
