"""
Tests for seeded map generation.
"""

import math

import pytest

from halite_env.constants import DEFAULT_CONSTANTS, GameConstants
from halite_env.errors import ConfigurationError
from halite_env.mapgen import (
    MAP_SIZE_CHOICES,
    SHIPS_PER_PLAYER,
    choose_dimensions,
    generate_world,
    start_positions,
)
from halite_env.world import world_hash


class TestGenerateWorld:
    """Tests for initial world layout."""

    def test_same_seed_same_world(self):
        a = generate_world(160, 160, seed=42, player_count=4)
        b = generate_world(160, 160, seed=42, player_count=4)
        assert world_hash(a) == world_hash(b)

    def test_different_seed_different_world(self):
        a = generate_world(160, 160, seed=1, player_count=2)
        b = generate_world(160, 160, seed=2, player_count=2)
        assert world_hash(a) != world_hash(b)

    @pytest.mark.parametrize("player_count", [1, 2, 3, 4, 5, 6])
    def test_fleets_and_planets(self, player_count):
        world = generate_world(200, 200, seed=5, player_count=player_count)
        assert world.turn == 0
        assert world.living_players() == list(range(player_count))
        for pid in range(player_count):
            ships = world.ships_of(pid)
            assert len(ships) == SHIPS_PER_PLAYER
            assert all(s.health == DEFAULT_CONSTANTS.BASE_SHIP_HEALTH for s in ships)

        expected = DEFAULT_CONSTANTS.PLANETS_PER_PLAYER * player_count + DEFAULT_CONSTANTS.EXTRA_PLANETS
        assert 0 < len(world.planets) <= expected

    def test_planets_do_not_overlap(self):
        world = generate_world(200, 200, seed=9, player_count=4)
        planets = list(world.planets.values())
        for i, a in enumerate(planets):
            assert a.owner is None
            assert a.docking_spots >= 1
            assert a.remaining_production > 0
            for b in planets[i + 1:]:
                assert math.hypot(a.x - b.x, a.y - b.y) > a.radius + b.radius

    def test_constants_control_planet_count(self):
        constants = GameConstants(PLANETS_PER_PLAYER=1, EXTRA_PLANETS=0)
        world = generate_world(200, 200, seed=3, player_count=2, constants=constants)
        assert len(world.planets) == 2

    @pytest.mark.parametrize("player_count", [0, 7])
    def test_bad_player_count(self, player_count):
        with pytest.raises(ConfigurationError):
            generate_world(160, 160, seed=1, player_count=player_count)

    def test_map_too_small(self):
        with pytest.raises(ConfigurationError):
            generate_world(20, 20, seed=1, player_count=2)


class TestLayoutHelpers:
    """Tests for dimension choice and start positions."""

    @pytest.mark.parametrize("seed", [0, 1, 99, 123456])
    def test_choose_dimensions(self, seed):
        width, height = choose_dimensions(seed)
        assert width == height
        assert width in MAP_SIZE_CHOICES
        assert choose_dimensions(seed) == (width, height)

    def test_single_player_starts_at_center(self):
        assert start_positions(100, 80, 1) == [(50, 40)]

    def test_starts_are_distinct(self):
        starts = start_positions(200, 200, 6)
        for i, a in enumerate(starts):
            for b in starts[i + 1:]:
                assert math.hypot(a[0] - b[0], a[1] - b[1]) > 20
