"""
Seeded map generation.

``generate_world`` is a black box to the rest of the engine: given the
dimensions, a seed and a player count it returns the initial world. The
same arguments always produce the same world.

Layout: players start evenly spaced on a ring around the map center with
three ships each. Planets are placed by rejection sampling so that they
neither overlap each other nor crowd a starting fleet.
"""

import math
import random
from typing import List, Optional, Tuple

from .constants import DEFAULT_CONSTANTS, GameConstants
from .errors import ConfigurationError
from .world import Planet, World


MIN_PLAYERS = 1
MAX_PLAYERS = 6

# Dimensions are drawn from these when none are given
MAP_SIZE_CHOICES = (100, 125, 128, 150, 175, 200, 225, 250, 256)
MIN_DIMENSION = 40

SHIPS_PER_PLAYER = 3
SHIP_SPACING = 2.0
MIN_PLANET_RADIUS = 3.0
MAX_PLANET_RADIUS = 8.0
PLANET_MARGIN = 3.0
START_CLEARANCE = 10.0
PLACEMENT_ATTEMPTS = 200


def choose_dimensions(seed: int) -> Tuple[int, int]:
    """Pick a square map size from the seed."""
    rng = random.Random(seed)
    size = rng.choice(MAP_SIZE_CHOICES)
    return size, size


def validate_setup(width: float, height: float, player_count: int) -> None:
    """
    Reject setups the generator cannot honor.

    Raises:
        ConfigurationError: On a bad player count or a map too small.
    """
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise ConfigurationError(
            f"A map can only accommodate between {MIN_PLAYERS} and "
            f"{MAX_PLAYERS} players, got {player_count}"
        )
    if width < MIN_DIMENSION or height < MIN_DIMENSION:
        raise ConfigurationError(
            f"Map must be at least {MIN_DIMENSION}x{MIN_DIMENSION}, got {width}x{height}"
        )


def start_positions(width: float, height: float, player_count: int) -> List[Tuple[float, float]]:
    """Fleet anchor for each player, evenly spaced on a ring."""
    cx, cy = width / 2, height / 2
    if player_count == 1:
        return [(cx, cy)]
    ring = min(width, height) * 0.35
    return [
        (
            cx + ring * math.cos(2 * math.pi * pid / player_count + math.pi),
            cy + ring * math.sin(2 * math.pi * pid / player_count + math.pi),
        )
        for pid in range(player_count)
    ]


def _place_planets(
    rng: random.Random,
    width: float,
    height: float,
    count: int,
    starts: List[Tuple[float, float]],
) -> List[Tuple[float, float, float]]:
    placed: List[Tuple[float, float, float]] = []
    for _ in range(count):
        for _ in range(PLACEMENT_ATTEMPTS):
            radius = round(rng.uniform(MIN_PLANET_RADIUS, MAX_PLANET_RADIUS), 1)
            x = rng.uniform(radius + PLANET_MARGIN, width - radius - PLANET_MARGIN)
            y = rng.uniform(radius + PLANET_MARGIN, height - radius - PLANET_MARGIN)
            if any(
                math.hypot(x - px, y - py) < radius + pr + PLANET_MARGIN
                for px, py, pr in placed
            ):
                continue
            if any(
                math.hypot(x - sx, y - sy) < radius + START_CLEARANCE
                for sx, sy in starts
            ):
                continue
            placed.append((x, y, radius))
            break
    return placed


def generate_world(
    width: float,
    height: float,
    seed: int,
    player_count: int,
    constants: Optional[GameConstants] = None,
) -> World:
    """
    Build the initial world for a match.

    Args:
        width: Map width
        height: Map height
        seed: Generator seed
        player_count: Number of competitors (1-6)
        constants: Game constants (defaults if omitted)

    Returns:
        World at turn 0

    Raises:
        ConfigurationError: If the setup is invalid.
    """
    constants = constants or DEFAULT_CONSTANTS
    validate_setup(width, height, player_count)

    rng = random.Random(seed)
    world = World(width, height, player_count)
    starts = start_positions(width, height, player_count)

    for pid, (sx, sy) in enumerate(starts):
        for i in range(SHIPS_PER_PLAYER):
            offset = (i - (SHIPS_PER_PLAYER - 1) / 2) * SHIP_SPACING
            world.spawn_ship(pid, sx, sy + offset, constants.BASE_SHIP_HEALTH)

    planet_count = constants.PLANETS_PER_PLAYER * player_count + constants.EXTRA_PLANETS
    for planet_id, (x, y, radius) in enumerate(
        _place_planets(rng, width, height, planet_count, starts)
    ):
        spots = max(1, int(radius // 2))
        world.add_planet(Planet(
            planet_id=planet_id,
            x=x,
            y=y,
            radius=radius,
            docking_spots=spots,
            remaining_production=int(radius * 200),
        ))
    return world
