"""
Production and regeneration.

Each owned planet accrues credit from its fully docked ships and converts
every PRODUCTION_PER_SHIP of credit into a new ship next to its surface.
Docked ships regenerate health.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from .constants import GameConstants
from .world import DockingStatus, Planet, World

# Successive ships spawned by one planet in one turn fan out by this angle
SPAWN_FAN_RAD = math.pi / 6


@dataclass(frozen=True)
class SpawnEvent:
    """A ship produced by a planet."""
    ship_id: int
    owner: int
    planet_id: int

    def to_dict(self) -> dict:
        return {
            "type": "spawn",
            "ship": self.ship_id,
            "owner": self.owner,
            "planet": self.planet_id,
        }


def docked_count(world: World, planet: Planet) -> int:
    """Ships on the planet that have finished docking."""
    return sum(
        1 for ship_id in planet.docked_ships
        if world.ships[ship_id].docking_status is DockingStatus.DOCKED
    )


def spawn_position(world: World, planet: Planet, index: int, constants: GameConstants) -> tuple[float, float]:
    """
    Where the ``index``-th ship produced this turn by ``planet`` appears.

    Ships spawn SPAWN_RADIUS off the surface, facing the map center, with
    later spawns rotated alternately left and right.
    """
    center_angle = math.atan2(world.height / 2 - planet.y, world.width / 2 - planet.x)
    offset = ((index + 1) // 2) * SPAWN_FAN_RAD * (1 if index % 2 else -1)
    angle = center_angle + offset
    distance = planet.radius + constants.SPAWN_RADIUS
    return (
        planet.x + distance * math.cos(angle),
        planet.y + distance * math.sin(angle),
    )


def produce(world: World, constants: GameConstants) -> list[SpawnEvent]:
    """Accrue production on every owned planet and spawn finished ships."""
    events: list[SpawnEvent] = []
    for planet_id, planet in sorted(world.planets.items()):
        if planet.owner is None:
            continue
        docked = docked_count(world, planet)
        if docked == 0:
            continue

        gained = min(planet.remaining_production, docked * constants.BASE_PRODUCTIVITY)
        planet.remaining_production -= gained
        planet.current_production += gained

        spawned = 0
        while planet.current_production >= constants.PRODUCTION_PER_SHIP:
            planet.current_production -= constants.PRODUCTION_PER_SHIP
            x, y = spawn_position(world, planet, spawned, constants)
            ship = world.spawn_ship(planet.owner, x, y, constants.BASE_SHIP_HEALTH)
            events.append(SpawnEvent(ship.ship_id, planet.owner, planet_id))
            spawned += 1
    return events


def regenerate(world: World, constants: GameConstants) -> None:
    """Docked ships regain health up to MAX_SHIP_HEALTH."""
    if constants.DOCKED_SHIP_REGENERATION <= 0:
        return
    for ship in world.ships.values():
        if ship.docking_status is DockingStatus.DOCKED:
            ship.health = min(
                constants.MAX_SHIP_HEALTH,
                ship.health + constants.DOCKED_SHIP_REGENERATION,
            )
