"""
Text protocol between the engine and agent processes.

Agents receive one initial block:

    <player_id> <player_count>
    <width> <height> <seed>
    <world>

and answer with a single line holding their name. Every turn they then
receive one ``<world>`` line and answer with one line of commands (see
``halite_env.commands``).

The world line lists the turn, then every player with its ships, then every
planet. Reals are written with four decimals, missing ids as -1.
"""

from typing import List

from ..world import World


NAME_MAX_LENGTH = 30
REAL_FORMAT = "{:.4f}"


def _real(value: float) -> str:
    return REAL_FORMAT.format(value)


def _opt(value) -> str:
    return "-1" if value is None else str(value)


def serialize_world(world: World, player_id: int) -> str:
    """
    Serialize the world as seen by ``player_id``.

    Every player currently sees the full world; the id is accepted so a
    redacted view can be substituted without touching the coordinator.
    """
    parts: List[str] = [str(world.turn), str(world.player_count)]

    for pid in sorted(world.players):
        ships = world.ships_of(pid)
        parts.append(str(pid))
        parts.append(str(len(ships)))
        for ship in ships:
            parts.extend([
                str(ship.ship_id),
                _real(ship.x),
                _real(ship.y),
                str(ship.health),
                _real(ship.vel_x),
                _real(ship.vel_y),
                str(ship.docking_status.value),
                _opt(ship.docked_planet),
                str(ship.docking_progress),
                str(ship.weapon_cooldown),
            ])

    parts.append(str(len(world.planets)))
    for planet_id in sorted(world.planets):
        planet = world.planets[planet_id]
        parts.extend([
            str(planet.planet_id),
            _real(planet.x),
            _real(planet.y),
            _real(planet.radius),
            str(planet.docking_spots),
            str(planet.current_production),
            str(planet.remaining_production),
            "1" if planet.owner is not None else "0",
            _opt(planet.owner),
            str(len(planet.docked_ships)),
        ])
        parts.extend(str(sid) for sid in planet.docked_ships)

    return " ".join(parts)


def init_message(world: World, player_id: int, seed: int) -> str:
    """Initial block sent once before turn 1."""
    width = int(world.width) if world.width.is_integer() else world.width
    height = int(world.height) if world.height.is_integer() else world.height
    return (
        f"{player_id} {world.player_count}\n"
        f"{width} {height} {seed}\n"
        f"{serialize_world(world, player_id)}"
    )


def parse_name(line: str, player_id: int) -> str:
    """Clean up an agent's name line."""
    name = " ".join(line.split())[:NAME_MAX_LENGTH]
    return name or f"Player {player_id}"
