"""
Authoritative world state for a Halite match.

The world owns every live entity and the per-player metadata. It is mutated
only by the turn resolver; agents only ever see serialized snapshots.
"""

from __future__ import annotations

import copy
import hashlib
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from .errors import ConfigurationError
from .geometry import wrap_coordinate


# =============================================================================
# ENUMS
# =============================================================================

class DockingStatus(Enum):
    """Docking state of a ship. Values are the wire codes."""
    UNDOCKED = 0
    DOCKING = 1
    DOCKED = 2
    UNDOCKING = 3


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass
class Ship:
    """
    A movable unit.

    Attributes:
        ship_id: Unique id, never reused within a match.
        owner: Owning player id.
        x, y: Position in [0, width) x [0, height).
        vel_x, vel_y: Velocity carried into the next turn.
        health: Hit points; the ship is removed at end of turn when <= 0.
        weapon_cooldown: Turns until the weapon can fire again.
        docking_status: Current docking state.
        docked_planet: Planet whose slot the ship holds, if any.
        docking_progress: Turns left in the current docking/undocking.
        thrust_x, thrust_y: Acceleration accepted this turn.
    """
    ship_id: int
    owner: int
    x: float
    y: float
    health: int
    vel_x: float = 0.0
    vel_y: float = 0.0
    weapon_cooldown: int = 0
    docking_status: DockingStatus = DockingStatus.UNDOCKED
    docked_planet: Optional[int] = None
    docking_progress: int = 0
    thrust_x: float = 0.0
    thrust_y: float = 0.0

    @property
    def is_undocked(self) -> bool:
        return self.docking_status is DockingStatus.UNDOCKED

    @property
    def is_alive(self) -> bool:
        return self.health > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.ship_id,
            "owner": self.owner,
            "x": self.x,
            "y": self.y,
            "vel_x": self.vel_x,
            "vel_y": self.vel_y,
            "health": self.health,
            "cooldown": self.weapon_cooldown,
            "docking": self.docking_status.value,
            "planet": self.docked_planet,
            "progress": self.docking_progress,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Ship:
        return cls(
            ship_id=data["id"],
            owner=data["owner"],
            x=data["x"],
            y=data["y"],
            health=data["health"],
            vel_x=data.get("vel_x", 0.0),
            vel_y=data.get("vel_y", 0.0),
            weapon_cooldown=data.get("cooldown", 0),
            docking_status=DockingStatus(data.get("docking", 0)),
            docked_planet=data.get("planet"),
            docking_progress=data.get("progress", 0),
        )


@dataclass
class Planet:
    """
    A stationary production site.

    Attributes:
        planet_id: Unique id.
        x, y: Fixed center position.
        radius: Planet radius; docking range is measured from the surface.
        docking_spots: Number of slots.
        owner: Owning player, None while unclaimed.
        remaining_production: Production capacity left.
        current_production: Accrued credit toward the next ship.
        docked_ships: Ids of ships holding a slot, in slot order.
    """
    planet_id: int
    x: float
    y: float
    radius: float
    docking_spots: int
    remaining_production: int
    owner: Optional[int] = None
    current_production: int = 0
    docked_ships: list[int] = field(default_factory=list)

    @property
    def is_full(self) -> bool:
        return len(self.docked_ships) >= self.docking_spots

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.planet_id,
            "x": self.x,
            "y": self.y,
            "radius": self.radius,
            "docking_spots": self.docking_spots,
            "owner": self.owner,
            "remaining_production": self.remaining_production,
            "current_production": self.current_production,
            "docked_ships": list(self.docked_ships),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Planet:
        return cls(
            planet_id=data["id"],
            x=data["x"],
            y=data["y"],
            radius=data["radius"],
            docking_spots=data["docking_spots"],
            remaining_production=data["remaining_production"],
            owner=data.get("owner"),
            current_production=data.get("current_production", 0),
            docked_ships=list(data.get("docked_ships", [])),
        )


@dataclass
class PlayerState:
    """Per-player metadata."""
    player_id: int
    name: str = ""
    alive: bool = True
    eliminated_turn: Optional[int] = None
    fault: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.player_id,
            "name": self.name,
            "alive": self.alive,
            "eliminated_turn": self.eliminated_turn,
            "fault": self.fault,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PlayerState:
        return cls(
            player_id=data["id"],
            name=data.get("name", ""),
            alive=data.get("alive", True),
            eliminated_turn=data.get("eliminated_turn"),
            fault=data.get("fault"),
        )


# =============================================================================
# WORLD
# =============================================================================

class World:
    """
    The canonical match state.

    Usage:
        world = World(width=160, height=160, player_count=2)
        world.add_planet(Planet(...))
        world.spawn_ship(owner=0, x=10.0, y=10.0, health=255)
    """

    def __init__(self, width: float, height: float, player_count: int) -> None:
        if width <= 0 or height <= 0:
            raise ConfigurationError(
                f"World dimensions must be positive, got {width}x{height}"
            )
        if player_count < 1:
            raise ConfigurationError("A world needs at least one player")

        self.width = float(width)
        self.height = float(height)
        self.turn = 0
        self.ships: dict[int, Ship] = {}
        self.planets: dict[int, Planet] = {}
        self.players: dict[int, PlayerState] = {
            pid: PlayerState(player_id=pid, name=f"Player {pid}")
            for pid in range(player_count)
        }
        self.next_ship_id = 0

    # -------------------------------------------------------------------------
    # Entity Management
    # -------------------------------------------------------------------------

    @property
    def player_count(self) -> int:
        return len(self.players)

    def add_planet(self, planet: Planet) -> None:
        self.planets[planet.planet_id] = planet

    def spawn_ship(self, owner: int, x: float, y: float, health: int) -> Ship:
        """Create a ship with the next free id."""
        ship = Ship(
            ship_id=self.next_ship_id,
            owner=owner,
            x=wrap_coordinate(x, self.width),
            y=wrap_coordinate(y, self.height),
            health=health,
        )
        self.ships[ship.ship_id] = ship
        self.next_ship_id += 1
        return ship

    def get_ship(self, ship_id: int) -> Optional[Ship]:
        return self.ships.get(ship_id)

    def get_planet(self, planet_id: int) -> Optional[Planet]:
        return self.planets.get(planet_id)

    def ships_of(self, player_id: int) -> list[Ship]:
        """Ships owned by a player, ascending id."""
        return [
            s for sid, s in sorted(self.ships.items())
            if s.owner == player_id
        ]

    def ship_count(self, player_id: int) -> int:
        return sum(1 for s in self.ships.values() if s.owner == player_id)

    def living_players(self) -> list[int]:
        return [pid for pid, p in sorted(self.players.items()) if p.alive]

    def release_slot(self, ship: Ship) -> None:
        """Free the planet slot held by a ship, unclaiming an emptied planet."""
        if ship.docked_planet is None:
            return
        planet = self.get_planet(ship.docked_planet)
        if planet is not None:
            if ship.ship_id in planet.docked_ships:
                planet.docked_ships.remove(ship.ship_id)
            if not planet.docked_ships:
                planet.owner = None
                planet.current_production = 0
        ship.docked_planet = None
        ship.docking_status = DockingStatus.UNDOCKED
        ship.docking_progress = 0

    def remove_ship(self, ship_id: int) -> Optional[Ship]:
        ship = self.ships.pop(ship_id, None)
        if ship is not None:
            self.release_slot(ship)
        return ship

    def eliminate_player(
        self,
        player_id: int,
        turn: int,
        fault: Optional[str] = None,
    ) -> list[int]:
        """
        Mark a player eliminated and destroy everything it owns.

        Returns:
            Ids of the ships that were removed.
        """
        player = self.players[player_id]
        removed = [s.ship_id for s in self.ships_of(player_id)]
        for ship_id in removed:
            self.remove_ship(ship_id)
        if player.alive:
            player.alive = False
            player.eliminated_turn = turn
            player.fault = fault
        return removed

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def snapshot(self) -> dict[str, Any]:
        """JSON-compatible copy of the full state, entities in id order."""
        return {
            "turn": self.turn,
            "width": self.width,
            "height": self.height,
            "next_ship_id": self.next_ship_id,
            "players": [p.to_dict() for _, p in sorted(self.players.items())],
            "ships": [s.to_dict() for _, s in sorted(self.ships.items())],
            "planets": [p.to_dict() for _, p in sorted(self.planets.items())],
        }

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> World:
        world = cls(data["width"], data["height"], len(data["players"]))
        world.turn = data["turn"]
        world.next_ship_id = data["next_ship_id"]
        world.players = {
            p["id"]: PlayerState.from_dict(p) for p in data["players"]
        }
        world.ships = {s["id"]: Ship.from_dict(s) for s in data["ships"]}
        world.planets = {p["id"]: Planet.from_dict(p) for p in data["planets"]}
        return world

    def copy(self) -> World:
        return copy.deepcopy(self)


def world_hash(world: World) -> str:
    """SHA-256 of the canonical JSON snapshot."""
    encoded = json.dumps(
        world.snapshot(),
        sort_keys=True,
        separators=(",", ":"),
    ).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()
