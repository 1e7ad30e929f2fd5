#!/usr/bin/env python3
"""
Turn Resolution Engine for the Halite match engine.

This module implements the deterministic Resolving phase of a turn:
- Filters and orders agent commands (ascending player id, then ship id)
- Applies thrust, docking and undocking commands
- Integrates movement on the wrap-around map
- Resolves collisions and weapon fire
- Advances docking countdowns and removes destroyed ships
- Runs production and regeneration
- Eliminates players left without ships
- Verifies world invariants before handing the turn back

Given the same world and the same commands, ``resolve_turn`` always
produces the same resulting world, independent of the order in which the
commands arrived.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from .combat import CombatResolver, DamageEvent
from .commands import (
    Command,
    DockCommand,
    NoOpCommand,
    ThrustCommand,
    UndockCommand,
)
from .constants import DEFAULT_CONSTANTS, GameConstants
from .economy import SpawnEvent, produce, regenerate
from .errors import InvariantViolation
from .geometry import torus_distance
from .physics import advance_ship, thrust_vector
from .world import DockingStatus, Planet, Ship, World


# =============================================================================
# TURN OUTCOME
# =============================================================================

@dataclass
class TurnOutcome:
    """
    Everything that happened while resolving one turn.

    Attributes:
        turn: The turn number the world advanced to.
        commands: Accepted commands per player, in application order.
        damage: Damage events from collisions and weapons.
        spawns: Ships produced this turn.
        docked: (ship_id, planet_id) pairs that started docking.
        eliminated: Players eliminated for having no ships left.
    """
    turn: int
    commands: dict[int, list[Command]] = field(default_factory=dict)
    damage: list[DamageEvent] = field(default_factory=list)
    spawns: list[SpawnEvent] = field(default_factory=list)
    docked: list[tuple[int, int]] = field(default_factory=list)
    eliminated: list[int] = field(default_factory=list)

    def events(self) -> list[dict]:
        """Recorded events in a JSON-compatible form."""
        out = [e.to_dict() for e in self.damage]
        out += [e.to_dict() for e in self.spawns]
        out += [
            {"type": "dock", "ship": ship_id, "planet": planet_id}
            for ship_id, planet_id in self.docked
        ]
        out += [
            {"type": "eliminated", "player": pid, "reason": "no_ships"}
            for pid in self.eliminated
        ]
        return out

    def encoded_commands(self) -> dict[str, list[str]]:
        return {
            str(pid): [c.encode() for c in commands]
            for pid, commands in sorted(self.commands.items())
        }


# =============================================================================
# SIMULATION
# =============================================================================

class Simulation:
    """
    Applies the rules to a world one turn at a time.

    Usage:
        sim = Simulation(world, constants)
        outcome = sim.resolve_turn({0: [ThrustCommand(0, 7, 90)], 1: []})

    Attributes:
        world: The world being advanced (mutated in place).
        constants: Rule constants for the whole match.
        combat: Collision and weapon resolver.
    """

    def __init__(self, world: World, constants: Optional[GameConstants] = None) -> None:
        self.world = world
        self.constants = constants or DEFAULT_CONSTANTS
        self.combat = CombatResolver(self.constants)

    # -------------------------------------------------------------------------
    # Command Selection
    # -------------------------------------------------------------------------

    def select_commands(
        self,
        commands_by_player: Mapping[int, Sequence[Command]],
    ) -> dict[int, list[Command]]:
        """
        Reduce raw agent commands to at most one command per owned ship.

        Eliminated players lose all their commands. Within a player the first
        command naming a ship wins; commands naming ships the player does not
        own are dropped. The result is ordered by ascending ship id.
        """
        selected: dict[int, list[Command]] = {}
        for pid in sorted(commands_by_player):
            player = self.world.players.get(pid)
            if player is None or not player.alive:
                continue

            by_ship: dict[int, Command] = {}
            for command in commands_by_player[pid]:
                ship = self.world.get_ship(command.ship_id)
                if ship is None or ship.owner != pid:
                    continue
                by_ship.setdefault(command.ship_id, command)
            selected[pid] = [by_ship[sid] for sid in sorted(by_ship)]
        return selected

    # -------------------------------------------------------------------------
    # Docking
    # -------------------------------------------------------------------------

    def can_dock(self, ship: Ship, planet: Planet) -> bool:
        """Whether ``ship`` may start docking to ``planet`` this turn."""
        if not ship.is_undocked:
            return False
        if planet.owner is not None and planet.owner != ship.owner:
            return False
        if planet.is_full:
            return False
        surface_distance = torus_distance(
            ship.x, ship.y, planet.x, planet.y, self.world.width, self.world.height
        ) - planet.radius
        return surface_distance <= self.constants.MAX_DOCKING_DISTANCE

    def _resolve_dock_requests(self, requests: list[tuple[Ship, Planet]]) -> list[tuple[int, int]]:
        by_planet: dict[int, list[Ship]] = {}
        for ship, planet in requests:
            if self.can_dock(ship, planet):
                by_planet.setdefault(planet.planet_id, []).append(ship)

        started: list[tuple[int, int]] = []
        for planet_id in sorted(by_planet):
            planet = self.world.planets[planet_id]
            ships = sorted(by_planet[planet_id], key=lambda s: s.ship_id)
            # Simultaneous claims on a free planet cancel out
            if planet.owner is None and len({s.owner for s in ships}) > 1:
                continue
            for ship in ships:
                if planet.is_full:
                    break
                planet.owner = ship.owner
                planet.docked_ships.append(ship.ship_id)
                ship.docking_status = DockingStatus.DOCKING
                ship.docked_planet = planet_id
                ship.docking_progress = self.constants.DOCK_TURNS
                ship.vel_x = ship.vel_y = 0.0
                ship.thrust_x = ship.thrust_y = 0.0
                started.append((ship.ship_id, planet_id))
        return started

    def _advance_docking(self) -> None:
        for _, ship in sorted(self.world.ships.items()):
            if ship.docking_status not in (DockingStatus.DOCKING, DockingStatus.UNDOCKING):
                continue
            if ship.docking_progress > 0:
                ship.docking_progress -= 1
            if ship.docking_progress > 0:
                continue
            if ship.docking_status is DockingStatus.DOCKING:
                ship.docking_status = DockingStatus.DOCKED
                self.world.planets[ship.docked_planet].owner = ship.owner
            else:
                self.world.release_slot(ship)

    # -------------------------------------------------------------------------
    # Turn Resolution
    # -------------------------------------------------------------------------

    def apply_commands(self, selected: dict[int, list[Command]], outcome: TurnOutcome) -> None:
        """Apply selected commands in ascending player then ship order."""
        dock_requests: list[tuple[Ship, Planet]] = []
        for pid in sorted(selected):
            for command in selected[pid]:
                ship = self.world.ships[command.ship_id]
                if isinstance(command, ThrustCommand):
                    if ship.is_undocked:
                        accel = thrust_vector(command.magnitude, command.angle, self.constants)
                        ship.thrust_x, ship.thrust_y = accel.x, accel.y
                elif isinstance(command, DockCommand):
                    planet = self.world.get_planet(command.planet_id)
                    if planet is not None:
                        dock_requests.append((ship, planet))
                elif isinstance(command, UndockCommand):
                    if ship.docking_status is DockingStatus.DOCKED:
                        ship.docking_status = DockingStatus.UNDOCKING
                        ship.docking_progress = self.constants.DOCK_TURNS
                elif isinstance(command, NoOpCommand):
                    pass
        outcome.docked = self._resolve_dock_requests(dock_requests)

    def resolve_turn(self, commands_by_player: Mapping[int, Sequence[Command]]) -> TurnOutcome:
        """
        Resolve one full turn.

        Args:
            commands_by_player: Parsed commands keyed by player id. Players
                missing from the mapping simply issue no commands.

        Returns:
            TurnOutcome describing the turn.

        Raises:
            InvariantViolation: If the resulting world breaks a rule invariant.
        """
        world = self.world
        previous_turn = world.turn
        next_turn = previous_turn + 1
        outcome = TurnOutcome(turn=next_turn)

        outcome.commands = self.select_commands(commands_by_player)
        self.apply_commands(outcome.commands, outcome)

        self.combat.tick_cooldowns(world)

        for _, ship in sorted(world.ships.items()):
            if ship.is_undocked:
                advance_ship(ship, world.width, world.height, self.constants)

        outcome.damage = self.combat.resolve_collisions(world)
        outcome.damage += self.combat.resolve_weapons(world)

        self._advance_docking()

        for ship_id in sorted(world.ships):
            if not world.ships[ship_id].is_alive:
                world.remove_ship(ship_id)

        outcome.spawns = produce(world, self.constants)
        regenerate(world, self.constants)

        for pid in world.living_players():
            if world.ship_count(pid) == 0:
                world.eliminate_player(pid, next_turn)
                outcome.eliminated.append(pid)

        world.turn = next_turn
        check_invariants(world, previous_turn)
        return outcome


# =============================================================================
# INVARIANTS
# =============================================================================

def check_invariants(world: World, previous_turn: int) -> None:
    """
    Verify the world after a resolved turn.

    Raises:
        InvariantViolation: On the first broken invariant found.
    """
    turn = world.turn
    if turn != previous_turn + 1:
        raise InvariantViolation(
            f"turn counter moved from {previous_turn} to {turn}", turn
        )

    for ship_id, ship in world.ships.items():
        if not ship.is_alive:
            raise InvariantViolation(f"ship {ship_id} survived with health {ship.health}", turn)
        if not (0 <= ship.x < world.width and 0 <= ship.y < world.height):
            raise InvariantViolation(f"ship {ship_id} out of bounds", turn)
        if ship.weapon_cooldown < 0:
            raise InvariantViolation(f"ship {ship_id} has negative cooldown", turn)
        player = world.players.get(ship.owner)
        if player is None or not player.alive:
            raise InvariantViolation(
                f"ship {ship_id} owned by eliminated player {ship.owner}", turn
            )
        if ship.docking_status is DockingStatus.UNDOCKED:
            if ship.docked_planet is not None:
                raise InvariantViolation(f"undocked ship {ship_id} holds a slot", turn)
            continue
        planet = world.get_planet(ship.docked_planet)
        if planet is None or ship_id not in planet.docked_ships:
            raise InvariantViolation(f"ship {ship_id} holds no valid slot", turn)
        if planet.owner != ship.owner:
            raise InvariantViolation(
                f"ship {ship_id} docked to planet {planet.planet_id} of another owner", turn
            )

    for planet_id, planet in world.planets.items():
        if len(planet.docked_ships) > planet.docking_spots:
            raise InvariantViolation(f"planet {planet_id} over capacity", turn)
        if len(set(planet.docked_ships)) != len(planet.docked_ships):
            raise InvariantViolation(f"planet {planet_id} lists a ship twice", turn)
        for ship_id in planet.docked_ships:
            ship = world.get_ship(ship_id)
            if ship is None or ship.docked_planet != planet_id:
                raise InvariantViolation(
                    f"planet {planet_id} slot references ship {ship_id}", turn
                )
        if (planet.owner is None) != (not planet.docked_ships):
            raise InvariantViolation(f"planet {planet_id} ownership mismatch", turn)
