"""
Combat mechanics module for the Halite match engine.

This module resolves ship-versus-ship damage for one turn:
- Collisions: ships of different owners overlapping on end-of-turn
  positions exchange damage.
- Weapons: every ready, undocked ship fires at all enemies within
  WEAPON_RADIUS, splitting its damage evenly (integer division).

Both phases are simultaneous. Targets and damage are computed from one
snapshot of positions and health before anything is applied, so the order
in which ships are visited never gives a first-mover advantage. Ships
reduced to zero health stay in the world until the resolver removes them
at the end of the turn, which means a ship can fire on the turn it dies.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .constants import GameConstants
from .geometry import SpatialIndex, torus_distance
from .world import Ship, World


class DamageSource(Enum):
    """What dealt a piece of damage."""
    WEAPON = "weapon"
    COLLISION = "collision"


@dataclass(frozen=True)
class DamageEvent:
    """
    Damage dealt to one ship in one turn.

    Attributes:
        attacker_id: Ship that dealt the damage.
        attacker_owner: Player credited with the damage.
        target_id: Ship that took the damage.
        target_owner: Player owning the target.
        amount: Hit points removed.
        source: Weapon fire or collision.
    """
    attacker_id: int
    attacker_owner: int
    target_id: int
    target_owner: int
    amount: int
    source: DamageSource

    def to_dict(self) -> dict:
        return {
            "type": "damage",
            "attacker": self.attacker_id,
            "attacker_owner": self.attacker_owner,
            "target": self.target_id,
            "target_owner": self.target_owner,
            "amount": self.amount,
            "source": self.source.value,
        }


def split_damage(total: int, target_count: int) -> int:
    """Per-target share of ``total``; the remainder is dropped."""
    if target_count <= 0:
        return 0
    return total // target_count


class CombatResolver:
    """
    Resolves collisions and weapon fire on a world.

    Usage:
        resolver = CombatResolver(constants)
        events = resolver.resolve_collisions(world)
        events += resolver.resolve_weapons(world)
    """

    def __init__(self, constants: GameConstants) -> None:
        self.constants = constants

    def _build_index(self, world: World, ships: Iterable[Ship], cell: float) -> SpatialIndex:
        index = SpatialIndex(world.width, world.height, cell_size=cell)
        for ship in ships:
            index.insert(ship.ship_id, ship.x, ship.y)
        return index

    def find_enemies_in_range(
        self,
        world: World,
        ship: Ship,
        radius: float,
        index: SpatialIndex,
    ) -> list[Ship]:
        """Enemy ships within ``radius`` of ``ship``, ascending id."""
        return [
            world.ships[other_id]
            for other_id in index.query(ship.x, ship.y, radius)
            if world.ships[other_id].owner != ship.owner
        ]

    # -------------------------------------------------------------------------
    # Collisions
    # -------------------------------------------------------------------------

    def resolve_collisions(self, world: World) -> list[DamageEvent]:
        """
        Apply collision damage between overlapping enemy ships.

        Two ships overlap when their centers are closer than twice the ship
        radius. Each ship in an overlapping pair takes damage equal to the
        other's health at the start of the collision step.

        Returns:
            Damage events in ascending (attacker, target) order.
        """
        contact = 2 * self.constants.SHIP_RADIUS
        ships = [s for _, s in sorted(world.ships.items())]
        index = self._build_index(world, ships, max(contact, 1.0))
        health_before = {s.ship_id: s.health for s in ships}

        events: list[DamageEvent] = []
        for ship in ships:
            for other_id in index.query(ship.x, ship.y, contact):
                other = world.ships[other_id]
                if other_id == ship.ship_id or other.owner == ship.owner:
                    continue
                # Strict overlap; touching ships do not collide
                if torus_distance(
                    ship.x, ship.y, other.x, other.y, world.width, world.height
                ) >= contact:
                    continue
                events.append(DamageEvent(
                    attacker_id=ship.ship_id,
                    attacker_owner=ship.owner,
                    target_id=other_id,
                    target_owner=other.owner,
                    amount=max(0, health_before[ship.ship_id]),
                    source=DamageSource.COLLISION,
                ))

        self._apply(world, events)
        return events

    # -------------------------------------------------------------------------
    # Weapons
    # -------------------------------------------------------------------------

    def tick_cooldowns(self, world: World) -> None:
        """Advance every weapon cooldown by one turn."""
        for ship in world.ships.values():
            if ship.weapon_cooldown > 0:
                ship.weapon_cooldown -= 1

    def resolve_weapons(self, world: World) -> list[DamageEvent]:
        """
        Fire every ready weapon simultaneously.

        A ship fires when it is undocked, its cooldown is zero and at least
        one enemy is within WEAPON_RADIUS. Docked ships do not fire but can
        be hit. Ships already at zero health from this turn's collisions still
        fire and can still be targeted.

        Returns:
            Damage events in ascending (attacker, target) order.
        """
        radius = self.constants.WEAPON_RADIUS
        ships = [s for _, s in sorted(world.ships.items())]
        index = self._build_index(world, ships, radius)

        events: list[DamageEvent] = []
        firing: list[Ship] = []
        for ship in ships:
            if not ship.is_undocked or ship.weapon_cooldown > 0:
                continue
            targets = self.find_enemies_in_range(world, ship, radius, index)
            if not targets:
                continue
            firing.append(ship)
            share = split_damage(self.constants.WEAPON_DAMAGE, len(targets))
            for target in targets:
                events.append(DamageEvent(
                    attacker_id=ship.ship_id,
                    attacker_owner=ship.owner,
                    target_id=target.ship_id,
                    target_owner=target.owner,
                    amount=share,
                    source=DamageSource.WEAPON,
                ))

        for ship in firing:
            ship.weapon_cooldown = self.constants.WEAPON_COOLDOWN

        self._apply(world, events)
        return events

    def _apply(self, world: World, events: list[DamageEvent]) -> None:
        for event in events:
            world.ships[event.target_id].health -= event.amount
