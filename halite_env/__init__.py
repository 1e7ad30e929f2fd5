"""Halite II style match engine: world model, rules and turn resolution."""

from .constants import DEFAULT_CONSTANTS, GameConstants

from .errors import (
    ConfigurationError,
    HaliteError,
    InvariantViolation,
)

from .geometry import (
    Direction,
    Grid,
    Map,
    SpatialIndex,
    torus_delta,
    torus_distance,
    wrap_coordinate,
)

from .physics import Vector2D, advance_ship, thrust_vector

from .world import (
    DockingStatus,
    Planet,
    PlayerState,
    Ship,
    World,
    world_hash,
)

from .commands import (
    # Command types
    Command,
    DockCommand,
    NoOpCommand,
    ThrustCommand,
    UndockCommand,
    # Codec
    encode_commands,
    parse_command,
    parse_commands,
)

from .combat import CombatResolver, DamageEvent, DamageSource, split_damage
from .economy import SpawnEvent, produce, regenerate
from .simulation import Simulation, TurnOutcome, check_invariants
from .mapgen import choose_dimensions, generate_world

__all__ = [
    # Constants
    "DEFAULT_CONSTANTS",
    "GameConstants",
    # Errors
    "ConfigurationError",
    "HaliteError",
    "InvariantViolation",
    # Geometry
    "Direction",
    "Grid",
    "Map",
    "SpatialIndex",
    "torus_delta",
    "torus_distance",
    "wrap_coordinate",
    # Physics
    "Vector2D",
    "advance_ship",
    "thrust_vector",
    # World
    "DockingStatus",
    "Planet",
    "PlayerState",
    "Ship",
    "World",
    "world_hash",
    # Commands
    "Command",
    "DockCommand",
    "NoOpCommand",
    "ThrustCommand",
    "UndockCommand",
    "encode_commands",
    "parse_command",
    "parse_commands",
    # Rules
    "CombatResolver",
    "DamageEvent",
    "DamageSource",
    "split_damage",
    "SpawnEvent",
    "produce",
    "regenerate",
    "Simulation",
    "TurnOutcome",
    "check_invariants",
    # Map generation
    "choose_dimensions",
    "generate_world",
]
