"""
Tunable game constants for the Halite match engine.

Defaults match the Halite II engine. A match receives one ``GameConstants``
instance before it starts and keeps it for its whole duration; the dataclass
is frozen so nothing can change it mid-match. Overrides come from a JSON
constants file or a plain mapping:

    constants = GameConstants.from_json_file("constants.json")
    print(constants.to_json())
"""

import json
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping

from .errors import ConfigurationError


# Constants that must stay strictly positive for the rules to make sense
_STRICTLY_POSITIVE = (
    "MAX_SPEED",
    "SHIP_RADIUS",
    "MAX_SHIP_HEALTH",
    "BASE_SHIP_HEALTH",
    "WEAPON_RADIUS",
    "PRODUCTION_PER_SHIP",
)

# Constants the rules treat as whole numbers
_INTEGRAL = (
    "PLANETS_PER_PLAYER",
    "EXTRA_PLANETS",
    "MAX_SHIP_HEALTH",
    "BASE_SHIP_HEALTH",
    "DOCKED_SHIP_REGENERATION",
    "WEAPON_COOLDOWN",
    "WEAPON_DAMAGE",
    "DOCK_TURNS",
    "BASE_PRODUCTIVITY",
    "PRODUCTION_PER_SHIP",
)


@dataclass(frozen=True)
class GameConstants:
    """Process-wide rule constants, immutable for the duration of a match."""
    # Map generation
    PLANETS_PER_PLAYER: int = 6
    EXTRA_PLANETS: int = 4

    # Movement
    DRAG: float = 7.0
    MAX_SPEED: float = 7.0
    MAX_ACCELERATION: float = 7.0
    SHIP_RADIUS: float = 0.5

    # Health
    MAX_SHIP_HEALTH: int = 255
    BASE_SHIP_HEALTH: int = 255
    DOCKED_SHIP_REGENERATION: int = 0

    # Weapons
    WEAPON_COOLDOWN: int = 1
    WEAPON_RADIUS: float = 5.0
    WEAPON_DAMAGE: int = 64

    # Docking and production
    DOCK_TURNS: int = 5
    BASE_PRODUCTIVITY: int = 6
    PRODUCTION_PER_SHIP: int = 72
    MAX_DOCKING_DISTANCE: float = 4.0
    SPAWN_RADIUS: float = 2.0

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(
                    f"Constant {f.name} must be numeric, got {value!r}"
                )
            if not math.isfinite(value):
                raise ConfigurationError(f"Constant {f.name} must be finite")
            if value < 0:
                raise ConfigurationError(
                    f"Constant {f.name} must not be negative, got {value}"
                )
            if f.name in _INTEGRAL and value != int(value):
                raise ConfigurationError(
                    f"Constant {f.name} must be a whole number, got {value}"
                )
        for name in _STRICTLY_POSITIVE:
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"Constant {name} must be positive")
        if self.BASE_SHIP_HEALTH > self.MAX_SHIP_HEALTH:
            raise ConfigurationError(
                "BASE_SHIP_HEALTH cannot exceed MAX_SHIP_HEALTH"
            )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 4) -> str:
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'GameConstants':
        """
        Create constants from a mapping of overrides.

        Unset names keep their defaults. Unknown names are rejected so that a
        typo in a constants file cannot silently leave a default in place.

        Raises:
            ConfigurationError: On unknown names or invalid values.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigurationError(f"Unknown constants: {', '.join(unknown)}")

        values: Dict[str, Any] = {}
        for name, value in data.items():
            if name in _INTEGRAL and isinstance(value, float) and value.is_integer():
                value = int(value)
            values[name] = value
        return cls(**values)

    @classmethod
    def from_json_file(cls, path: str) -> 'GameConstants':
        """Load constants from a JSON file."""
        constants_path = Path(path)
        if not constants_path.exists():
            raise ConfigurationError(f"Constants file not found: {path}")

        try:
            with open(constants_path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid constants file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError("Constants file must contain a JSON object")
        return cls.from_dict(data)

    def describe(self) -> str:
        """Multi-line listing used by the verbose CLI output."""
        lines = ["Game constants:"]
        for name, value in self.to_dict().items():
            lines.append(f"\t{name}: {value}")
        return "\n".join(lines)


DEFAULT_CONSTANTS = GameConstants()
