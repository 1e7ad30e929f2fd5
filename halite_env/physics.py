#!/usr/bin/env python3
"""
Physics Module for the Halite match engine.

Implements per-turn movement for ships on the wrap-around map:
- 2D vector operations
- Thrust clamping (acceleration bounded by MAX_ACCELERATION)
- Velocity integration and speed clamping (bounded by MAX_SPEED)
- Position advance with wrap-around
- Drag (velocity magnitude reduced by DRAG, never reversing)

Movement is resolved once per turn with no sub-tick interpolation. Overlaps
are detected afterwards on end-of-turn positions by the combat module.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .constants import GameConstants
from .geometry import wrap_coordinate

if TYPE_CHECKING:
    from .world import Ship


# =============================================================================
# VECTOR2D CLASS
# =============================================================================

@dataclass
class Vector2D:
    """
    2D vector for velocities and accelerations.

    Angles are measured in radians from the +x axis toward +y.
    """
    x: float = 0.0
    y: float = 0.0

    def __add__(self, other: Vector2D) -> Vector2D:
        """Vector addition."""
        return Vector2D(self.x + other.x, self.y + other.y)

    def __sub__(self, other: Vector2D) -> Vector2D:
        """Vector subtraction."""
        return Vector2D(self.x - other.x, self.y - other.y)

    def __mul__(self, scalar: float) -> Vector2D:
        """Scalar multiplication."""
        return Vector2D(self.x * scalar, self.y * scalar)

    def __rmul__(self, scalar: float) -> Vector2D:
        """Right scalar multiplication."""
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> Vector2D:
        """Scalar division."""
        if scalar == 0:
            raise ValueError("Cannot divide vector by zero")
        return Vector2D(self.x / scalar, self.y / scalar)

    def __neg__(self) -> Vector2D:
        """Negation."""
        return Vector2D(-self.x, -self.y)

    def __eq__(self, other: object) -> bool:
        """Equality check with tolerance."""
        if not isinstance(other, Vector2D):
            return False
        eps = 1e-10
        return abs(self.x - other.x) < eps and abs(self.y - other.y) < eps

    def dot(self, other: Vector2D) -> float:
        """Dot product."""
        return self.x * other.x + self.y * other.y

    @property
    def magnitude(self) -> float:
        """Vector magnitude (length)."""
        return math.hypot(self.x, self.y)

    @property
    def angle(self) -> float:
        """Direction in radians, 0 for the zero vector."""
        if self.x == 0 and self.y == 0:
            return 0.0
        return math.atan2(self.y, self.x)

    def normalized(self) -> Vector2D:
        """Return unit vector in same direction."""
        mag = self.magnitude
        if mag == 0:
            return Vector2D(0.0, 0.0)
        return self / mag

    def clamped(self, max_magnitude: float) -> Vector2D:
        """Return this vector scaled down to at most ``max_magnitude``."""
        mag = self.magnitude
        if mag <= max_magnitude:
            return Vector2D(self.x, self.y)
        return self * (max_magnitude / mag)

    def to_tuple(self) -> tuple[float, float]:
        """Convert to tuple."""
        return (self.x, self.y)

    @classmethod
    def from_polar(cls, magnitude: float, angle_rad: float) -> Vector2D:
        """Create from a magnitude and an angle in radians."""
        return cls(magnitude * math.cos(angle_rad), magnitude * math.sin(angle_rad))

    @classmethod
    def zero(cls) -> Vector2D:
        """Zero vector."""
        return cls(0.0, 0.0)

    def __repr__(self) -> str:
        return f"Vector2D({self.x:.6g}, {self.y:.6g})"


# =============================================================================
# THRUST
# =============================================================================

def thrust_vector(
    magnitude: float,
    angle_deg: float,
    constants: GameConstants,
) -> Vector2D:
    """
    Convert a thrust command into an acceleration vector.

    The magnitude is clamped to ``[0, MAX_ACCELERATION]``; a negative
    magnitude produces no thrust rather than thrust in reverse.

    Args:
        magnitude: Requested acceleration magnitude
        angle_deg: Heading in degrees, 0 = +x, 90 = +y
        constants: Game constants

    Returns:
        Acceleration vector for this turn
    """
    magnitude = max(0.0, min(constants.MAX_ACCELERATION, magnitude))
    if magnitude == 0:
        return Vector2D.zero()
    return Vector2D.from_polar(magnitude, math.radians(angle_deg % 360.0))


def apply_drag(velocity: Vector2D, drag: float) -> Vector2D:
    """
    Reduce velocity magnitude by ``drag``.

    The result keeps its direction and is floored at zero, so drag can
    stop a ship but never push it backwards.
    """
    speed = velocity.magnitude
    if speed <= drag or speed == 0:
        return Vector2D.zero()
    return velocity * ((speed - drag) / speed)


# =============================================================================
# MOVEMENT INTEGRATION
# =============================================================================

def integrate_velocity(
    velocity: Vector2D,
    acceleration: Vector2D,
    constants: GameConstants,
) -> Vector2D:
    """Add this turn's acceleration and clamp to ``MAX_SPEED``."""
    acceleration = acceleration.clamped(constants.MAX_ACCELERATION)
    return (velocity + acceleration).clamped(constants.MAX_SPEED)


def advance_ship(
    ship: Ship,
    width: float,
    height: float,
    constants: GameConstants,
) -> None:
    """
    Advance one undocked ship by a full turn.

    Order: accept acceleration, clamp speed, move by the clamped velocity
    (wrapping at the map edges), then apply drag to the velocity carried
    into the next turn. The ship's thrust is consumed.

    Args:
        ship: Ship to move (mutated in place)
        width: Map width
        height: Map height
        constants: Game constants
    """
    velocity = integrate_velocity(
        Vector2D(ship.vel_x, ship.vel_y),
        Vector2D(ship.thrust_x, ship.thrust_y),
        constants,
    )

    ship.x = wrap_coordinate(ship.x + velocity.x, width)
    ship.y = wrap_coordinate(ship.y + velocity.y, height)

    velocity = apply_drag(velocity, constants.DRAG)
    ship.vel_x = velocity.x
    ship.vel_y = velocity.y
    ship.thrust_x = 0.0
    ship.thrust_y = 0.0
