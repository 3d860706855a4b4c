#!/usr/bin/env python3
"""
Vector Math Module for the Missile Guidance Controller

Implements the small amount of 3D geometry the guidance engine needs:
- 3D vector operations (add, subtract, scale, dot, magnitude)
- Unit vectors and angle between directions
- World conventions shared by every module (sea plane, tick rate)

World frame follows the host game:
- X: east
- Y: up (the sea surface is the plane y == 0)
- Z: north

All units in SI (meters, m/s, seconds, radians).
"""

from __future__ import annotations
import math
from dataclasses import dataclass


# =============================================================================
# WORLD CONSTANTS
# =============================================================================

# Height of the sea surface; everything below is water
SEA_LEVEL_Y = 0.0

# Host simulation rate (ticks per second)
TICKS_PER_SECOND = 40

# How far above a missile to aim when it should simply climb (meters)
CLIMB_HEIGHT_M = 1_000_000.0


# =============================================================================
# VECTOR3D CLASS
# =============================================================================

@dataclass
class Vector3D:
    """
    3D vector for positions, velocities, and directions in world space.

    Uses the host's Y-up coordinate system. Instances are treated as values:
    the guidance code never mutates a vector in place, it builds new ones
    (see with_y()).
    """
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3D) -> Vector3D:
        """Vector addition."""
        return Vector3D(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other: Vector3D) -> Vector3D:
        """Vector subtraction."""
        return Vector3D(self.x - other.x, self.y - other.y, self.z - other.z)

    def __mul__(self, scalar: float) -> Vector3D:
        """Scalar multiplication."""
        return Vector3D(self.x * scalar, self.y * scalar, self.z * scalar)

    def __rmul__(self, scalar: float) -> Vector3D:
        """Right scalar multiplication."""
        return self.__mul__(scalar)

    def __truediv__(self, scalar: float) -> Vector3D:
        """Scalar division."""
        if scalar == 0:
            raise ValueError("Cannot divide vector by zero")
        return Vector3D(self.x / scalar, self.y / scalar, self.z / scalar)

    def __eq__(self, other: object) -> bool:
        """Equality check with tolerance."""
        if not isinstance(other, Vector3D):
            return False
        eps = 1e-10
        return (abs(self.x - other.x) < eps and
                abs(self.y - other.y) < eps and
                abs(self.z - other.z) < eps)

    def dot(self, other: Vector3D) -> float:
        """Dot product."""
        return self.x * other.x + self.y * other.y + self.z * other.z

    @property
    def magnitude(self) -> float:
        """Vector magnitude (length)."""
        return math.sqrt(self.x**2 + self.y**2 + self.z**2)

    def normalized(self) -> Vector3D:
        """Return unit vector in same direction (zero stays zero)."""
        mag = self.magnitude
        if mag == 0:
            return Vector3D(0, 0, 0)
        return self / mag

    def distance_to(self, other: Vector3D) -> float:
        """Distance to another point."""
        return (self - other).magnitude

    def with_y(self, y: float) -> Vector3D:
        """Copy of this vector with the vertical component replaced."""
        return Vector3D(self.x, y, self.z)

    def is_finite(self) -> bool:
        """True if no component is NaN or infinite."""
        return (math.isfinite(self.x) and
                math.isfinite(self.y) and
                math.isfinite(self.z))

    def to_tuple(self) -> tuple[float, float, float]:
        """Convert to tuple."""
        return (self.x, self.y, self.z)

    @classmethod
    def from_tuple(cls, t: tuple[float, float, float]) -> Vector3D:
        """Create from tuple (or any 3-element sequence)."""
        return cls(float(t[0]), float(t[1]), float(t[2]))

    @classmethod
    def zero(cls) -> Vector3D:
        """Zero vector."""
        return cls(0.0, 0.0, 0.0)

    @classmethod
    def up(cls) -> Vector3D:
        """Unit vector pointing away from the sea."""
        return cls(0.0, 1.0, 0.0)

    def __repr__(self) -> str:
        return f"Vector3D({self.x:.6g}, {self.y:.6g}, {self.z:.6g})"


# =============================================================================
# DIRECTION HELPERS
# =============================================================================

def angle_between_directions(heading: Vector3D, offset: Vector3D) -> float:
    """
    Angle in radians between a heading and an offset vector.

    Both vectors are normalized first; a zero vector normalizes to zero, so a
    stationary missile (or a target exactly on top of it) reads as
    perpendicular (pi/2) rather than on-course.

    Args:
        heading: Direction of travel (typically a velocity)
        offset: Vector from the missile to the point of interest

    Returns:
        Angle in radians, 0 to pi
    """
    cos_angle = heading.normalized().dot(offset.normalized())
    # Clamp to avoid floating point errors with acos
    cos_angle = max(-1.0, min(1.0, cos_angle))
    return math.acos(cos_angle)


def height_above_sea(position: Vector3D) -> float:
    """Height of a point over the sea surface (negative when submerged)."""
    return position.y - SEA_LEVEL_Y
