"""
Per-tick geometry cache for missile/target pairs.

Angle-to-target and time-to-target are needed repeatedly within a tick (by
the ranker, the feasibility checks and steering), so both are memoized by
(projectile id, target id). Positions move every tick, so the cache must be
cleared at the start of each one; the controller owns the single instance
and does exactly that.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .config import GuidanceConfig
from .physics import angle_between_directions
from .sensors import Projectile, Target

CacheKey = Tuple[int, int]


@dataclass
class GeometryCache:
    """
    Memoized angle/time-to-target values, valid for a single tick.

    Attributes:
        config: Supplies turn_rate and cruise_speed for time estimates.
        angles: (projectile id, target id) -> angle to target (radians).
        times: (projectile id, target id) -> time to target (seconds).
        hits: Lookups answered from the cache since the last reset_stats().
    """
    config: GuidanceConfig
    angles: Dict[CacheKey, float] = field(default_factory=dict)
    times: Dict[CacheKey, float] = field(default_factory=dict)
    hits: int = 0

    def clear(self) -> None:
        """Invalidate every cached value (call once per tick)."""
        self.angles = {}
        self.times = {}

    def reset_stats(self) -> None:
        """Zero the hit counter."""
        self.hits = 0

    def angle_to_target(self, projectile: Projectile, target: Target) -> float:
        """
        Angle between the missile's heading and the direction to the target.

        Args:
            projectile: The missile (heading is its velocity).
            target: Target whose aim point is measured.

        Returns:
            Angle in radians, 0 (on course) to pi (directly behind).
        """
        key = (projectile.projectile_id, target.target_id)
        cached = self.angles.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        result = angle_between_directions(
            projectile.velocity, target.aim_point - projectile.position
        )
        self.angles[key] = result
        return result

    def time_to_target(self, projectile: Projectile, target: Target) -> float:
        """
        Rough time for the missile to reach the target's aim point.

        Straight-line distance over the larger of current speed and the cruise
        speed estimate (early in flight the missile is still accelerating),
        plus the time needed to turn onto the target weighted by how much of
        that turn is spent not closing: zero on course, half when
        perpendicular, all of it when pointing directly away. Ignores target
        motion.

        Returns:
            Estimated seconds to target.

        Raises:
            ValueError: If turn modeling is disabled (no turn_rate).
        """
        turn_rate = self._turn_rate()

        key = (projectile.projectile_id, target.target_id)
        cached = self.times.get(key)
        if cached is not None:
            self.hits += 1
            return cached

        distance = projectile.position.distance_to(target.aim_point)
        speed = max(projectile.speed, self.config.cruise_speed)
        if speed > 0:
            time_to_target = distance / speed
        else:
            time_to_target = math.inf

        angle = self.angle_to_target(projectile, target)
        time_to_turn = (angle / turn_rate) * (angle / math.pi)
        result = time_to_target + time_to_turn

        self.times[key] = result
        return result

    def _turn_rate(self) -> float:
        turn_rate: Optional[float] = self.config.turn_rate
        if turn_rate is None:
            raise ValueError("time_to_target requires a configured turn_rate")
        return turn_rate

    @property
    def size(self) -> int:
        """Number of cached values of either kind."""
        return len(self.angles) + len(self.times)
