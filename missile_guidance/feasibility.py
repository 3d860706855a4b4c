"""
Feasibility estimation: can this missile plausibly hit this target?

Three checks, all of which must pass:
1. Domain - air-only missiles cannot engage targets deep underwater and
   water-only missiles cannot engage targets well above the sea.
2. Range - the aim point must lie within maximum_range.
3. Turning circle (turn-aware configurations only) - the missile must be
   able to rotate onto the target before it would arrive.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional

from .commands import CommandBuffer
from .config import GuidanceConfig
from .geometry import GeometryCache
from .physics import height_above_sea
from .sensors import Projectile, Target

if TYPE_CHECKING:
    from .decision import TargetingDecision

logger = logging.getLogger(__name__)


class FeasibilityVerdict(Enum):
    """Outcome of a feasibility check."""
    FEASIBLE = "feasible"
    WRONG_DOMAIN = "wrong_domain"
    OUT_OF_RANGE = "out_of_range"
    CANNOT_TURN = "cannot_turn"


@dataclass
class FeasibilityEstimator:
    """
    Decides whether a missile can reach a target.

    Attributes:
        config: Guidance tunables (tolerance, range, turn model).
        cache: Shared per-tick geometry cache.
        commands: Optional buffer receiving debug log lines on rejection.
    """
    config: GuidanceConfig
    cache: GeometryCache
    commands: Optional[CommandBuffer] = None

    def can_hit(
        self,
        projectile: Projectile,
        decision: TargetingDecision,
        target: Target
    ) -> bool:
        """
        True if the missile can plausibly intercept the target.

        Never mutates the decision; rejections are only logged.
        """
        return self.explain(projectile, decision, target) is FeasibilityVerdict.FEASIBLE

    def explain(
        self,
        projectile: Projectile,
        decision: TargetingDecision,
        target: Target
    ) -> FeasibilityVerdict:
        """
        Run the feasibility checks and report which (if any) failed.

        Args:
            projectile: The missile.
            decision: Its targeting state (domain capabilities).
            target: Candidate target.

        Returns:
            FEASIBLE, or the first failing check.
        """
        # Is it in the wrong sphere of engagement (air/sea) for us?
        height = height_above_sea(target.aim_point)
        tolerance = self.config.sea_crossover_tolerance
        if not decision.is_air and height > tolerance:
            self._reject(
                f"Missile {projectile.projectile_id} can't reach target "
                f"{target.target_id} in the air ({height:g}m up)"
            )
            return FeasibilityVerdict.WRONG_DOMAIN
        if not decision.is_water and height < -tolerance:
            self._reject(
                f"Missile {projectile.projectile_id} can't reach target "
                f"{target.target_id} underwater ({-height:g}m down)"
            )
            return FeasibilityVerdict.WRONG_DOMAIN

        # Is it beyond maximum engagement range?
        distance = projectile.position.distance_to(target.aim_point)
        if distance > self.config.maximum_range:
            self._reject(
                f"Missile {projectile.projectile_id} can't reach target "
                f"{target.target_id} at distance {distance:g}m"
            )
            return FeasibilityVerdict.OUT_OF_RANGE

        # Is it within our turning circle? (Can we turn X degrees in Y time?)
        if self.config.turn_aware:
            angle = self.cache.angle_to_target(projectile, target)
            time_to_target = self.cache.time_to_target(projectile, target)
            if angle > self.config.turn_rate * time_to_target:
                self._reject(
                    f"Missile {projectile.projectile_id} can't reach target "
                    f"{target.target_id} by turning {math.degrees(angle):g}deg "
                    f"in {time_to_target:g}s"
                )
                return FeasibilityVerdict.CANNOT_TURN

        return FeasibilityVerdict.FEASIBLE

    def _reject(self, message: str) -> None:
        if self.commands is not None:
            self.commands.debug(message)
        else:
            logger.debug(message)
