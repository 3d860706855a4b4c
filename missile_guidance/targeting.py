"""
Target ranking for the Missile Guidance Controller.

Targets are put in a total order by a six-level rule chain; each level only
breaks ties left by the ones before it:

1. The player's chosen target first
2. Protected/salvage targets last
3. Smaller angle off the current heading, with both angles clamped at the
   off-course angle (past it every target is equally off-course and the
   later rules decide)
4. Lower priority value (sensor doctrine)
5. Higher score
6. Shorter raw distance

The whole list is sorted each time a missile must choose. Lists are short,
and a full sort keeps the rules in one key tuple.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

from .config import GuidanceConfig
from .feasibility import FeasibilityEstimator
from .geometry import GeometryCache
from .sensors import Projectile, Target

if TYPE_CHECKING:
    from .decision import TargetingDecision

logger = logging.getLogger(__name__)

RankKey = Tuple[bool, bool, float, float, float, float]


@dataclass
class TargetRanker:
    """
    Orders targets by desirability for a particular missile.

    Attributes:
        config: Guidance tunables (off-course clamp, unicorn chasing).
        cache: Shared per-tick geometry cache for angles.
        feasibility: Reachability checks for best_target_for_missile().
    """
    config: GuidanceConfig
    cache: GeometryCache
    feasibility: FeasibilityEstimator

    def rank_key(self, projectile: Projectile, target: Target) -> RankKey:
        """
        Sort key for a target; smaller keys are better targets.

        Args:
            projectile: The missile doing the choosing.
            target: Candidate target.

        Returns:
            Tuple compared lexicographically, one element per rule.
        """
        angle = min(self.cache.angle_to_target(projectile, target),
                    self.config.off_course_clamp)
        distance = projectile.position.distance_to(target.aim_point)
        return (
            not target.player_target_choice,
            target.protected,
            angle,
            target.priority,
            -target.score,
            distance,
        )

    def rank(self, projectile: Projectile, targets: Sequence[Target]) -> List[Target]:
        """
        Targets sorted best-first for this missile.

        The sort is stable, so targets equal on every rule keep their input
        order. The input sequence is left untouched.
        """
        return sorted(targets, key=lambda target: self.rank_key(projectile, target))

    def best_target_for_missile(
        self,
        projectile: Projectile,
        decision: TargetingDecision,
        targets: Sequence[Target]
    ) -> Optional[Target]:
        """
        The best target this missile can hit.

        Walks the ranking for the first feasible target. If nothing is
        feasible and chase_unicorns is set, settles for the top-ranked target
        anyway rather than leaving the missile idle.

        Args:
            projectile: The missile.
            decision: Its targeting state (domain capabilities).
            targets: This tick's target list.

        Returns:
            Chosen target, or None if there is nothing to pursue.
        """
        ranked = self.rank(projectile, targets)

        for target in ranked:
            if self.feasibility.can_hit(projectile, decision, target):
                return target

        # Nothing valid to hit; aim for the best invalid one if allowed
        if self.config.chase_unicorns and ranked:
            logger.debug(
                "Missile %d has no feasible target; chasing %d",
                projectile.projectile_id, ranked[0].target_id
            )
            return ranked[0]

        return None
