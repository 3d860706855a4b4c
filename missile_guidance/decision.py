"""
Per-missile targeting state.

A TargetingDecision is created the first time a missile id is seen, from a
scan of the missile's part list (propulsion domain, fuel capacity, variable
thrusters), and lives until a tick no longer reports that id.

The TargetingStateMachine owns the decision map. Each missile reassesses its
target on its own clock (time since launch), so missiles launched at
different moments spread their ranking work over different ticks.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, Iterable, List, Optional, Sequence

from .commands import THRUST_REGISTER
from .config import GuidanceConfig
from .feasibility import FeasibilityEstimator
from .physics import TICKS_PER_SECOND
from .sensors import MissilePart, Projectile, Target
from .targeting import TargetRanker

logger = logging.getLogger(__name__)

# Fuel capacity contributed by each fuel tank part
FUEL_PER_TANK = 5000.0


class AssignmentOutcome(Enum):
    """What happened when a missile was offered a reassessment."""
    NOT_DUE = auto()     # Reassessment interval has not elapsed
    STICKY = auto()      # Kept the current, still-feasible target
    REASSESSED = auto()  # Ranked the target list and stored the result


@dataclass
class TargetingDecision:
    """
    Persistent targeting state for one missile.

    Attributes:
        target_id: Currently chosen target, or None.
        last_update: Missile age at the last reassessment (seconds).
        is_air: Missile can move through air (has thrusters).
        is_water: Missile can move through water (has propellers).
        fuel_max: Fuel capacity estimate.
        fuel_rate: Estimated fuel burned per steer interval.
        fuel_left: Estimated fuel remaining (never below zero).
        thrusters: Part indices of variable-speed thrusters.
        detonated: A detonate command has already been issued.
    """
    target_id: Optional[int] = None
    last_update: float = 0.0
    is_air: bool = False
    is_water: bool = False
    fuel_max: float = 0.0
    fuel_rate: float = 0.0
    fuel_left: float = 0.0
    thrusters: List[int] = field(default_factory=list)
    detonated: bool = False

    @property
    def fuel_fraction(self) -> float:
        """Fraction of fuel remaining (0 for missiles with no tanks)."""
        if self.fuel_max <= 0:
            return 0.0
        return self.fuel_left / self.fuel_max

    def burn_fuel(self) -> None:
        """Deduct one steer interval's burn, flooring at zero."""
        if self.fuel_left > 0:
            self.fuel_left = max(0.0, self.fuel_left - self.fuel_rate)


def classify_parts(
    parts: Sequence[MissilePart],
    target_assign_interval: float = 0.0
) -> TargetingDecision:
    """
    Build a fresh decision from a missile's part list.

    Classification is by part name (case-insensitive):
    - "fuel": adds FUEL_PER_TANK to capacity
    - "variable speed thruster": air-capable, thrust is controllable, and its
      current thrust register seeds the burn-rate estimate
      (a thruster whose register will not read as a number is ignored)
    - "short range thruster": air-capable
    - "propeller": water-capable

    Args:
        parts: The missile's parts, indexed as the host indexes them.
        target_assign_interval: Reassessment interval; last_update starts one
            interval in the past so the first tick always assesses.

    Returns:
        A new TargetingDecision with full fuel.
    """
    decision = TargetingDecision(last_update=-target_assign_interval)

    for index, part in enumerate(parts):
        name = part.name.lower()
        if "fuel" in name:
            decision.fuel_max += FUEL_PER_TANK
        elif "variable speed thruster" in name:
            thrust = _register_value(part, THRUST_REGISTER)
            if thrust is None:
                continue
            decision.is_air = True
            decision.thrusters.append(index)
            decision.fuel_rate += thrust / TICKS_PER_SECOND
        elif "short range thruster" in name:
            decision.is_air = True
        elif "propeller" in name:
            decision.is_water = True

    decision.fuel_left = decision.fuel_max
    return decision


def _register_value(part: MissilePart, register: int) -> Optional[float]:
    """Numeric value of a part register (0 if unset), or None if unreadable."""
    try:
        value = float(part.registers.get(register, 0.0))
    except (TypeError, ValueError):
        logger.debug("Ignoring %r: register %d is %r", part.name, register,
                     part.registers.get(register))
        return None
    return value if math.isfinite(value) else None


@dataclass
class TargetingStateMachine:
    """
    Owns every missile's TargetingDecision and decides when to retarget.

    Attributes:
        config: Guidance tunables.
        feasibility: Reachability checks for sticky retention.
        ranker: Target ranking for reassessment.
        decisions: Missile id -> decision, for missiles seen last tick.
        rankings: Full rankings performed since reset_stats().
    """
    config: GuidanceConfig
    feasibility: FeasibilityEstimator
    ranker: TargetRanker
    decisions: Dict[int, TargetingDecision] = field(default_factory=dict)
    rankings: int = 0

    def get(self, projectile_id: int) -> Optional[TargetingDecision]:
        """Decision for a missile id, if tracked."""
        return self.decisions.get(projectile_id)

    def load(self, projectile: Projectile, parts: Sequence[MissilePart]) -> TargetingDecision:
        """
        Find or create the decision for a missile.

        The part list is only inspected on first sighting.
        """
        decision = self.decisions.get(projectile.projectile_id)
        if decision is None:
            decision = classify_parts(parts, self.config.target_assign_interval)
            self.decisions[projectile.projectile_id] = decision
            logger.debug(
                "Tracking missile %d: air=%s water=%s fuel=%g thrusters=%d",
                projectile.projectile_id, decision.is_air, decision.is_water,
                decision.fuel_max, len(decision.thrusters)
            )
        return decision

    def assign(
        self,
        projectile: Projectile,
        parts: Sequence[MissilePart],
        targets: Sequence[Target]
    ) -> AssignmentOutcome:
        """
        (Possibly) choose a target for a missile.

        Reassessment is due once the missile's age reaches last_update plus
        the assignment interval. When due, the timestamp is recorded first;
        in sticky mode a current target that is still listed and still
        feasible is kept without ranking. Otherwise the ranker's pick (or
        None) replaces the current target.

        Args:
            projectile: The missile.
            parts: Its part list (only used on first sighting).
            targets: This tick's target list.

        Returns:
            Which path the assignment took.
        """
        decision = self.load(projectile, parts)

        if projectile.time_since_launch < decision.last_update + self.config.target_assign_interval:
            return AssignmentOutcome.NOT_DUE

        decision.last_update = projectile.time_since_launch

        if self.config.sticky_targeting and decision.target_id is not None:
            current = find_target(targets, decision.target_id)
            if current is not None and self.feasibility.can_hit(projectile, decision, current):
                return AssignmentOutcome.STICKY

        self.rankings += 1
        best = self.ranker.best_target_for_missile(projectile, decision, targets)
        new_target_id = best.target_id if best is not None else None
        if new_target_id != decision.target_id:
            logger.debug(
                "Missile %d retargeted %s -> %s",
                projectile.projectile_id, decision.target_id, new_target_id
            )
        decision.target_id = new_target_id
        return AssignmentOutcome.REASSESSED

    def reconcile(self, seen_ids: Iterable[int]) -> List[int]:
        """
        Drop decisions for missiles not reported this tick.

        Builds a new map from the previous entries whose ids were seen;
        nothing else is retained.

        Returns:
            Ids of the discarded decisions.
        """
        seen = set(seen_ids)
        dropped = [pid for pid in self.decisions if pid not in seen]
        self.decisions = {
            pid: decision for pid, decision in self.decisions.items() if pid in seen
        }
        for pid in dropped:
            logger.debug("Missile %d lost; discarding its decision", pid)
        return dropped

    def reset_stats(self) -> None:
        """Zero the ranking counter."""
        self.rankings = 0


def find_target(targets: Sequence[Target], target_id: Optional[int]) -> Optional[Target]:
    """
    Look a target up by id in this tick's list.

    Targets are not deduplicated across sensor groups; when several groups
    report the same id, the last report wins.
    """
    if target_id is None:
        return None
    found = None
    for target in targets:
        if target.target_id == target_id:
            found = target
    return found
