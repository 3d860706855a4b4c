"""
Per-tick guidance controller.

GuidanceController.update() is the engine's single entry point. The host
calls it once per simulation tick with a TickInput and applies the returned
commands before the next tick. Everything for one tick completes inside the
call:

1. Clear the geometry cache (everything has moved)
2. Rescan the target list from the sensor groups
3. For each missile, in host enumeration order:
   - load/create its TargetingDecision
   - reassess its target when its own clock says so
   - steer it on steer ticks
4. Drop decisions for missiles that were not reported
5. Optionally report profiling counters to the HUD

Steering less often than every tick (steer_interval) and reassessing on each
missile's own age (target_assign_interval) are the CPU cost controls.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .calibration import CalibrationMode, CalibrationResult
from .commands import CommandBuffer, HostCommand
from .config import GuidanceConfig
from .decision import AssignmentOutcome, TargetingDecision, TargetingStateMachine
from .feasibility import FeasibilityEstimator
from .geometry import GeometryCache
from .sensors import Target, TickInput, scan_targets
from .steering import SteeringController, SteeringResult
from .targeting import TargetRanker

logger = logging.getLogger(__name__)


@dataclass
class TickResult:
    """
    Everything the engine produced for one tick.

    Attributes:
        tick: Tick number (counts from zero).
        commands: Host commands, in the order they should be applied.
        steering: Missile id -> steering outcome (steer ticks only).
        assignments: Missile id -> what target assignment did.
        targets: The target list scanned this tick.
        dropped: Ids whose decisions were discarded this tick.
        calibration: Calibration measurement completed this tick, if any.
    """
    tick: int
    commands: List[HostCommand] = field(default_factory=list)
    steering: Dict[int, SteeringResult] = field(default_factory=dict)
    assignments: Dict[int, AssignmentOutcome] = field(default_factory=dict)
    targets: List[Target] = field(default_factory=list)
    dropped: List[int] = field(default_factory=list)
    calibration: Optional[CalibrationResult] = None

    @property
    def steered_ids(self) -> List[int]:
        """Missiles steered this tick."""
        return list(self.steering)


class GuidanceController:
    """
    Owns all engine state and runs one tick at a time.

    State carried between ticks is limited to the decision map, the tick
    counter and calibration progress; the geometry cache and target list are
    rebuilt every tick.
    """

    def __init__(self, config: Optional[GuidanceConfig] = None):
        """
        Initialize the controller.

        Args:
            config: Guidance tunables (defaults to GuidanceConfig()).
        """
        self.config = config or GuidanceConfig()
        self.cache = GeometryCache(self.config)
        self.feasibility = FeasibilityEstimator(self.config, self.cache)
        self.ranker = TargetRanker(self.config, self.cache, self.feasibility)
        self.state = TargetingStateMachine(self.config, self.feasibility, self.ranker)
        self.steering = SteeringController(self.config, self.cache)
        self.calibration = CalibrationMode(self.config)
        self.tick_counter = 0
        self.targets: List[Target] = []

    @property
    def decisions(self) -> Dict[int, TargetingDecision]:
        """Missile id -> decision for every tracked missile."""
        return self.state.decisions

    def decision_for(self, projectile_id: int) -> Optional[TargetingDecision]:
        """Decision for a missile id, if tracked."""
        return self.state.get(projectile_id)

    def update(self, tick: TickInput) -> TickResult:
        """
        Run the engine for one tick.

        Args:
            tick: Sensor groups and missile channels reported by the host.

        Returns:
            Commands for the host plus per-missile diagnostics.
        """
        config = self.config
        commands = CommandBuffer(debug_log=config.debug_log, hud_log=config.hud_log)
        self.feasibility.commands = commands

        # Always per-tick: stale target intel is useless and the cache is
        # invalidated by everything moving
        self.cache.clear()
        self.targets = scan_targets(tick.sensor_groups)

        result = TickResult(tick=self.tick_counter, targets=self.targets)
        steer_tick = self.tick_counter % config.steer_interval == 0

        seen_ids: List[int] = []
        measuring = False
        for channel_index, channel in enumerate(tick.channels):
            for missile_index, controlled in enumerate(channel.missiles):
                projectile = controlled.projectile
                if projectile is None:
                    logger.debug(
                        "Channel %d missile %d unusable this tick", channel_index, missile_index
                    )
                    continue
                seen_ids.append(projectile.projectile_id)

                if config.calibration_mode:
                    if measuring:
                        self.calibration.reject_extra(channel_index, missile_index, commands)
                    else:
                        measured = self.calibration.guide(
                            channel_index, missile_index, projectile, commands
                        )
                        if measured is not None:
                            result.calibration = measured
                        measuring = True
                    continue

                result.assignments[projectile.projectile_id] = self.state.assign(
                    projectile, controlled.parts, self.targets
                )
                decision = self.state.decisions[projectile.projectile_id]

                if steer_tick and not decision.detonated:
                    result.steering[projectile.projectile_id] = self.steering.steer(
                        channel_index, missile_index, projectile, decision,
                        self.targets, commands
                    )

        # Clean up decisions for missiles that no longer exist
        result.dropped = self.state.reconcile(seen_ids)

        if config.profile_log:
            commands.hud(
                f"{self.state.rankings} decisions; {self.cache.hits} cache hits",
                force=True
            )
        self.state.reset_stats()
        self.cache.reset_stats()

        self.feasibility.commands = None
        result.commands = commands.commands
        self.tick_counter += 1
        return result
