"""
Calibration (measurement) mode.

Measures a single missile's turn rate and cruise speed so the operator can
copy them into the turn_rate and cruise_speed tunables. While active, the
controller ignores targets entirely:

1. Fire exactly one missile.
2. After calibration_start seconds the missile is told to aim directly
   behind itself.
3. Once its heading has swung by calibration_turn, the turn rate
   (angle / elapsed) and current speed are logged and the missile is
   detonated before it flies home.

Results are never fed back into targeting automatically. Any extra missile
seen in the same tick invalidates the measurement and is detonated.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .commands import CommandBuffer
from .config import GuidanceConfig
from .physics import Vector3D, angle_between_directions
from .sensors import Projectile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CalibrationResult:
    """
    Measured missile performance.

    Attributes:
        turn_rate: Average turn rate over the manoeuvre (rad/s).
        speed: Speed at the end of the manoeuvre (m/s).
        elapsed: Time taken to complete the turn (s).
    """
    turn_rate: float
    speed: float
    elapsed: float

    def as_config_overrides(self) -> Dict[str, Any]:
        """Settings to merge into a GuidanceConfig by hand."""
        return {"turn_rate": self.turn_rate, "cruise_speed": self.speed}


@dataclass
class CalibrationMode:
    """
    State of an in-progress calibration run.

    Attributes:
        config: Calibration tunables.
        projectile_id: Missile being measured, or None.
        start_heading: Unit heading when measuring began, or None.
        complete: A measurement has been taken.
        results: Every completed measurement, oldest first.
    """
    config: GuidanceConfig
    projectile_id: Optional[int] = None
    start_heading: Optional[Vector3D] = None
    complete: bool = False
    results: List[CalibrationResult] = field(default_factory=list)

    @property
    def latest(self) -> Optional[CalibrationResult]:
        """Most recent measurement, if any."""
        return self.results[-1] if self.results else None

    def reject_extra(self, channel: int, missile: int, commands: CommandBuffer) -> None:
        """
        Detonate a missile that would spoil the measurement.

        The warning is forced onto the HUD whatever the verbosity settings,
        since the operator has to clear the extra launchers.
        """
        commands.hud("TOO MANY ACTIVE MISSILES; MEASUREMENTS INVALID; CLEANING UP!", force=True)
        commands.detonate(channel, missile)

    def guide(
        self,
        channel: int,
        missile: int,
        projectile: Projectile,
        commands: CommandBuffer
    ) -> Optional[CalibrationResult]:
        """
        Fly the measurement manoeuvre for one tick.

        Args:
            channel: Host control channel index.
            missile: Missile index within the channel.
            projectile: The missile under measurement.
            commands: Buffer receiving host commands.

        Returns:
            A result on the tick the measurement completes, otherwise None.
        """
        if self.projectile_id != projectile.projectile_id:
            # A new missile; the previous one is gone
            self.reset()
            self.projectile_id = projectile.projectile_id

        measure_time = projectile.time_since_launch - self.config.calibration_start

        # Give the missile a chance to get into open air
        if measure_time < 0:
            return None

        if self.start_heading is None:
            commands.hud("MEASUREMENT MODE ACTIVE - MISSILE IGNORING TARGETS", force=True)
            self.start_heading = projectile.velocity.normalized()
            # Ask for a complete turnaround by aiming behind the missile
            commands.aim(channel, missile, projectile.position - self.start_heading)

        angle_from_start = angle_between_directions(projectile.velocity, self.start_heading)

        if angle_from_start > self.config.calibration_turn:
            # Updates can keep arriving after detonation
            if self.complete:
                return None

            elapsed = measure_time
            turn_rate = angle_from_start / elapsed if elapsed > 0 else math.inf
            result = CalibrationResult(
                turn_rate=turn_rate,
                speed=projectile.speed,
                elapsed=elapsed,
            )

            # The host log displays newest first
            commands.log(f"(Missile took {elapsed:g} to complete turn)")
            commands.log(f"cruise_speed = {result.speed:g}")
            commands.log(f"turn_rate    = {result.turn_rate:g}")
            commands.log("Measurement mode results:")

            # Detonate before it turns back home to its launcher
            commands.detonate(channel, missile)
            self.complete = True
            self.results.append(result)
            commands.hud("MEASUREMENTS COMPLETE - CHECK THE LOG", force=True)
            logger.info("Calibration complete: %s", result)
            return result

        commands.hud(
            f"MEASURING - {math.degrees(angle_from_start):g}deg in {measure_time:g}s",
            force=True
        )
        if measure_time > self.config.calibration_timeout:
            commands.hud("MEASUREMENTS ABORTED - RESETTING SYSTEM", force=True)
            commands.detonate(channel, missile)
            self.reset()
        return None

    def reset(self) -> None:
        """Forget the current run so the next missile starts fresh."""
        self.start_heading = None
        self.complete = False
