"""
Steering and thrust control for guided missiles.

Given a missile, its TargetingDecision and this tick's targets, the
SteeringController decides:
- where to aim (the target, a sea-skim point above it, straight up, or
  nowhere)
- how hard to burn (variable-speed thrusters only)
- whether to detonate now because the missile is overshooting

Guidance modes:
- CLIMBING: No target yet, young air missile gains altitude to ease its turn
- COASTING: No target; hold the last commanded course
- TARGETING: Aiming directly at the target's aim point
- SKIMMING: Holding sea-skim height before diving onto a low target
- SURFACING: Submerged air missile climbing out with engines off
- DETONATED: Overshoot detected; detonation commanded
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Sequence

from .commands import THRUST_REGISTER, CommandBuffer
from .config import GuidanceConfig, ProximityArming
from .decision import TargetingDecision, find_target
from .geometry import GeometryCache
from .physics import CLIMB_HEIGHT_M, SEA_LEVEL_Y, TICKS_PER_SECOND, Vector3D
from .sensors import Projectile, Target

logger = logging.getLogger(__name__)

# How far ahead the overshoot check projects both bodies (seconds)
OVERSHOOT_LOOKAHEAD_S = 0.5


class GuidanceMode(Enum):
    """What the steering controller did with a missile this tick."""
    CLIMBING = auto()
    COASTING = auto()
    TARGETING = auto()
    SKIMMING = auto()
    SURFACING = auto()
    DETONATED = auto()


@dataclass
class SteeringResult:
    """
    Outcome of steering one missile for one tick.

    Attributes:
        mode: Guidance mode chosen.
        target_id: Target steered toward, if any.
        aim_point: Aim point commanded, or None if no aim command was sent.
        thrust_fraction: Thrust fraction commanded to variable thrusters.
        detonated: True if a detonate command was issued.
    """
    mode: GuidanceMode
    target_id: Optional[int] = None
    aim_point: Optional[Vector3D] = None
    thrust_fraction: float = 0.0
    detonated: bool = False


def thrust_for_angle(angle: float, min_thrust: float, max_thrust: float) -> float:
    """
    Thrust fraction for a given angle off target.

    Full power dead ahead, tapering with the cosine of the angle down to the
    minimum when perpendicular or worse.

    Args:
        angle: Angle between heading and target (radians).
        min_thrust: Thrust floor.
        max_thrust: Thrust ceiling.

    Returns:
        Thrust fraction in [min_thrust, max_thrust].
    """
    convergence = math.cos(angle)
    if angle > math.pi / 2.0 or convergence < 0.0:
        convergence = 0.0
    thrust = min_thrust + (max_thrust - min_thrust) * convergence
    return max(min_thrust, min(max_thrust, thrust))


def is_overshooting(
    projectile: Projectile,
    target_point: Vector3D,
    target_velocity: Vector3D,
    lookahead_s: float = OVERSHOOT_LOOKAHEAD_S
) -> bool:
    """
    True if the gap to the target will be wider shortly than it is now.

    Both bodies are projected forward along their current velocities.
    """
    distance = projectile.position.distance_to(target_point)
    future_target = target_point + target_velocity * lookahead_s
    future_missile = projectile.position + projectile.velocity * lookahead_s
    return future_missile.distance_to(future_target) > distance


@dataclass
class SteeringController:
    """
    Computes aim, thrust, fuel use and detonation for one missile at a time.

    Attributes:
        config: Guidance tunables.
        cache: Shared per-tick geometry cache.
    """
    config: GuidanceConfig
    cache: GeometryCache

    def steer(
        self,
        channel: int,
        missile: int,
        projectile: Projectile,
        decision: TargetingDecision,
        targets: Sequence[Target],
        commands: CommandBuffer
    ) -> SteeringResult:
        """
        Steer a missile toward its assigned target (or fall back).

        The decision's target id is looked up again in this tick's list,
        because target records are rebuilt every tick. Fuel is deducted on
        every call, target or not, at the rate last estimated.

        Args:
            channel: Host control channel index.
            missile: Missile index within the channel.
            projectile: The missile.
            decision: Its targeting state (updated: fuel, detonated).
            targets: This tick's target list.
            commands: Buffer receiving host commands.

        Returns:
            What was commanded.
        """
        target = find_target(targets, decision.target_id)

        if target is None:
            result = self._steer_without_target(channel, missile, projectile, decision, commands)
        else:
            result = self._steer_at_target(channel, missile, projectile, decision, target, commands)

        decision.burn_fuel()
        return result

    def _steer_without_target(
        self,
        channel: int,
        missile: int,
        projectile: Projectile,
        decision: TargetingDecision,
        commands: CommandBuffer
    ) -> SteeringResult:
        if decision.is_air and projectile.time_since_launch < self.config.max_climb_age:
            # Gain altitude, make our turn easier
            climb = projectile.position + Vector3D.up() * CLIMB_HEIGHT_M
            commands.aim(channel, missile, climb)
            return SteeringResult(mode=GuidanceMode.CLIMBING, aim_point=climb)

        # Just cruise along on our last course
        return SteeringResult(mode=GuidanceMode.COASTING)

    def _steer_at_target(
        self,
        channel: int,
        missile: int,
        projectile: Projectile,
        decision: TargetingDecision,
        target: Target,
        commands: CommandBuffer
    ) -> SteeringResult:
        config = self.config
        mode = GuidanceMode.TARGETING
        aim_at = target.aim_point

        angle = self.cache.angle_to_target(projectile, target)
        thrust = thrust_for_angle(angle, config.min_thrust, config.max_thrust)

        # Low target: stay dry and fast until we have to dive
        if not decision.is_water and aim_at.y < config.sea_skim_height:
            if self._can_delay_dive(projectile, target, angle):
                aim_at = aim_at.with_y(config.sea_skim_height)
                mode = GuidanceMode.SKIMMING
                commands.debug(
                    f"Missile {projectile.projectile_id} is sea-skimming before a dive"
                )

        # Submerged air missile trying to climb: forget the target and surface
        # with engines off, since thrusters do nothing underwater
        if (not decision.is_water
                and projectile.position.y < SEA_LEVEL_Y
                and aim_at.y > projectile.position.y):
            aim_at = projectile.position + Vector3D.up() * CLIMB_HEIGHT_M
            thrust = 0.0
            mode = GuidanceMode.SURFACING

        commands.aim(channel, missile, aim_at)

        for part in decision.thrusters:
            commands.set_register(
                channel, missile, part, THRUST_REGISTER,
                thrust * config.thrust_register_scale
            )

        decision.fuel_rate = (
            thrust * config.steer_interval * (len(decision.thrusters) / TICKS_PER_SECOND)
        )

        result = SteeringResult(
            mode=mode,
            target_id=target.target_id,
            aim_point=aim_at,
            thrust_fraction=thrust,
        )

        if self._proximity_armed(projectile, decision, target):
            if is_overshooting(projectile, target.aim_point, target.velocity):
                commands.hud(f"Missile {projectile.projectile_id} overshooting; detonating!")
                commands.detonate(channel, missile)
                decision.detonated = True
                result.detonated = True
                result.mode = GuidanceMode.DETONATED

        return result

    def _can_delay_dive(self, projectile: Projectile, target: Target, angle: float) -> bool:
        """True if the missile can still make the dive later."""
        if self.config.turn_aware:
            # Get ready early so we don't abort
            time_to_turn = self.cache.time_to_target(projectile, target) * 0.5
            return angle < self.config.turn_rate * time_to_turn
        return angle < self.config.off_course_clamp / 2.0

    def _proximity_armed(
        self,
        projectile: Projectile,
        decision: TargetingDecision,
        target: Target
    ) -> bool:
        """True if the overshoot trigger is armed under the configured policy."""
        if self.config.proximity_arming is ProximityArming.FUEL:
            return decision.fuel_max > 0 and decision.fuel_fraction < self.config.prox_abort_fuel
        distance = projectile.position.distance_to(target.aim_point)
        return distance < self.config.prox_abort_distance
