#!/usr/bin/env python3
"""
Reference Host Simulation for the Missile Guidance Controller

A small kinematic stand-in for the game host, used by the CLI and the
integration tests. Each step it:
- Builds a TickInput from its targets and missiles
- Runs GuidanceController.update()
- Applies the returned commands (aim points, thrust registers, detonations)
- Moves everything forward by one tick

Missile model (deliberately simple):
- Heading turns toward the commanded aim point at a fixed turn rate
- Speed relaxes toward top_speed * throttle (throttle is the commanded
  variable-thrust fraction, or 1.0 for missiles without variable thrusters)
- Propulsion only works in a missile's own domain (air above the sea,
  water below it)
- A missile is removed on detonation, on impact (within hit_radius of a
  target's aim point) or when it reaches its lifetime

Targets move in straight lines. Deterministic for a given seed.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Dict, List, Optional, Tuple

import numpy as np

from .commands import (
    THRUST_REGISTER,
    Detonate,
    HostCommand,
    HudMessage,
    LogMessage,
    SetActuatorRegister,
    SetAimPoint,
)
from .config import GuidanceConfig
from .controller import GuidanceController, TickResult
from .physics import SEA_LEVEL_Y, TICKS_PER_SECOND, Vector3D
from .sensors import (
    ControlledMissile,
    MissileChannel,
    MissilePart,
    Projectile,
    SensorGroup,
    Target,
    TickInput,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

DEFAULT_TIME_STEP = 1.0 / TICKS_PER_SECOND  # seconds
DEFAULT_HIT_RADIUS_M = 2.0
DEFAULT_BLAST_RADIUS_M = 6.0
DEFAULT_MISSILE_LIFETIME_S = 30.0

# Standard part lists
AIR_MISSILE_PARTS: Tuple[MissilePart, ...] = (
    MissilePart("missile fuel tank"),
    MissilePart("missile fuel tank"),
    MissilePart("missile variable speed thruster", {THRUST_REGISTER: 300.0}),
    MissilePart("missile fins"),
)
TORPEDO_PARTS: Tuple[MissilePart, ...] = (
    MissilePart("missile fuel tank"),
    MissilePart("torpedo propeller"),
    MissilePart("missile fins"),
)
CROSS_DOMAIN_PARTS: Tuple[MissilePart, ...] = (
    MissilePart("missile fuel tank"),
    MissilePart("missile variable speed thruster", {THRUST_REGISTER: 300.0}),
    MissilePart("torpedo propeller"),
)


# =============================================================================
# EVENTS
# =============================================================================

class SimulationEventType(Enum):
    """Types of events recorded by the simulation."""
    MISSILE_LAUNCHED = auto()
    MISSILE_IMPACT = auto()
    MISSILE_DETONATED = auto()
    MISSILE_EXPIRED = auto()
    HOST_LOG = auto()
    HUD_MESSAGE = auto()


@dataclass
class SimulationEvent:
    """
    Something notable that happened during the run.

    Attributes:
        time: Simulation time (seconds).
        event_type: What happened.
        missile_id: Missile involved, if any.
        target_id: Target involved, if any.
        message: Free-form detail.
    """
    time: float
    event_type: SimulationEventType
    missile_id: Optional[int] = None
    target_id: Optional[int] = None
    message: str = ""


# =============================================================================
# ENTITIES
# =============================================================================

@dataclass
class SimTarget:
    """A target moving in a straight line."""
    target_id: int
    position: np.ndarray
    velocity: np.ndarray = field(default_factory=lambda: np.zeros(3))
    priority: float = 0.0
    score: float = 0.0
    protected: bool = False
    player_target_choice: bool = False
    hits: int = 0

    def to_target(self) -> Target:
        """Sensor record for this tick."""
        return Target(
            target_id=self.target_id,
            aim_point=_to_vector(self.position),
            velocity=_to_vector(self.velocity),
            player_target_choice=self.player_target_choice,
            protected=self.protected,
            priority=self.priority,
            score=self.score,
        )


@dataclass
class SimMissile:
    """
    A missile flown by the simulation.

    Attributes:
        missile_id: Identity reported to the engine.
        channel: Control channel (transceiver) it belongs to.
        position: World position (meters).
        heading: Unit direction of travel.
        speed: Current speed (m/s).
        parts: Structural parts; thrust registers are updated in place.
        turn_rate: Maximum turn rate (rad/s).
        top_speed: Speed at full throttle (m/s).
        acceleration: Speed change rate at full throttle (m/s^2).
        age: Time since launch (seconds).
        aim_point: Last commanded aim point, if any.
    """
    missile_id: int
    channel: int
    position: np.ndarray
    heading: np.ndarray
    speed: float
    parts: List[MissilePart]
    turn_rate: float = 0.6
    top_speed: float = 300.0
    acceleration: float = 150.0
    thrust_scale: float = 1000.0
    age: float = 0.0
    aim_point: Optional[np.ndarray] = None
    previous_position: Optional[np.ndarray] = None

    @property
    def velocity(self) -> np.ndarray:
        return self.heading * self.speed

    @property
    def is_air(self) -> bool:
        return any("thruster" in p.name.lower() for p in self.parts)

    @property
    def is_water(self) -> bool:
        return any("propeller" in p.name.lower() for p in self.parts)

    def throttle(self) -> float:
        """Propulsive throttle available in the missile's current medium."""
        submerged = self.position[1] < SEA_LEVEL_Y
        if submerged and not self.is_water:
            return 0.0
        if not submerged and not self.is_air:
            return 0.0

        thrusters = [p for p in self.parts if "variable speed thruster" in p.name.lower()]
        if not thrusters or (submerged and self.is_water):
            return 1.0
        register = np.mean([p.registers.get(THRUST_REGISTER, 0.0) for p in thrusters])
        return float(np.clip(register / self.thrust_scale, 0.0, 1.0))

    def to_projectile(self) -> Projectile:
        """Host record for this tick."""
        return Projectile(
            projectile_id=self.missile_id,
            position=_to_vector(self.position),
            velocity=_to_vector(self.velocity),
            time_since_launch=self.age,
        )

    def advance(self, dt: float) -> None:
        """Turn, accelerate and move for one time step."""
        self.age += dt

        if self.aim_point is not None:
            self.heading = turn_toward(
                self.heading, self.aim_point - self.position, self.turn_rate * dt
            )

        # Linear drag: terminal speed is top_speed * throttle
        throttle = self.throttle()
        drag = self.acceleration / self.top_speed if self.top_speed > 0 else 0.0
        self.speed += (self.acceleration * throttle - drag * self.speed) * dt
        self.speed = max(0.0, self.speed)

        self.previous_position = self.position
        self.position = self.position + self.velocity * dt


def turn_toward(heading: np.ndarray, desired: np.ndarray, max_angle: float) -> np.ndarray:
    """
    Rotate a unit heading toward a desired direction by at most max_angle.

    Uses Rodrigues' rotation about the axis perpendicular to both vectors.

    Args:
        heading: Current unit heading.
        desired: Desired direction (any length).
        max_angle: Largest rotation allowed this step (radians).

    Returns:
        New unit heading.
    """
    norm = np.linalg.norm(desired)
    if norm == 0:
        return heading
    desired = desired / norm

    angle = math.acos(float(np.clip(np.dot(heading, desired), -1.0, 1.0)))
    if angle <= max_angle:
        return desired

    axis = np.cross(heading, desired)
    axis_norm = np.linalg.norm(axis)
    if axis_norm < 1e-12:
        # Directly behind: pick any perpendicular axis
        axis = np.cross(heading, np.array([0.0, 1.0, 0.0]))
        if np.linalg.norm(axis) < 1e-12:
            axis = np.cross(heading, np.array([1.0, 0.0, 0.0]))
        axis_norm = np.linalg.norm(axis)
    k = axis / axis_norm

    cos_a = math.cos(max_angle)
    sin_a = math.sin(max_angle)
    rotated = heading * cos_a + np.cross(k, heading) * sin_a + k * np.dot(k, heading) * (1 - cos_a)
    return rotated / np.linalg.norm(rotated)


# =============================================================================
# SIMULATION
# =============================================================================

class EngagementSimulation:
    """
    Host loop driving a GuidanceController against simulated entities.

    Usage:
        sim = EngagementSimulation.create_scenario(GuidanceConfig(), seed=42)
        sim.run(duration_s=20.0)
        print(sim.summary())
    """

    def __init__(
        self,
        controller: GuidanceController,
        time_step: float = DEFAULT_TIME_STEP,
        hit_radius: float = DEFAULT_HIT_RADIUS_M,
        blast_radius: float = DEFAULT_BLAST_RADIUS_M,
        missile_lifetime: float = DEFAULT_MISSILE_LIFETIME_S,
        sensor_groups: int = 1,
        channels: int = 1,
    ):
        """
        Initialize an empty simulation.

        Args:
            controller: Guidance engine to drive.
            time_step: Seconds per tick.
            hit_radius: Distance counted as an impact (meters).
            blast_radius: Detonations within this of a target damage it.
            missile_lifetime: Missiles expire after this many seconds.
            sensor_groups: Number of sensor groups to spread targets over.
            channels: Number of control channels.
        """
        self.controller = controller
        self.time_step = time_step
        self.hit_radius = hit_radius
        self.blast_radius = blast_radius
        self.missile_lifetime = missile_lifetime
        self.sensor_group_count = max(1, sensor_groups)
        self.channel_count = max(1, channels)

        self.time = 0.0
        self.targets: List[SimTarget] = []
        self.missiles: List[SimMissile] = []
        self.events: List[SimulationEvent] = []
        self.results: List[TickResult] = []
        self._next_missile_id = 1
        self._pending_launches: List[Tuple[float, int]] = []

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def add_target(self, target: SimTarget) -> SimTarget:
        """Add a target to the battlespace."""
        self.targets.append(target)
        return target

    def launch(
        self,
        position: Tuple[float, float, float],
        direction: Tuple[float, float, float],
        parts: Tuple[MissilePart, ...] = AIR_MISSILE_PARTS,
        speed: float = 50.0,
        channel: int = 0,
        **kwargs: float
    ) -> SimMissile:
        """
        Launch a missile.

        Args:
            position: Launch position.
            direction: Initial direction of travel.
            parts: Part list (copied so register writes stay per missile).
            speed: Launch speed (m/s).
            channel: Control channel index.
            **kwargs: Overrides for SimMissile performance fields.

        Returns:
            The new missile.
        """
        heading = np.asarray(direction, dtype=float)
        heading = heading / np.linalg.norm(heading)
        missile = SimMissile(
            missile_id=self._next_missile_id,
            channel=channel % self.channel_count,
            position=np.asarray(position, dtype=float),
            heading=heading,
            speed=speed,
            parts=[MissilePart(p.name, dict(p.registers)) for p in parts],
            thrust_scale=self.controller.config.thrust_register_scale,
            **kwargs,
        )
        self._next_missile_id += 1
        self.missiles.append(missile)
        self._record(SimulationEventType.MISSILE_LAUNCHED, missile.missile_id)
        return missile

    @classmethod
    def create_scenario(
        cls,
        config: GuidanceConfig,
        missiles: int = 4,
        targets: int = 3,
        seed: Optional[int] = None,
        **kwargs: float
    ) -> EngagementSimulation:
        """
        Build a randomized engagement: a launcher at the origin and a mix of
        surface ships, aircraft and submarines spread downrange.

        Args:
            config: Guidance tunables for the controller.
            missiles: Number of missiles to launch (staggered by 0.1 s).
            targets: Number of targets.
            seed: Random seed.
            **kwargs: Passed to the constructor.

        Returns:
            A ready-to-run simulation.
        """
        rng = np.random.default_rng(seed)
        sim = cls(GuidanceController(config), **kwargs)

        for index in range(targets):
            kind = index % 3
            bearing = rng.uniform(-0.6, 0.6)
            distance = rng.uniform(400.0, 1200.0)
            height = {0: 3.0, 1: rng.uniform(60.0, 200.0), 2: -rng.uniform(20.0, 60.0)}[kind]
            heading = rng.uniform(0, 2 * math.pi)
            speed = rng.uniform(5.0, 25.0) if kind != 1 else rng.uniform(40.0, 80.0)
            sim.add_target(SimTarget(
                target_id=1000 + index,
                position=np.array([distance * math.sin(bearing), height, distance * math.cos(bearing)]),
                velocity=np.array([speed * math.cos(heading), 0.0, speed * math.sin(heading)]),
                priority=float(rng.integers(0, 3)),
                score=float(rng.uniform(0.0, 10.0)),
            ))

        sim._pending_launches = [
            (0.1 * index, index) for index in range(missiles)
        ]
        return sim

    # -------------------------------------------------------------------------
    # Running
    # -------------------------------------------------------------------------

    def build_tick_input(self) -> Tuple[TickInput, Dict[Tuple[int, int], SimMissile]]:
        """
        Snapshot the battlespace as the host would report it.

        Returns:
            The tick input, and a map from (channel, index) to missile for
            applying commands.
        """
        groups = [SensorGroup() for _ in range(self.sensor_group_count)]
        for index, target in enumerate(self.targets):
            groups[index % self.sensor_group_count].targets.append(target.to_target())

        channels = [MissileChannel() for _ in range(self.channel_count)]
        addresses: Dict[Tuple[int, int], SimMissile] = {}
        for missile in self.missiles:
            channel = channels[missile.channel]
            addresses[(missile.channel, channel.missile_count)] = missile
            channel.missiles.append(ControlledMissile(
                projectile=missile.to_projectile(),
                parts=tuple(missile.parts),
            ))
        return TickInput(sensor_groups=groups, channels=channels), addresses

    def step(self) -> TickResult:
        """Advance the simulation by one tick."""
        self._launch_due()

        tick_input, addresses = self.build_tick_input()
        result = self.controller.update(tick_input)
        self.results.append(result)
        self.apply_commands(result.commands, addresses)

        for missile in list(self.missiles):
            missile.advance(self.time_step)
        for target in self.targets:
            target.position = target.position + target.velocity * self.time_step

        self._check_impacts()
        self.time += self.time_step
        return result

    def run(self, duration_s: float) -> List[SimulationEvent]:
        """
        Run for a fixed amount of simulated time.

        Returns:
            All events recorded so far.
        """
        steps = int(round(duration_s / self.time_step))
        for _ in range(steps):
            self.step()
            # One more tick after the last removal lets the controller drop its state
            if not (self.missiles or self._pending_launches or self.controller.decisions):
                break
        return self.events

    def apply_commands(
        self,
        commands: List[HostCommand],
        addresses: Dict[Tuple[int, int], SimMissile]
    ) -> None:
        """Carry out the engine's commands against this tick's addresses."""
        for command in commands:
            if isinstance(command, SetAimPoint):
                missile = addresses.get((command.channel, command.missile))
                if missile is not None:
                    missile.aim_point = np.array(command.point.to_tuple())
            elif isinstance(command, SetActuatorRegister):
                missile = addresses.get((command.channel, command.missile))
                if missile is not None and 0 <= command.part < len(missile.parts):
                    part = missile.parts[command.part]
                    registers = dict(part.registers)
                    registers[command.register] = command.value
                    missile.parts[command.part] = MissilePart(part.name, registers)
            elif isinstance(command, Detonate):
                missile = addresses.get((command.channel, command.missile))
                if missile is not None and missile in self.missiles:
                    self._detonate(missile)
            elif isinstance(command, LogMessage):
                self._record(SimulationEventType.HOST_LOG, message=command.text)
            elif isinstance(command, HudMessage):
                self._record(SimulationEventType.HUD_MESSAGE, message=command.text)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def events_of_type(self, event_type: SimulationEventType) -> List[SimulationEvent]:
        """Events of one type, in order."""
        return [e for e in self.events if e.event_type is event_type]

    def summary(self) -> Dict[str, int]:
        """Counts of the main outcomes."""
        return {
            "launched": len(self.events_of_type(SimulationEventType.MISSILE_LAUNCHED)),
            "impacts": len(self.events_of_type(SimulationEventType.MISSILE_IMPACT)),
            "detonations": len(self.events_of_type(SimulationEventType.MISSILE_DETONATED)),
            "expired": len(self.events_of_type(SimulationEventType.MISSILE_EXPIRED)),
            "in_flight": len(self.missiles),
            "target_hits": sum(t.hits for t in self.targets),
        }

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _launch_due(self) -> None:
        if not self._pending_launches:
            return
        due = [p for p in self._pending_launches if p[0] <= self.time + 1e-9]
        self._pending_launches = [p for p in self._pending_launches if p[0] > self.time + 1e-9]
        for _, index in due:
            # Every third missile can follow a target under the sea
            parts = CROSS_DOMAIN_PARTS if index % 3 == 2 else AIR_MISSILE_PARTS
            self.launch(
                position=(2.0 * index, 5.0, 0.0),
                direction=(0.0, 0.3, 1.0),
                parts=parts,
                channel=index,
            )

    def _detonate(self, missile: SimMissile) -> None:
        self.missiles.remove(missile)
        struck = None
        for target in self.targets:
            if np.linalg.norm(target.position - missile.position) <= self.blast_radius:
                target.hits += 1
                struck = target.target_id
        self._record(SimulationEventType.MISSILE_DETONATED, missile.missile_id, struck)

    def _check_impacts(self) -> None:
        for missile in list(self.missiles):
            for target in self.targets:
                if self._closest_approach(missile, target) <= self.hit_radius:
                    target.hits += 1
                    self.missiles.remove(missile)
                    self._record(
                        SimulationEventType.MISSILE_IMPACT, missile.missile_id, target.target_id
                    )
                    break
            else:
                if missile.age >= self.missile_lifetime:
                    self.missiles.remove(missile)
                    self._record(SimulationEventType.MISSILE_EXPIRED, missile.missile_id)

    def _closest_approach(self, missile: SimMissile, target: SimTarget) -> float:
        """Closest distance between missile and target during the last step."""
        end = missile.position - target.position
        if missile.previous_position is None:
            return float(np.linalg.norm(end))
        target_start = target.position - target.velocity * self.time_step
        start = missile.previous_position - target_start
        path = end - start
        length_sq = float(np.dot(path, path))
        if length_sq == 0.0:
            return float(np.linalg.norm(end))
        s = float(np.clip(-np.dot(start, path) / length_sq, 0.0, 1.0))
        return float(np.linalg.norm(start + path * s))

    def _record(
        self,
        event_type: SimulationEventType,
        missile_id: Optional[int] = None,
        target_id: Optional[int] = None,
        message: str = ""
    ) -> None:
        self.events.append(SimulationEvent(
            time=self.time,
            event_type=event_type,
            missile_id=missile_id,
            target_id=target_id,
            message=message,
        ))
        if event_type not in (SimulationEventType.HOST_LOG, SimulationEventType.HUD_MESSAGE):
            logger.debug("t=%.3f %s missile=%s target=%s",
                         self.time, event_type.name, missile_id, target_id)


def _to_vector(array: np.ndarray) -> Vector3D:
    return Vector3D(float(array[0]), float(array[1]), float(array[2]))


if __name__ == "__main__":
    print("Missile Guidance - Engagement Self Test")
    print("=" * 50)

    simulation = EngagementSimulation.create_scenario(GuidanceConfig(), missiles=6, targets=4, seed=7)
    simulation.run(duration_s=20.0)
    for key, value in simulation.summary().items():
        print(f"  {key:12s} {value}")
