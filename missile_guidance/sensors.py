"""
Sensor and host records for the Missile Guidance Controller.

This module defines the fixed-shape records the host hands the engine each
tick, and the Target Scanner that flattens sensor groups into the tick's
target list:
- Target: a sensor-reported entity with its designated aim point
- Projectile: a host-reported missile (position, velocity, age)
- MissilePart: one structural part of a missile (name plus registers)
- SensorGroup / MissileChannel / TickInput: the per-tick host enumeration

Records are rebuilt from scratch every tick; only the integer ids carry
across ticks. Raw host data can be converted with the from_host()
constructors, which return None instead of raising on malformed records so a
bad record only makes that entity unusable for the tick.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .physics import Vector3D

logger = logging.getLogger(__name__)


# =============================================================================
# TARGETS
# =============================================================================

@dataclass(frozen=True)
class Target:
    """
    A candidate target as reported by a sensor group (one tick only).

    Attributes:
        target_id: Identity; the only field stable across ticks.
        aim_point: World position of the designated aim point (meters).
        velocity: Target velocity (m/s).
        player_target_choice: True if this is the player's chosen target.
        protected: True for protected/salvage targets (rank last).
        priority: Sensor doctrine priority; lower is more important.
        score: Sensor-assigned score; higher is better.
        valid: Sensor validity flag; invalid targets are never scanned in.
    """
    target_id: int
    aim_point: Vector3D
    velocity: Vector3D = field(default_factory=Vector3D.zero)
    player_target_choice: bool = False
    protected: bool = False
    priority: float = 0.0
    score: float = 0.0
    valid: bool = True

    @classmethod
    def from_host(cls, record: Mapping[str, Any]) -> Optional[Target]:
        """
        Build a Target from a raw host record.

        Expected keys: id, aim_point, and optionally velocity,
        player_target_choice, protected, priority, score, valid.

        Returns:
            The Target, or None if the record is unusable this tick.
        """
        try:
            target_id = int(record["id"])
            aim_point = _vector(record["aim_point"])
            velocity = _vector(record.get("velocity", (0.0, 0.0, 0.0)))
            priority = float(record.get("priority", 0.0))
            score = float(record.get("score", 0.0))
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            logger.debug("Skipping malformed target record %r: %s", record, exc)
            return None

        if not (aim_point.is_finite() and velocity.is_finite()):
            logger.debug("Skipping target %d with non-finite state", target_id)
            return None
        if not (math.isfinite(priority) and math.isfinite(score)):
            logger.debug("Skipping target %d with non-finite ranking data", target_id)
            return None

        return cls(
            target_id=target_id,
            aim_point=aim_point,
            velocity=velocity,
            player_target_choice=bool(record.get("player_target_choice", False)),
            protected=bool(record.get("protected", False)),
            priority=priority,
            score=score,
            valid=bool(record.get("valid", True)),
        )


@dataclass
class SensorGroup:
    """
    One sensor group (mainframe) and the targets it reports this tick.

    Attributes:
        targets: Targets in the group's own index order.
    """
    targets: List[Target] = field(default_factory=list)

    @property
    def target_count(self) -> int:
        """Number of targets the group reports."""
        return len(self.targets)

    def target_info(self, index: int) -> Target:
        """Target record at an index."""
        return self.targets[index]

    @classmethod
    def from_host(cls, records: Iterable[Mapping[str, Any]]) -> SensorGroup:
        """Build a group from raw records, dropping unusable ones."""
        targets = [Target.from_host(record) for record in records]
        return cls(targets=[t for t in targets if t is not None])


def scan_targets(sensor_groups: Sequence[SensorGroup]) -> List[Target]:
    """
    Produce the ordered list of currently valid targets.

    Groups are visited in order, then each group's targets in index order.
    Invalid targets are excluded; nothing is deduplicated beyond what the
    groups already guarantee. The input groups are not modified.

    Args:
        sensor_groups: Every sensor group reporting this tick.

    Returns:
        A new list holding this tick's valid targets.
    """
    targets: List[Target] = []
    for group in sensor_groups:
        for index in range(group.target_count):
            target = group.target_info(index)
            if target.valid:
                targets.append(target)
    return targets


# =============================================================================
# PROJECTILES
# =============================================================================

@dataclass(frozen=True)
class Projectile:
    """
    A host-controlled missile, read-only to the engine.

    Attributes:
        projectile_id: Identity, stable while the missile lives.
        position: World position (meters).
        velocity: World velocity (m/s).
        time_since_launch: Missile age (seconds).
    """
    projectile_id: int
    position: Vector3D
    velocity: Vector3D
    time_since_launch: float = 0.0

    @property
    def speed(self) -> float:
        """Current speed (m/s)."""
        return self.velocity.magnitude

    @classmethod
    def from_host(cls, record: Mapping[str, Any]) -> Optional[Projectile]:
        """Build a Projectile from a raw host record, or None if unusable."""
        try:
            projectile = cls(
                projectile_id=int(record["id"]),
                position=_vector(record["position"]),
                velocity=_vector(record["velocity"]),
                time_since_launch=float(record.get("time_since_launch", 0.0)),
            )
        except (KeyError, TypeError, ValueError, IndexError) as exc:
            logger.debug("Skipping malformed projectile record %r: %s", record, exc)
            return None

        if not (projectile.position.is_finite() and projectile.velocity.is_finite()
                and math.isfinite(projectile.time_since_launch)):
            return None
        return projectile


@dataclass(frozen=True)
class MissilePart:
    """
    One structural part of a missile.

    Attributes:
        name: Part name as the host reports it (used for classification).
        registers: Register index -> current value.
    """
    name: str
    registers: Dict[int, float] = field(default_factory=dict)

    @classmethod
    def from_host(cls, record: Mapping[str, Any]) -> Optional[MissilePart]:
        """
        Build a MissilePart from a raw host record.

        Expected keys: name, and optionally registers (index -> value).
        Register values are coerced to float.

        Returns:
            The MissilePart, or None if the name or any register is unusable.
        """
        try:
            name = str(record["name"])
            registers = {
                int(index): float(value)
                for index, value in dict(record.get("registers", {})).items()
            }
        except (KeyError, TypeError, ValueError) as exc:
            logger.debug("Skipping malformed part record %r: %s", record, exc)
            return None

        if not all(math.isfinite(value) for value in registers.values()):
            logger.debug("Skipping part %r with non-finite registers", name)
            return None
        return cls(name=name, registers=registers)


@dataclass
class ControlledMissile:
    """
    A projectile together with its part list, as a channel reports it.

    The projectile may be None when the host record behind it was unusable;
    the controller skips such entries for the tick.
    """
    projectile: Optional[Projectile]
    parts: Tuple[MissilePart, ...] = ()

    @classmethod
    def from_host(cls, record: Mapping[str, Any]) -> Optional[ControlledMissile]:
        """
        Build a ControlledMissile from a raw host record.

        Expected keys: projectile (a projectile record) and optionally parts
        (a list of part records). Unusable parts are dropped.

        Returns:
            The ControlledMissile, or None if the projectile is unusable.
        """
        try:
            projectile = Projectile.from_host(record["projectile"])
            part_records = list(record.get("parts", ()))
        except (KeyError, TypeError) as exc:
            logger.debug("Skipping malformed missile record %r: %s", record, exc)
            return None

        if projectile is None:
            return None
        parts = [MissilePart.from_host(part) for part in part_records]
        return cls(projectile=projectile, parts=tuple(p for p in parts if p is not None))


@dataclass
class MissileChannel:
    """
    One projectile-control channel (transceiver) and its missiles this tick.

    Attributes:
        missiles: Missiles in the channel's own index order.
    """
    missiles: List[ControlledMissile] = field(default_factory=list)

    @property
    def missile_count(self) -> int:
        """Number of missiles currently controlled through this channel."""
        return len(self.missiles)

    @classmethod
    def from_host(cls, records: Iterable[Mapping[str, Any]]) -> MissileChannel:
        """
        Build a channel from raw missile records.

        Unusable records keep their slot with a None projectile, so the
        remaining missiles keep the host's indices for addressing commands.
        """
        missiles = []
        for record in records:
            missile = ControlledMissile.from_host(record)
            missiles.append(missile if missile is not None else ControlledMissile(None))
        return cls(missiles=missiles)


@dataclass
class TickInput:
    """Everything the host supplies for one tick."""
    sensor_groups: List[SensorGroup] = field(default_factory=list)
    channels: List[MissileChannel] = field(default_factory=list)


def _vector(value: Any) -> Vector3D:
    """Accept a Vector3D or any 3-element sequence."""
    if isinstance(value, Vector3D):
        return value
    if len(value) != 3:
        raise ValueError(f"Expected 3 components, got {len(value)}")
    return Vector3D.from_tuple(value)
