"""Missile guidance controller package."""

from .physics import (
    CLIMB_HEIGHT_M,
    SEA_LEVEL_Y,
    TICKS_PER_SECOND,
    Vector3D,
    angle_between_directions,
    height_above_sea,
)

from .config import (
    ConfigError,
    GuidanceConfig,
    ProximityArming,
)

from .sensors import (
    # Host records
    Target,
    SensorGroup,
    Projectile,
    MissilePart,
    ControlledMissile,
    MissileChannel,
    TickInput,
    # Utilities
    scan_targets,
)

from .commands import (
    THRUST_REGISTER,
    SetAimPoint,
    SetActuatorRegister,
    Detonate,
    LogMessage,
    HudMessage,
    HostCommand,
    CommandBuffer,
)

from .geometry import GeometryCache

from .feasibility import (
    FeasibilityEstimator,
    FeasibilityVerdict,
)

from .targeting import TargetRanker

from .decision import (
    FUEL_PER_TANK,
    AssignmentOutcome,
    TargetingDecision,
    TargetingStateMachine,
    classify_parts,
    find_target,
)

from .steering import (
    GuidanceMode,
    SteeringController,
    SteeringResult,
    is_overshooting,
    thrust_for_angle,
)

from .calibration import (
    CalibrationMode,
    CalibrationResult,
)

from .controller import (
    GuidanceController,
    TickResult,
)

__all__ = [
    # Physics
    "CLIMB_HEIGHT_M",
    "SEA_LEVEL_Y",
    "TICKS_PER_SECOND",
    "Vector3D",
    "angle_between_directions",
    "height_above_sea",
    # Config
    "ConfigError",
    "GuidanceConfig",
    "ProximityArming",
    # Sensors
    "Target",
    "SensorGroup",
    "Projectile",
    "MissilePart",
    "ControlledMissile",
    "MissileChannel",
    "TickInput",
    "scan_targets",
    # Commands
    "THRUST_REGISTER",
    "SetAimPoint",
    "SetActuatorRegister",
    "Detonate",
    "LogMessage",
    "HudMessage",
    "HostCommand",
    "CommandBuffer",
    # Geometry
    "GeometryCache",
    # Feasibility
    "FeasibilityEstimator",
    "FeasibilityVerdict",
    # Targeting
    "TargetRanker",
    # Decisions
    "FUEL_PER_TANK",
    "AssignmentOutcome",
    "TargetingDecision",
    "TargetingStateMachine",
    "classify_parts",
    "find_target",
    # Steering
    "GuidanceMode",
    "SteeringController",
    "SteeringResult",
    "is_overshooting",
    "thrust_for_angle",
    # Calibration
    "CalibrationMode",
    "CalibrationResult",
    # Controller
    "GuidanceController",
    "TickResult",
]
