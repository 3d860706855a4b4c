"""
Guidance tunables for the missile controller.

Every behavior of the engine is parameterized here rather than hard-coded.
Defaults reproduce the second-generation controller (variable thrust, fuel
model, sticky targeting); mk1() gives the turn-rate-aware first-generation
profile.

Configuration can be loaded from a dictionary, a JSON file, or environment
variables (GUIDANCE_* by default, with .env support).
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv


class ConfigError(ValueError):
    """Raised when guidance configuration cannot be understood."""


class ProximityArming(Enum):
    """What arms the overshoot detonation check."""
    DISTANCE = "distance"  # Armed inside prox_abort_distance of the target
    FUEL = "fuel"          # Armed once fuel drops below prox_abort_fuel


@dataclass
class GuidanceConfig:
    """
    Tunables for target selection, steering, and the calibration mode.

    Attributes:
        min_thrust: Minimum variable-thruster fraction ever commanded.
        max_thrust: Maximum variable-thruster fraction ever commanded.
        sea_crossover_tolerance: How far above/below the sea a target may sit
            and still be engaged by a single-domain missile (meters).
        maximum_range: Distance beyond which targets are not pursued (meters).
        proximity_arming: Arming policy for the overshoot trigger.
        prox_abort_fuel: Fuel fraction under which the trigger arms (FUEL).
        prox_abort_distance: Distance under which the trigger arms (DISTANCE).
        sea_skim_height: Air missiles stay above this height until they must
            dive onto a low target (meters).
        max_climb_age: Untargeted air missiles younger than this climb (s).
        sticky_targeting: Keep a current target while it stays feasible.
        off_course_clamp: Angle beyond which all targets rank as equally
            off-course (radians).
        chase_unicorns: With no feasible target, chase the best infeasible one.
        target_assign_interval: Seconds of missile age between reassessments.
        steer_interval: Ticks between steering updates.
        turn_rate: Missile turn rate (rad/s); None disables turn modeling.
        cruise_speed: Speed the missile spends most of its life at (m/s).
        thrust_register_scale: Register value sent for a thrust fraction of 1.
        debug_log: Emit diagnostic lines to the host log.
        profile_log: Emit per-tick decision/cache counters to the HUD.
        hud_log: Announce notable events (detonations) on the HUD.
        calibration_mode: Ignore targets and measure a single missile.
        calibration_start: Missile age before measuring begins (s).
        calibration_turn: Heading change that completes a measurement (rad).
        calibration_timeout: Measurement time before giving up (s).
    """
    min_thrust: float = 0.0
    max_thrust: float = 0.33
    sea_crossover_tolerance: float = 10.0
    maximum_range: float = 1500.0
    proximity_arming: ProximityArming = ProximityArming.FUEL
    prox_abort_fuel: float = 0.25
    prox_abort_distance: float = 3.0
    sea_skim_height: float = 2.0
    max_climb_age: float = 1.0
    sticky_targeting: bool = True
    off_course_clamp: float = math.radians(45)
    chase_unicorns: bool = True
    target_assign_interval: float = 0.2
    steer_interval: int = 1
    turn_rate: Optional[float] = None
    cruise_speed: float = 115.0
    thrust_register_scale: float = 1000.0
    debug_log: bool = False
    profile_log: bool = False
    hud_log: bool = True
    calibration_mode: bool = False
    calibration_start: float = 0.5
    calibration_turn: float = math.radians(90)
    calibration_timeout: float = 10.0

    def __post_init__(self) -> None:
        """Normalize enum fields and clamp tunables to usable ranges."""
        if isinstance(self.proximity_arming, str):
            try:
                self.proximity_arming = ProximityArming(self.proximity_arming.lower())
            except ValueError as exc:
                raise ConfigError(
                    f"Unknown proximity_arming {self.proximity_arming!r}"
                ) from exc

        self.min_thrust = max(0.0, min(1.0, self.min_thrust))
        self.max_thrust = max(self.min_thrust, min(1.0, self.max_thrust))
        self.sea_crossover_tolerance = max(0.0, self.sea_crossover_tolerance)
        self.maximum_range = max(0.0, self.maximum_range)
        self.prox_abort_fuel = max(0.0, min(1.0, self.prox_abort_fuel))
        self.prox_abort_distance = max(0.0, self.prox_abort_distance)
        self.off_course_clamp = max(0.0, min(math.pi, self.off_course_clamp))
        self.target_assign_interval = max(0.0, self.target_assign_interval)
        self.steer_interval = max(1, int(self.steer_interval))
        self.cruise_speed = max(0.0, self.cruise_speed)
        if self.turn_rate is not None and self.turn_rate <= 0:
            raise ConfigError("turn_rate must be positive (or None to disable)")

    @property
    def turn_aware(self) -> bool:
        """True when the turning-circle model is enabled."""
        return self.turn_rate is not None

    # -------------------------------------------------------------------------
    # Presets
    # -------------------------------------------------------------------------

    @classmethod
    def mk1(cls, **overrides: Any) -> GuidanceConfig:
        """
        First-generation profile: turn-rate aware, proximity-distance trigger.

        Turn rate and speed come from a calibration run of a stock missile;
        rerun calibration mode for other designs.
        """
        values: Dict[str, Any] = dict(
            maximum_range=1000.0,
            turn_rate=0.54,
            cruise_speed=115.0,
            proximity_arming=ProximityArming.DISTANCE,
            prox_abort_distance=3.0,
            sticky_targeting=False,
            chase_unicorns=False,
            target_assign_interval=0.0,
        )
        values.update(overrides)
        return cls(**values)

    @classmethod
    def mk2(cls, **overrides: Any) -> GuidanceConfig:
        """Second-generation profile: variable thrust with fuel model."""
        return cls(**overrides)

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> GuidanceConfig:
        """
        Create configuration from a dictionary.

        Angles may be given in degrees with a "_deg" suffix
        (e.g. off_course_clamp_deg). Unknown keys are rejected.

        Raises:
            ConfigError: On unknown keys or values of the wrong type.
        """
        known = {f.name: f for f in fields(cls)}
        values: Dict[str, Any] = {}
        for key, value in data.items():
            name = key
            if key.endswith("_deg") and key[:-4] in known:
                name = key[:-4]
                value = None if value is None else math.radians(float(value))
            if name not in known:
                raise ConfigError(f"Unknown guidance setting: {key}")
            values[name] = _coerce(name, value, known[name].type)
        return cls(**values)

    @classmethod
    def from_json(cls, path: str) -> GuidanceConfig:
        """Load configuration from JSON file."""
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Guidance config not found: {path}")

        with open(config_path) as f:
            data = json.load(f)

        if not isinstance(data, dict):
            raise ConfigError(f"Guidance config must be a JSON object: {path}")
        return cls.from_dict(data)

    @classmethod
    def from_env(
        cls,
        prefix: str = "GUIDANCE_",
        base: Optional[Dict[str, Any]] = None
    ) -> GuidanceConfig:
        """
        Load configuration from environment variables.

        GUIDANCE_MAX_THRUST=0.5 sets max_thrust, and so on. A .env file in the
        working directory is read first.
        """
        load_dotenv()
        data: Dict[str, Any] = dict(base or {})
        for key, value in os.environ.items():
            if key.startswith(prefix):
                data[key[len(prefix):].lower()] = value
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        data = asdict(self)
        data["proximity_arming"] = self.proximity_arming.value
        return data


# Booleans from env/JSON strings
_TRUE_STRINGS = {"1", "true", "yes", "on"}
_FALSE_STRINGS = {"0", "false", "no", "off"}


def _coerce(name: str, value: Any, annotation: Any) -> Any:
    """Convert a raw config value to the type the field expects."""
    annotation = str(annotation)
    if value is None:
        if annotation.startswith("Optional"):
            return None
        raise ConfigError(f"{name} may not be null")

    try:
        if annotation == "bool":
            if isinstance(value, bool):
                return value
            text = str(value).strip().lower()
            if text in _TRUE_STRINGS:
                return True
            if text in _FALSE_STRINGS:
                return False
            raise ConfigError(f"{name} expects a boolean, got {value!r}")
        if annotation == "int":
            return int(value)
        if annotation in ("float", "Optional[float]"):
            if isinstance(value, str) and value.strip().lower() in ("", "none"):
                if annotation.startswith("Optional"):
                    return None
            return float(value)
        if annotation == "ProximityArming":
            if isinstance(value, ProximityArming):
                return value
            return ProximityArming(str(value).lower())
    except (TypeError, ValueError) as exc:
        if isinstance(exc, ConfigError):
            raise
        raise ConfigError(f"Invalid value for {name}: {value!r}") from exc
    return value
