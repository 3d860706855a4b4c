import math

import pytest

from missile_guidance.commands import THRUST_REGISTER, CommandBuffer
from missile_guidance.config import GuidanceConfig
from missile_guidance.decision import TargetingStateMachine, classify_parts
from missile_guidance.feasibility import FeasibilityEstimator
from missile_guidance.geometry import GeometryCache
from missile_guidance.physics import Vector3D
from missile_guidance.sensors import MissilePart, Projectile, Target
from missile_guidance.steering import SteeringController
from missile_guidance.targeting import TargetRanker


AIR_PARTS = (
    MissilePart("missile fuel tank"),
    MissilePart("missile fuel tank"),
    MissilePart("missile variable speed thruster", {THRUST_REGISTER: 300.0}),
)
WATER_PARTS = (
    MissilePart("missile fuel tank"),
    MissilePart("torpedo propeller"),
)


def point_off_course(origin, distance, angle_deg, height=None):
    """A point `distance` away from origin, `angle_deg` off the +Z axis in the horizontal plane."""
    angle = math.radians(angle_deg)
    y = origin.y if height is None else height
    return Vector3D(
        origin.x + distance * math.sin(angle),
        y,
        origin.z + distance * math.cos(angle),
    )


@pytest.fixture
def make_projectile():
    """Missile factory: defaults to flying along +Z at 100 m/s, 20 m up."""
    def _make(pid=1, position=(0.0, 20.0, 0.0), velocity=(0.0, 0.0, 100.0), age=1.0):
        return Projectile(
            projectile_id=pid,
            position=Vector3D(*position),
            velocity=Vector3D(*velocity),
            time_since_launch=age,
        )
    return _make


@pytest.fixture
def make_target():
    """Target factory placing the aim point by distance and angle off +Z."""
    def _make(tid, distance=500.0, angle_deg=0.0, height=20.0, origin=None, **kwargs):
        origin = origin or Vector3D(0.0, 20.0, 0.0)
        return Target(
            target_id=tid,
            aim_point=point_off_course(origin, distance, angle_deg, height),
            **kwargs,
        )
    return _make


@pytest.fixture
def air_parts():
    return AIR_PARTS


@pytest.fixture
def water_parts():
    return WATER_PARTS


@pytest.fixture
def air_decision():
    return classify_parts(AIR_PARTS)


@pytest.fixture
def water_decision():
    return classify_parts(WATER_PARTS)


@pytest.fixture
def make_engine():
    """Wire the per-tick components together for a config, as the controller does."""
    def _make(config=None, **overrides):
        config = config or GuidanceConfig(**overrides)
        cache = GeometryCache(config)
        commands = CommandBuffer(debug_log=config.debug_log, hud_log=config.hud_log)
        feasibility = FeasibilityEstimator(config, cache, commands)
        ranker = TargetRanker(config, cache, feasibility)
        state = TargetingStateMachine(config, feasibility, ranker)
        steering = SteeringController(config, cache)
        return _Engine(config, cache, commands, feasibility, ranker, state, steering)
    return _make


class _Engine:
    def __init__(self, config, cache, commands, feasibility, ranker, state, steering):
        self.config = config
        self.cache = cache
        self.commands = commands
        self.feasibility = feasibility
        self.ranker = ranker
        self.state = state
        self.steering = steering

