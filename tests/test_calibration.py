#!/usr/bin/env python3
"""
Tests for calibration (measurement) mode.
"""

import math

import pytest

from missile_guidance.calibration import CalibrationMode
from missile_guidance.commands import CommandBuffer, Detonate, HudMessage, LogMessage, SetAimPoint
from missile_guidance.config import GuidanceConfig
from missile_guidance.physics import Vector3D
from missile_guidance.sensors import Projectile


def _heading(angle_deg, speed=100.0):
    """Velocity turned angle_deg from +Z toward +X."""
    angle = math.radians(angle_deg)
    return Vector3D(speed * math.sin(angle), 0.0, speed * math.cos(angle))


def _missile(age, angle_deg=0.0, pid=1, speed=100.0):
    return Projectile(pid, Vector3D(0.0, 50.0, 0.0), _heading(angle_deg, speed), age)


@pytest.fixture
def calibration():
    return CalibrationMode(GuidanceConfig(calibration_mode=True))


class TestCalibrationMode:
    """Tests for the measurement manoeuvre."""

    def test_waits_for_start_age(self, calibration):
        commands = CommandBuffer()
        assert calibration.guide(0, 0, _missile(age=0.2), commands) is None
        assert commands.commands == []

    def test_first_measuring_tick_aims_behind(self, calibration):
        commands = CommandBuffer()
        calibration.guide(0, 0, _missile(age=0.5), commands)

        aims = commands.of_type(SetAimPoint)
        assert aims == [SetAimPoint(0, 0, Vector3D(0.0, 50.0, -1.0))]
        huds = [m.text for m in commands.of_type(HudMessage)]
        assert huds[0] == "MEASUREMENT MODE ACTIVE - MISSILE IGNORING TARGETS"
        assert huds[1].startswith("MEASURING")

    def test_completes_after_turn(self, calibration):
        calibration.guide(0, 0, _missile(age=0.5), CommandBuffer())

        commands = CommandBuffer()
        result = calibration.guide(0, 0, _missile(age=2.5, angle_deg=100.0, speed=80.0), commands)

        assert result is not None
        assert result.elapsed == pytest.approx(2.0)
        assert result.turn_rate == pytest.approx(math.radians(100.0) / 2.0)
        assert result.speed == pytest.approx(80.0)
        assert calibration.complete is True
        assert calibration.latest == result
        assert commands.of_type(Detonate) == [Detonate(0, 0)]

        logs = [m.text for m in commands.of_type(LogMessage)]
        assert len(logs) == 4
        assert logs[-1] == "Measurement mode results:"
        assert any(line.startswith("turn_rate") for line in logs)
        assert HudMessage("MEASUREMENTS COMPLETE - CHECK THE LOG") in commands.commands

    def test_results_map_to_config_overrides(self, calibration):
        calibration.guide(0, 0, _missile(age=0.5), CommandBuffer())
        result = calibration.guide(0, 0, _missile(age=1.5, angle_deg=95.0), CommandBuffer())
        overrides = result.as_config_overrides()
        config = GuidanceConfig(**overrides)
        assert config.turn_rate == pytest.approx(result.turn_rate)
        assert config.cruise_speed == pytest.approx(result.speed)

    def test_no_second_detonation_after_completion(self, calibration):
        calibration.guide(0, 0, _missile(age=0.5), CommandBuffer())
        calibration.guide(0, 0, _missile(age=2.5, angle_deg=100.0), CommandBuffer())

        commands = CommandBuffer()
        assert calibration.guide(0, 0, _missile(age=2.6, angle_deg=110.0), commands) is None
        assert commands.commands == []
        assert len(calibration.results) == 1

    def test_timeout_aborts_and_resets(self, calibration):
        calibration.guide(0, 0, _missile(age=0.5), CommandBuffer())

        commands = CommandBuffer()
        calibration.guide(0, 0, _missile(age=11.0, angle_deg=20.0), commands)
        assert HudMessage("MEASUREMENTS ABORTED - RESETTING SYSTEM") in commands.commands
        assert commands.of_type(Detonate) == [Detonate(0, 0)]
        assert calibration.start_heading is None
        assert calibration.results == []

    def test_new_missile_restarts_measurement(self, calibration):
        calibration.guide(0, 0, _missile(age=0.5, pid=1), CommandBuffer())
        calibration.guide(0, 0, _missile(age=0.5, angle_deg=45.0, pid=2), CommandBuffer())
        assert calibration.projectile_id == 2
        assert calibration.start_heading == _heading(45.0).normalized()

    def test_extra_missile_rejected(self, calibration):
        commands = CommandBuffer(hud_log=False)
        calibration.reject_extra(1, 3, commands)
        assert commands.commands == [
            HudMessage("TOO MANY ACTIVE MISSILES; MEASUREMENTS INVALID; CLEANING UP!"),
            Detonate(1, 3),
        ]
