#!/usr/bin/env python3
"""
Tests for feasibility estimation.

Tests cover:
1. Domain check against the sea crossover tolerance
2. Maximum range
3. Turning-circle check (turn-aware configurations only)
4. Rejection logging
"""

import pytest

from missile_guidance.commands import LogMessage
from missile_guidance.decision import classify_parts
from missile_guidance.feasibility import FeasibilityVerdict
from missile_guidance.sensors import MissilePart


# =============================================================================
# DOMAIN
# =============================================================================

class TestDomainCheck:
    """Tests for air/water reachability."""

    @pytest.mark.parametrize("height,feasible", [
        (50.0, True),
        (5.0, True),
        (-5.0, True),
        (-10.0, True),
        (-10.5, False),
        (-50.0, False),
    ])
    def test_air_only_missile(self, make_engine, make_projectile, make_target,
                              air_decision, height, feasible):
        engine = make_engine()
        target = make_target(1, distance=300.0, height=height)
        assert engine.feasibility.can_hit(make_projectile(), air_decision, target) is feasible

    @pytest.mark.parametrize("height,feasible", [
        (-50.0, True),
        (0.0, True),
        (10.0, True),
        (10.5, False),
        (50.0, False),
    ])
    def test_water_only_missile(self, make_engine, make_projectile, make_target,
                                water_decision, height, feasible):
        engine = make_engine()
        target = make_target(1, distance=300.0, height=height)
        assert engine.feasibility.can_hit(make_projectile(), water_decision, target) is feasible

    def test_cross_domain_missile_reaches_both(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        decision = classify_parts([
            MissilePart("variable speed thruster"),
            MissilePart("propeller"),
        ])
        for height in (-200.0, 200.0):
            target = make_target(1, distance=300.0, height=height)
            assert engine.feasibility.can_hit(make_projectile(), decision, target)

    def test_verdict_names_domain(self, make_engine, make_projectile, make_target, air_decision):
        engine = make_engine()
        target = make_target(1, distance=300.0, height=-50.0)
        verdict = engine.feasibility.explain(make_projectile(), air_decision, target)
        assert verdict is FeasibilityVerdict.WRONG_DOMAIN


# =============================================================================
# RANGE
# =============================================================================

class TestRangeCheck:
    """Tests for maximum engagement range."""

    def test_inside_range(self, make_engine, make_projectile, make_target, air_decision):
        engine = make_engine(maximum_range=1000.0)
        target = make_target(1, distance=999.0)
        assert engine.feasibility.explain(make_projectile(), air_decision, target) \
            is FeasibilityVerdict.FEASIBLE

    def test_beyond_range(self, make_engine, make_projectile, make_target, air_decision):
        engine = make_engine(maximum_range=1000.0)
        target = make_target(1, distance=1001.0)
        assert engine.feasibility.explain(make_projectile(), air_decision, target) \
            is FeasibilityVerdict.OUT_OF_RANGE

    def test_domain_checked_before_range(self, make_engine, make_projectile, make_target,
                                         air_decision):
        engine = make_engine(maximum_range=1000.0)
        target = make_target(1, distance=5000.0, height=-100.0)
        assert engine.feasibility.explain(make_projectile(), air_decision, target) \
            is FeasibilityVerdict.WRONG_DOMAIN


# =============================================================================
# TURNING CIRCLE
# =============================================================================

class TestTurnCheck:
    """Tests for the turn-aware feasibility check."""

    def test_no_turn_check_without_turn_rate(self, make_engine, make_projectile, make_target,
                                             air_decision):
        engine = make_engine()
        # Directly behind and close: only a turn model could reject this
        target = make_target(1, distance=50.0, angle_deg=180.0)
        assert engine.feasibility.can_hit(make_projectile(), air_decision, target)

    def test_target_behind_and_close_cannot_be_turned_onto(self, make_engine, make_projectile,
                                                           make_target, air_decision):
        engine = make_engine(turn_rate=0.1, cruise_speed=100.0)
        target = make_target(1, distance=50.0, angle_deg=170.0)
        assert engine.feasibility.explain(make_projectile(), air_decision, target) \
            is FeasibilityVerdict.CANNOT_TURN

    def test_target_ahead_is_reachable(self, make_engine, make_projectile, make_target,
                                       air_decision):
        engine = make_engine(turn_rate=0.1, cruise_speed=100.0)
        target = make_target(1, distance=800.0, angle_deg=5.0)
        assert engine.feasibility.can_hit(make_projectile(), air_decision, target)

    def test_turn_check_with_hand_computed_estimate(self, make_engine, make_projectile,
                                                    make_target, air_decision):
        engine = make_engine(turn_rate=0.5, cruise_speed=100.0)
        projectile = make_projectile()
        # 100 m at 100 m/s is 1 s; turning 60deg adds (1.047 / 0.5) * (1 / 3) = 0.698 s
        target = make_target(1, distance=100.0, angle_deg=60.0)
        assert engine.cache.time_to_target(projectile, target) == pytest.approx(1.698, abs=1e-3)
        # 0.5 rad/s * 1.698 s = 0.849 rad < 1.047 rad
        assert engine.feasibility.explain(projectile, air_decision, target) \
            is FeasibilityVerdict.CANNOT_TURN

    def test_shallower_turn_at_same_range_is_reachable(self, make_engine, make_projectile,
                                                       make_target, air_decision):
        engine = make_engine(turn_rate=0.5, cruise_speed=100.0)
        # 1 s + (0.524 / 0.5) * (1 / 6) = 1.175 s; 0.5 * 1.175 = 0.587 rad > 0.524 rad
        target = make_target(1, distance=100.0, angle_deg=30.0)
        assert engine.feasibility.can_hit(make_projectile(), air_decision, target)


# =============================================================================
# SIDE EFFECTS
# =============================================================================

class TestRejectionLogging:
    """Tests that rejections are only logged."""

    def test_rejection_logged_when_debugging(self, make_engine, make_projectile, make_target,
                                             air_decision):
        engine = make_engine(debug_log=True)
        engine.feasibility.can_hit(make_projectile(), air_decision,
                                   make_target(7, height=-100.0))
        lines = [c.text for c in engine.commands.of_type(LogMessage)]
        assert any("target 7" in line and "underwater" in line for line in lines)

    def test_decision_not_mutated(self, make_engine, make_projectile, make_target, air_decision):
        engine = make_engine()
        before = (air_decision.target_id, air_decision.fuel_left, air_decision.last_update)
        engine.feasibility.can_hit(make_projectile(), air_decision, make_target(1, height=-100.0))
        assert (air_decision.target_id, air_decision.fuel_left,
                air_decision.last_update) == before
