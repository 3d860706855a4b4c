#!/usr/bin/env python3
"""
Tests for target ranking and selection.

Tests cover:
1. Each ranking rule and its precedence
2. The off-course clamp
3. Ordering is independent of input order (property test)
4. Best-target selection with and without chase_unicorns
"""

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from missile_guidance.config import GuidanceConfig
from missile_guidance.decision import classify_parts
from missile_guidance.feasibility import FeasibilityEstimator
from missile_guidance.geometry import GeometryCache
from missile_guidance.physics import Vector3D
from missile_guidance.sensors import MissilePart, Projectile, Target
from missile_guidance.targeting import TargetRanker


def _ids(targets):
    return [t.target_id for t in targets]


# =============================================================================
# RANKING RULES
# =============================================================================

class TestRankingRules:
    """Tests for each tier of the ranking rule chain."""

    def test_player_choice_first(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        targets = [
            make_target(1, distance=100.0),
            make_target(2, distance=900.0, angle_deg=40.0, player_target_choice=True),
        ]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [2, 1]

    def test_protected_last(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        targets = [
            make_target(1, distance=100.0, protected=True),
            make_target(2, distance=900.0, angle_deg=40.0),
        ]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [2, 1]

    def test_player_choice_beats_protected(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        targets = [
            make_target(1),
            make_target(2, protected=True, player_target_choice=True),
        ]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [2, 1]

    def test_lower_priority_value_first(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        targets = [
            make_target(1, distance=100.0, angle_deg=60.0, priority=2),
            make_target(2, distance=900.0, angle_deg=80.0, priority=1),
        ]
        # Both beyond the 45 degree clamp: priority decides
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [2, 1]

    def test_higher_score_first(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        targets = [
            make_target(1, distance=100.0, angle_deg=60.0, score=1.0),
            make_target(2, distance=900.0, angle_deg=80.0, score=5.0),
        ]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [2, 1]

    def test_distance_is_last_tiebreak(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        targets = [
            make_target(1, distance=900.0, angle_deg=60.0),
            make_target(2, distance=100.0, angle_deg=80.0),
        ]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [2, 1]

    def test_rank_does_not_touch_input(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        targets = [make_target(1, distance=900.0), make_target(2, distance=100.0)]
        engine.ranker.rank(make_projectile(), targets)
        assert _ids(targets) == [1, 2]

    def test_equal_targets_keep_input_order(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        targets = [make_target(5), make_target(3), make_target(4)]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [5, 3, 4]


# =============================================================================
# OFF-COURSE CLAMP
# =============================================================================

class TestOffCourseClamp:
    """Tests for clamping the angle tier."""

    def test_angle_decides_inside_clamp(self, make_engine, make_projectile, make_target):
        engine = make_engine(off_course_clamp=math.radians(45))
        targets = [
            make_target(1, distance=100.0, angle_deg=10.0, priority=1),
            make_target(2, distance=500.0, angle_deg=5.0, priority=1),
        ]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [2, 1]

    def test_clamped_angles_fall_through_to_distance(self, make_engine, make_projectile,
                                                     make_target):
        engine = make_engine(off_course_clamp=math.radians(2))
        targets = [
            make_target(1, distance=100.0, angle_deg=10.0, priority=1),
            make_target(2, distance=500.0, angle_deg=5.0, priority=1),
        ]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [1, 2]

    def test_all_beyond_clamp_ignores_angle(self, make_engine, make_projectile, make_target):
        engine = make_engine(off_course_clamp=math.radians(30))
        targets = [
            make_target(1, distance=300.0, angle_deg=150.0),
            make_target(2, distance=200.0, angle_deg=40.0),
            make_target(3, distance=100.0, angle_deg=100.0),
        ]
        assert _ids(engine.ranker.rank(make_projectile(), targets)) == [3, 2, 1]

    @pytest.mark.parametrize("clamp_deg", [10.0, 20.0, 35.0])
    def test_raising_clamp_beyond_all_angles_changes_nothing(self, make_engine, make_projectile,
                                                             make_target, clamp_deg):
        targets = [
            make_target(1, distance=300.0, angle_deg=50.0),
            make_target(2, distance=200.0, angle_deg=70.0),
            make_target(3, distance=100.0, angle_deg=90.0),
        ]
        reference = make_engine(off_course_clamp=math.radians(5.0))
        engine = make_engine(off_course_clamp=math.radians(clamp_deg))
        projectile = make_projectile()
        assert _ids(engine.ranker.rank(projectile, targets)) == \
            _ids(reference.ranker.rank(projectile, targets))


# =============================================================================
# PROPERTIES
# =============================================================================

def _ranker(config):
    cache = GeometryCache(config)
    return TargetRanker(config, cache, FeasibilityEstimator(config, cache))


def _distinct_targets(angles_deg):
    # Distinct distances make every key unique
    targets = []
    for index, angle_deg in enumerate(angles_deg):
        angle = math.radians(angle_deg)
        distance = 100.0 + 37.0 * index
        targets.append(Target(
            target_id=index + 1,
            aim_point=Vector3D(distance * math.sin(angle), 20.0, distance * math.cos(angle)),
            priority=float(index % 3),
            score=float(index % 2),
            protected=index == 4,
            player_target_choice=index == 2,
        ))
    return targets


class TestRankingProperties:
    """Property tests for the ranking order."""

    @settings(deadline=None, max_examples=50)
    @given(
        angles=st.lists(st.floats(min_value=0.0, max_value=179.0), min_size=6, max_size=6),
        order=st.permutations(list(range(6))),
    )
    def test_order_independent_of_input_order(self, angles, order):
        projectile = Projectile(1, Vector3D(0.0, 20.0, 0.0), Vector3D(0.0, 0.0, 100.0))
        targets = _distinct_targets(angles)
        shuffled = [targets[i] for i in order]

        expected = _ids(_ranker(GuidanceConfig()).rank(projectile, targets))
        assert _ids(_ranker(GuidanceConfig()).rank(projectile, shuffled)) == expected

    @settings(deadline=None, max_examples=50)
    @given(angles=st.lists(st.floats(min_value=0.0, max_value=179.0), min_size=2, max_size=8))
    def test_ranking_is_a_permutation(self, angles):
        projectile = Projectile(1, Vector3D(0.0, 20.0, 0.0), Vector3D(0.0, 0.0, 100.0))
        targets = _distinct_targets(angles)
        ranked = _ranker(GuidanceConfig()).rank(projectile, targets)
        assert sorted(_ids(ranked)) == sorted(_ids(targets))


# =============================================================================
# BEST TARGET
# =============================================================================

class TestBestTarget:
    """Tests for best_target_for_missile()."""

    def test_first_feasible_in_rank_order(self, make_engine, make_projectile, make_target,
                                          air_decision):
        engine = make_engine()
        targets = [
            make_target(1, distance=100.0, height=-100.0, player_target_choice=True),
            make_target(2, distance=200.0),
        ]
        best = engine.ranker.best_target_for_missile(make_projectile(), air_decision, targets)
        assert best.target_id == 2

    def test_chases_top_ranked_when_nothing_feasible(self, make_engine, make_projectile,
                                                     make_target, air_decision):
        engine = make_engine(chase_unicorns=True)
        targets = [
            make_target(1, distance=200.0, height=-100.0),
            make_target(2, distance=100.0, height=-100.0, player_target_choice=True),
        ]
        best = engine.ranker.best_target_for_missile(make_projectile(), air_decision, targets)
        assert best.target_id == 2

    def test_none_when_nothing_feasible_and_not_chasing(self, make_engine, make_projectile,
                                                        make_target, air_decision):
        engine = make_engine(chase_unicorns=False)
        targets = [make_target(1, height=-100.0)]
        assert engine.ranker.best_target_for_missile(
            make_projectile(), air_decision, targets) is None

    def test_none_for_empty_list(self, make_engine, make_projectile, air_decision):
        engine = make_engine(chase_unicorns=True)
        assert engine.ranker.best_target_for_missile(make_projectile(), air_decision, []) is None

    def test_torpedo_prefers_submarine(self, make_engine, make_projectile, make_target):
        engine = make_engine()
        torpedo = classify_parts([MissilePart("fuel"), MissilePart("propeller")])
        targets = [
            make_target(1, distance=100.0, height=150.0),
            make_target(2, distance=400.0, height=-40.0, angle_deg=30.0),
        ]
        best = engine.ranker.best_target_for_missile(make_projectile(), torpedo, targets)
        assert best.target_id == 2
