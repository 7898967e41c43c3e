"""
Tests for models.py - Data contracts.
"""

import sys
from dataclasses import FrozenInstanceError
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from decision_engine.models import (
    ContextualWeights,
    DecisionOutcome,
    GameContext,
    OutcomeResult,
    SystemPerformance,
    to_camel,
    to_snake,
)


class TestGameContext:
    """Tests for GameContext parsing."""

    def test_from_dict_camel_case(self):
        context = GameContext.from_dict({
            "fieldZone": "red_zone",
            "yardLine": 5,
            "scoreDifferential": -3,
            "homeTeam": "kc",
            "isDome": True,
        })
        assert context.field_zone == "red_zone"
        assert context.yard_line == 5.0
        assert context.score_differential == -3.0
        assert context.home_team == "KC"
        assert context.is_dome is True

    def test_from_dict_nested_weather_and_game_time(self):
        context = GameContext.from_dict({
            "weather": {"temperature": 20, "windSpeed": 18, "precipitation": "Snow"},
            "gameTime": "prime_time",
        })
        assert context.temperature == 20.0
        assert context.wind_speed == 18.0
        assert context.precipitation == "snow"
        assert context.broadcast_slot == "prime_time"

    def test_malformed_values_become_none(self):
        context = GameContext.from_dict({
            "down": "third",
            "yardLine": None,
            "windSpeed": float("nan"),
            "fieldZone": 12,
            "isHome": "maybe",
        })
        assert context.down is None
        assert context.yard_line is None
        assert context.wind_speed is None
        assert context.field_zone is None
        assert context.is_home is None
        assert context.is_dome is False

    def test_direct_construction_is_coerced(self):
        context = GameContext(
            quarter="4",
            yard_line=float("nan"),
            wind_speed="high",
            score_differential=float("inf"),
            field_zone=" Red_Zone ",
            home_team="kc",
            is_dome="yes",
            extras={"snap_share": float("nan"), "target_share": "0.4"},
        )
        assert context.quarter == 4
        assert context.yard_line is None
        assert context.wind_speed is None
        assert context.score_differential is None
        assert context.field_zone == "red_zone"
        assert context.home_team == "KC"
        assert context.is_dome is True
        assert context.extras == {"target_share": 0.4}

    def test_extras_keep_numeric_entries(self):
        context = GameContext.from_dict({"extras": {"snapShare": 0.8, "note": "n/a"}})
        assert context.extras == {"snap_share": 0.8}

    def test_extras_bounded(self):
        with pytest.raises(ValueError):
            GameContext(extras={f"f{i}": 0.1 for i in range(40)})

    def test_context_is_immutable(self):
        context = GameContext(down=3)
        with pytest.raises(FrozenInstanceError):
            context.down = 4

    def test_to_dict_uses_camel_case(self):
        data = GameContext(field_zone="red_zone", yard_line=5.0).to_dict()
        assert data == {"fieldZone": "red_zone", "yardLine": 5.0, "isDome": False}


class TestDecisionOutcome:
    """Tests for DecisionOutcome validation."""

    def test_outcome_id_defaults_to_decision_id(self):
        outcome = DecisionOutcome(decision_id="d1", actual_points=10.0, accuracy=0.5)
        assert outcome.outcome_id == "d1"

    def test_accuracy_out_of_range(self):
        with pytest.raises(ValueError):
            DecisionOutcome(decision_id="d1", actual_points=10.0, accuracy=1.5)

    def test_numeric_strings_are_coerced(self):
        outcome = DecisionOutcome(decision_id="d1", actual_points="12.5", accuracy="0.5")
        assert outcome.accuracy == 0.5
        assert outcome.actual_points == 12.5

    @pytest.mark.parametrize("accuracy", ["high", "1.5", float("nan"), None])
    def test_bad_accuracy_raises_value_error(self, accuracy):
        with pytest.raises(ValueError):
            DecisionOutcome(decision_id="d1", actual_points=10.0, accuracy=accuracy)

    def test_non_finite_regret_becomes_zero(self):
        outcome = DecisionOutcome(decision_id="d1", actual_points=10.0, accuracy=0.5, regret=float("nan"))
        assert outcome.regret == 0.0

    def test_from_dict_nested_performance(self):
        outcome = DecisionOutcome.from_dict({
            "decisionId": "d2",
            "actualPerformance": {"fantasyPoints": 14.2, "contextualSuccessRate": 0.9},
            "accuracy": 0.8,
        })
        assert outcome.actual_points == 14.2
        assert outcome.contextual_success_rate == 0.9
        assert outcome.regret == 0.0

    def test_from_dict_requires_points(self):
        with pytest.raises(ValueError):
            DecisionOutcome.from_dict({"decisionId": "d3", "accuracy": 0.8})


class TestWireNames:
    """Tests for camelCase result payloads."""

    def test_name_conversion(self):
        assert to_snake("scoreDifferential") == "score_differential"
        assert to_camel("score_differential") == "scoreDifferential"

    def test_outcome_result_default_is_noop(self):
        assert OutcomeResult().to_dict() == {
            "reward": 0.0,
            "policiesUpdated": [],
            "newInsights": [],
            "nextRecommendations": [],
        }

    def test_system_performance_keys(self):
        data = SystemPerformance(
            overall_accuracy=None, active_policies=2, learning_episodes=0, learning_velocity=None,
        ).to_dict()
        assert data["overallAccuracy"] is None
        assert data["activePolicies"] == 2
        assert data["learningVelocity"] is None
        assert data["topPolicies"] == []

    def test_contextual_weights_total(self):
        weights = ContextualWeights(recent_form=0.5, team_situation=0.5)
        assert weights.total == pytest.approx(1.0)
        assert weights.to_dict()["recentForm"] == 0.5
