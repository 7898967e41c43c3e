"""
Tests for synthesizer.py - Recommendation synthesis.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from decision_engine.models import GameContext, RiskLevel
from decision_engine.synthesizer import (
    RecommendationSynthesizer,
    best_action,
    extract_contextual_factors,
    risk_level_for,
    score_actions,
)


def make_synthesizer(config, clock, seed=42):
    return RecommendationSynthesizer(config=config, rng=np.random.default_rng(seed), clock=clock)


class TestScoring:
    """Tests for per-policy action scoring."""

    def test_score_includes_matching_biases(self, make_policy):
        policy = make_policy(biases={"start_role": 0.1, "start": 0.05, "bench_decoy": -0.2})
        scores = score_actions(policy, {"down": 0.5, "yard_line": 0.05})
        base = 0.2 * 0.5 - 0.1 * 0.05
        assert scores["start"] == pytest.approx(base + 0.15)
        assert scores["bench"] == pytest.approx(base - 0.2)

    def test_best_action_tie_goes_to_first(self):
        assert best_action({"bench": 1.0, "start": 1.0}) == ("bench", 1.0)


class TestRiskLevel:
    """Tests for risk buckets."""

    @pytest.mark.parametrize("confidence,expected", [
        (0.59, RiskLevel.HIGH),
        (0.6, RiskLevel.MEDIUM),
        (0.79, RiskLevel.MEDIUM),
        (0.8, RiskLevel.LOW),
    ])
    def test_buckets(self, confidence, expected):
        assert risk_level_for(confidence) is expected


class TestSynthesize:
    """Tests for RecommendationSynthesizer.synthesize."""

    def test_neutral_fallback(self, config, clock):
        decision = make_synthesizer(config, clock).synthesize("p1", GameContext(), [])
        assert decision.action == "hold/monitor"
        assert decision.confidence == 0.5
        assert decision.expected_value is None
        assert decision.risk_level is RiskLevel.HIGH
        assert decision.alternatives == ()
        assert decision.policy_ids == ()

    def test_single_policy_exploits(self, config, clock, make_policy, red_zone_context):
        policy = make_policy()
        decision = make_synthesizer(config, clock).synthesize("p1", red_zone_context, [policy])
        assert decision.action == "start"
        assert decision.alternatives == ("bench",)
        assert decision.confidence == pytest.approx(0.9)
        assert decision.risk_level is RiskLevel.LOW
        assert decision.policy_ids == ("test_policy",)
        assert decision.context_hash == "red_zone"
        assert decision.created_at == clock()
        assert not decision.is_exploration

    def test_expected_value_from_weighted_score(self, config, clock, make_policy, red_zone_context):
        policy = make_policy()
        decision = make_synthesizer(config, clock).synthesize("p1", red_zone_context, [policy])
        score = 0.2 * (2 / 4) - 0.1 * 0.05 + 0.1
        assert decision.expected_value == pytest.approx(8.0 + score * 12.0)

    def test_weighted_vote_beats_single_outlier(self, config, clock, make_policy, red_zone_context):
        bench_a = make_policy(id="a", biases={"bench": 1.0}, contextual_accuracy=0.6, success_rate=0.6)
        bench_b = make_policy(id="b", biases={"bench": 1.0}, contextual_accuracy=0.6, success_rate=0.6)
        start = make_policy(id="c", biases={"start": 5.0}, contextual_accuracy=0.7, success_rate=0.7)
        decision = make_synthesizer(config, clock).synthesize("p1", red_zone_context, [start, bench_a, bench_b])
        assert decision.action == "bench"

    def test_zero_weight_falls_back_to_equal_weights(self, config, clock, make_policy, red_zone_context):
        policy = make_policy(contextual_accuracy=0.0, success_rate=0.0)
        decision = make_synthesizer(config, clock).synthesize("p1", red_zone_context, [policy])
        assert decision.action == "start"
        assert decision.confidence == 0.0

    def test_forced_exploration(self, config, clock, make_policy, red_zone_context):
        policy = make_policy(exploration_rate=1.0)
        decision = make_synthesizer(config, clock).synthesize("p1", red_zone_context, [policy])
        assert decision.action == "bench"
        assert decision.is_exploration
        assert decision.alternatives == ("start",)
        assert decision.confidence == pytest.approx(0.9 * 0.8)
        assert decision.risk_level is RiskLevel.MEDIUM
        assert any("Exploring" in r for r in decision.reasoning)

    def test_minimum_exploration_rate_governs(self, config, clock, make_policy, red_zone_context):
        curious = make_policy(id="a", exploration_rate=1.0)
        settled = make_policy(id="b", exploration_rate=0.0)
        decision = make_synthesizer(config, clock).synthesize("p1", red_zone_context, [curious, settled])
        assert not decision.is_exploration

    def test_deterministic_with_fixed_seed(self, config, clock, seed_bank, weather_context):
        policies = [seed_bank["weather_adaptation"]]
        first = make_synthesizer(config, clock, seed=3).synthesize("p1", weather_context, policies, decision_id="d1")
        second = make_synthesizer(config, clock, seed=3).synthesize("p1", weather_context, policies, decision_id="d1")
        assert first == second

    def test_generated_ids_do_not_affect_equality(self, config, clock, seed_bank, weather_context):
        policies = [seed_bank["weather_adaptation"]]
        first = make_synthesizer(config, clock, seed=3).synthesize("p1", weather_context, policies)
        second = make_synthesizer(config, clock, seed=3).synthesize("p1", weather_context, policies)
        assert first.decision_id != second.decision_id
        assert first == second

    def test_contextual_weights_sum_to_one(self, config, clock, seed_bank):
        synthesizer = make_synthesizer(config, clock)
        for combo in ([], [seed_bank["weather_adaptation"]], list(seed_bank.values())):
            assert synthesizer.contextual_weights(combo).total == pytest.approx(1.0, abs=1e-6)

    def test_weather_policy_boosts_weather_share(self, config, clock, seed_bank):
        synthesizer = make_synthesizer(config, clock)
        baseline = synthesizer.contextual_weights([])
        boosted = synthesizer.contextual_weights([seed_bank["weather_adaptation"]])
        assert boosted.weather > baseline.weather
        assert baseline.recent_form == pytest.approx(0.30)

    def test_reasoning_callouts(self, config, clock, seed_bank):
        context = GameContext(
            quarter=4, time_remaining=120, score_differential=-10, wind_speed=25, down=3,
        )
        decision = make_synthesizer(config, clock).synthesize(
            "p1", context, [seed_bank["weather_adaptation"]],
        )
        text = " ".join(decision.reasoning)
        assert "Weather conditions favor ground game" in text
        assert "crunch time" in text
        assert "score differential" in text
        assert "High wind" in text
        assert "Third down" in text


class TestContextualFactors:
    """Tests for extract_contextual_factors."""

    def test_red_zone_factor(self, red_zone_context):
        assert extract_contextual_factors(red_zone_context, []) == ["Red Zone Opportunity (5 yard line)"]

    def test_garbage_time_factor(self, garbage_time_context):
        factors = extract_contextual_factors(garbage_time_context, [])
        assert "Garbage Time Scenario (-28 point differential)" in factors

    def test_environment_and_pressure(self):
        context = GameContext(wind_speed=22, broadcast_slot="prime_time", quarter=4, time_remaining=200, down=4)
        assert extract_contextual_factors(context, []) == [
            "High Wind Conditions (22 mph)",
            "Prime Time National Television Game",
            "Fourth Quarter Crunch Time",
            "Fourth Down Pressure Situation",
        ]

    def test_divisional_policy_factor(self, seed_bank):
        factors = extract_contextual_factors(GameContext(), [seed_bank["divisional_matchup_learning"]])
        assert factors == ["Divisional Matchup Familiarity Effects"]
