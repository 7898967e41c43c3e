"""
Tests for episodes.py - Episode log.
"""

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from decision_engine.episodes import EpisodeLog, detect_context_patterns
from decision_engine.models import DecisionOutcome, GameContext, LearningEpisode, PlayerDecision, RiskLevel


def make_episode(log: EpisodeLog, accuracy: float = 0.8) -> LearningEpisode:
    episode_id = log.new_episode_id()
    decision = PlayerDecision(
        decision_id=f"decision_{episode_id}",
        player_id="p1",
        action="start",
        context=GameContext(),
        confidence=0.7,
        risk_level=RiskLevel.MEDIUM,
        expected_value=10.0,
        context_hash="standard_game",
    )
    outcome = DecisionOutcome(decision_id=decision.decision_id, actual_points=12.0, accuracy=accuracy)
    return LearningEpisode(episode_id=episode_id, decision=decision, outcome=outcome, reward=1.5,
                           policies_updated=("a", "b"))


class TestEpisodeLog:
    """Tests for EpisodeLog."""

    def test_append_grows_by_one(self):
        log = EpisodeLog(capacity=10)
        for expected in range(1, 4):
            log.append(make_episode(log))
            assert len(log) == expected
            assert log.total_recorded == expected

    def test_oldest_first_eviction(self):
        log = EpisodeLog(capacity=3)
        episodes = [make_episode(log) for _ in range(5)]
        for episode in episodes:
            log.append(episode)
        assert len(log) == 3
        assert log.total_recorded == 5
        assert [e.episode_id for e in log.recent(10)] == [e.episode_id for e in episodes[2:]]

    def test_recent(self):
        log = EpisodeLog()
        for _ in range(4):
            log.append(make_episode(log))
        assert [e.episode_id for e in log.recent(2)] == ["episode_3", "episode_4"]
        assert log.recent(0) == []

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            EpisodeLog(capacity=0)

    def test_to_frame(self):
        log = EpisodeLog()
        log.append(make_episode(log, accuracy=0.6))
        frame = log.to_frame()
        assert len(frame) == 1
        assert frame.loc[0, "accuracy"] == 0.6
        assert frame.loc[0, "policies_updated"] == "a,b"
        assert frame.loc[0, "context_hash"] == "standard_game"

    def test_empty_frame_has_columns(self):
        frame = EpisodeLog().to_frame()
        assert frame.empty
        assert "reward" in frame.columns


class TestContextPatterns:
    """Tests for detect_context_patterns."""

    def test_red_zone_success(self):
        outcome = DecisionOutcome(decision_id="d1", actual_points=18.0, accuracy=0.5)
        assert detect_context_patterns(GameContext(field_zone="red_zone"), outcome) == [
            "High Red Zone Success Pattern",
        ]

    def test_wind_decline_and_prime_time(self):
        outcome = DecisionOutcome(decision_id="d1", actual_points=4.0, accuracy=0.95)
        context = GameContext(wind_speed=24, broadcast_slot="prime_time")
        assert detect_context_patterns(context, outcome) == [
            "Wind Game Performance Decline Pattern",
            "Prime Time Prediction Accuracy Pattern",
        ]

    def test_nothing_notable(self):
        outcome = DecisionOutcome(decision_id="d1", actual_points=10.0, accuracy=0.5)
        assert detect_context_patterns(GameContext(), outcome) == []
