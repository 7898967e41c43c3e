"""
Shared pytest fixtures for Fantasy Decision Engine tests.
"""

import sys
from datetime import datetime, timedelta
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from decision_engine.config import EngineConfig
from decision_engine.engine import DecisionEngine
from decision_engine.models import ContextualPolicy, GameContext
from decision_engine.seed_data import seed_policies


FIXED_NOW = datetime(2025, 11, 2, 13, 0, 0)

ENV_OVERRIDES = (
    "FDE_RANDOM_SEED",
    "FDE_EXPLORATION_DISCOUNT",
    "FDE_WEIGHT_UPDATE_SCALE",
    "FDE_EXPLORATION_DECAY",
    "FDE_LEARNING_RATE_DECAY",
    "FDE_LEARNING_CYCLE_INTERVAL",
    "FDE_EPISODE_LOG_CAPACITY",
    "FDE_DECISION_CACHE_SIZE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep FDE_* variables from a developer shell or .env out of tests."""
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = FIXED_NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def config():
    return EngineConfig()


@pytest.fixture
def make_policy():
    """Build a valid policy, overriding any field."""
    def _make(**overrides) -> ContextualPolicy:
        fields = dict(
            id="test_policy",
            name="Test Policy",
            applicable_contexts=("red_zone",),
            action_space=("start", "bench"),
            state_space=("down", "yard_line"),
            weights={"down": 0.2, "yard_line": -0.1},
            biases={"start_role": 0.1},
            learning_rate=0.01,
            exploration_rate=0.0,
            success_rate=0.8,
            contextual_accuracy=0.9,
            training_episodes=10,
            convergence_rate=0.9,
        )
        fields.update(overrides)
        return ContextualPolicy(**fields)
    return _make


@pytest.fixture
def seed_bank():
    return {p.id: p for p in seed_policies()}


@pytest.fixture
def make_engine(clock):
    """Engine with a seeded generator and the fixed clock."""
    def _make(policies=None, seed=7, observers=None, **config_overrides) -> DecisionEngine:
        cfg = EngineConfig(**config_overrides)
        return DecisionEngine(
            config=cfg,
            policies=policies,
            rng=np.random.default_rng(seed),
            clock=clock,
            observers=observers,
        )
    return _make


@pytest.fixture
def red_zone_context():
    return GameContext.from_dict({"fieldZone": "red_zone", "yardLine": 5, "down": 2, "distance": 5})


@pytest.fixture
def garbage_time_context():
    return GameContext.from_dict({"gameScript": "garbage_time", "scoreDifferential": -28, "quarter": 4})


@pytest.fixture
def weather_context():
    return GameContext.from_dict({
        "weather": {"temperature": 28, "windSpeed": 22, "precipitation": "snow"},
        "surface": "grass",
    })


@pytest.fixture
def standard_context():
    return GameContext.from_dict({"quarter": 2, "scoreDifferential": 3, "down": 1})
