"""
Episode history for the Fantasy Decision Engine.
"""

import itertools
import logging
import threading
from collections import deque
from typing import List

import pandas as pd

from .classifier import ContextClassifier
from .models import DecisionOutcome, GameContext, LearningEpisode

logger = logging.getLogger(__name__)


HIGH_RED_ZONE_POINTS = 15.0
WIND_DECLINE_MPH = 20.0
WIND_DECLINE_POINTS = 8.0
PRIME_TIME_ACCURACY = 0.9


class EpisodeLog:
    """
    Append-only log of decision -> outcome cycles.

    Bounded to `capacity` entries; the oldest episode is evicted first.
    """

    def __init__(self, capacity: int = 10000):
        if capacity < 1:
            raise ValueError("EpisodeLog capacity must be at least 1")
        self.capacity = capacity
        self._lock = threading.Lock()
        self._episodes = deque(maxlen=capacity)
        self._total = 0
        self._ids = itertools.count(1)

    def new_episode_id(self) -> str:
        with self._lock:
            return f"episode_{next(self._ids)}"

    def append(self, episode: LearningEpisode) -> None:
        with self._lock:
            if len(self._episodes) == self.capacity:
                logger.debug(f"Episode log full; evicting {self._episodes[0].episode_id}")
            self._episodes.append(episode)
            self._total += 1

    def recent(self, n: int) -> List[LearningEpisode]:
        """The last n episodes, oldest first."""
        if n <= 0:
            return []
        with self._lock:
            return list(self._episodes)[-n:]

    @property
    def total_recorded(self) -> int:
        """Every episode ever appended, including evicted ones."""
        with self._lock:
            return self._total

    def __len__(self) -> int:
        with self._lock:
            return len(self._episodes)

    def to_frame(self) -> pd.DataFrame:
        """Flatten the retained episodes for analysis or export."""
        with self._lock:
            episodes = list(self._episodes)
        columns = [
            "episode_id", "player_id", "decision_id", "action", "context_hash",
            "confidence", "expected_value", "actual_points", "accuracy", "reward",
            "policies_updated", "context_patterns", "is_exploration", "ended_at",
        ]
        rows = [
            {
                "episode_id": e.episode_id,
                "player_id": e.player_id,
                "decision_id": e.decision.decision_id,
                "action": e.decision.action,
                "context_hash": e.outcome.context_hash or e.decision.context_hash,
                "confidence": e.decision.confidence,
                "expected_value": e.decision.expected_value,
                "actual_points": e.outcome.actual_points,
                "accuracy": e.outcome.accuracy,
                "reward": e.reward,
                "policies_updated": ",".join(e.policies_updated),
                "context_patterns": ",".join(e.context_patterns),
                "is_exploration": e.decision.is_exploration,
                "ended_at": e.ended_at,
            }
            for e in episodes
        ]
        return pd.DataFrame(rows, columns=columns)


def detect_context_patterns(context: GameContext, outcome: DecisionOutcome) -> List[str]:
    """Tag notable context/outcome combinations on an episode."""
    patterns = []
    if ContextClassifier.is_red_zone(context) and outcome.actual_points > HIGH_RED_ZONE_POINTS:
        patterns.append("High Red Zone Success Pattern")
    if (context.wind_speed is not None and context.wind_speed > WIND_DECLINE_MPH
            and outcome.actual_points < WIND_DECLINE_POINTS):
        patterns.append("Wind Game Performance Decline Pattern")
    if ContextClassifier.is_prime_time(context) and outcome.accuracy > PRIME_TIME_ACCURACY:
        patterns.append("Prime Time Prediction Accuracy Pattern")
    return patterns
