"""
Context classification for the Fantasy Decision Engine.

Maps a GameContext to canonical situation labels and normalises the
features a policy reads into a [0, 1] state vector.
"""

import logging
import math
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .config import (
    BOOLEAN_FEATURES,
    CATEGORICAL_SCALES,
    CLOSE_GAME_MARGIN,
    CONTEXT_HASH_SEPARATOR,
    FEATURE_RANGES,
    FREEZING_TEMPERATURE,
    GARBAGE_TIME_MARGIN,
    NEUTRAL_STATE_VALUE,
    NFL_DIVISIONS,
    RED_ZONE_FIELD_ZONES,
    STANDARD_CONTEXT,
    WEATHER_WIND_THRESHOLD,
)
from .models import GameContext

logger = logging.getLogger(__name__)


RED_ZONE = "red_zone"
GARBAGE_TIME = "garbage_time"
WEATHER_GAME = "weather_game"
PRIME_TIME = "prime_time"
CLOSE_GAME = "close_game"
DIVISIONAL_GAME = "divisional_game"

_TEAM_DIVISION: Dict[str, str] = {
    team: division
    for division, teams in NFL_DIVISIONS.items()
    for team in teams
}


def division_of(team: Optional[str]) -> Optional[str]:
    """Look up the NFL division for a team abbreviation."""
    if not team:
        return None
    return _TEAM_DIVISION.get(team.upper())


class ContextClassifier:
    """
    Deterministic rule predicates over a GameContext.

    Each label fires independently; a missing field never triggers a label.
    """

    def classify(self, context: GameContext) -> Tuple[str, ...]:
        """Return the ordered labels for a context (never empty)."""
        labels = []
        if self.is_red_zone(context):
            labels.append(RED_ZONE)
        if self.is_garbage_time(context):
            labels.append(GARBAGE_TIME)
        if self.is_weather_game(context):
            labels.append(WEATHER_GAME)
        if self.is_prime_time(context):
            labels.append(PRIME_TIME)
        if self.is_close_game(context):
            labels.append(CLOSE_GAME)
        if self.is_divisional_game(context):
            labels.append(DIVISIONAL_GAME)
        return tuple(labels) if labels else (STANDARD_CONTEXT,)

    def context_hash(self, context: GameContext) -> str:
        """Stable bucket key for a context."""
        return context_hash(self.classify(context))

    @staticmethod
    def is_red_zone(context: GameContext) -> bool:
        return context.field_zone in RED_ZONE_FIELD_ZONES

    @staticmethod
    def is_garbage_time(context: GameContext) -> bool:
        if context.game_script == GARBAGE_TIME:
            return True
        return (
            context.quarter == 4
            and context.score_differential is not None
            and abs(context.score_differential) > GARBAGE_TIME_MARGIN
        )

    @staticmethod
    def is_weather_game(context: GameContext) -> bool:
        if context.is_dome:
            return False
        if context.wind_speed is not None and context.wind_speed > WEATHER_WIND_THRESHOLD:
            return True
        if context.precipitation not in (None, "none"):
            return True
        return context.temperature is not None and context.temperature < FREEZING_TEMPERATURE

    @staticmethod
    def is_prime_time(context: GameContext) -> bool:
        return context.broadcast_slot == PRIME_TIME

    @staticmethod
    def is_close_game(context: GameContext) -> bool:
        return (
            context.quarter == 4
            and context.score_differential is not None
            and abs(context.score_differential) < CLOSE_GAME_MARGIN
        )

    @staticmethod
    def is_divisional_game(context: GameContext) -> bool:
        home = division_of(context.home_team)
        return home is not None and home == division_of(context.away_team) and context.home_team != context.away_team


def context_hash(labels: Iterable[str]) -> str:
    """Join classifier labels into the outcome/insight bucket key."""
    return CONTEXT_HASH_SEPARATOR.join(labels)


def _normalise_numeric(value: Optional[float], low: float, high: float) -> float:
    if value is None or not math.isfinite(value):
        return NEUTRAL_STATE_VALUE
    clamped = min(max(float(value), low), high)
    return (clamped - low) / (high - low)


def normalise_feature(context: GameContext, feature: str) -> float:
    """
    Normalise one named feature to [0, 1].

    Unknown categories, missing values and features the context does
    not carry map to the neutral midpoint.
    """
    if feature in FEATURE_RANGES:
        low, high = FEATURE_RANGES[feature]
        return _normalise_numeric(getattr(context, feature, None), low, high)

    if feature in CATEGORICAL_SCALES:
        value = getattr(context, feature, None)
        return CATEGORICAL_SCALES[feature].get(value, NEUTRAL_STATE_VALUE)

    if feature in BOOLEAN_FEATURES:
        value = getattr(context, feature, None)
        if value is None:
            return NEUTRAL_STATE_VALUE
        return 1.0 if value else 0.0

    if feature in context.extras:
        value = float(context.extras[feature])
        if not math.isfinite(value):
            return NEUTRAL_STATE_VALUE
        return min(max(value, 0.0), 1.0)

    return NEUTRAL_STATE_VALUE


def to_state_vector(context: GameContext, state_space: Sequence[str]) -> Dict[str, float]:
    """Normalised values for every feature in a policy's state space."""
    return {feature: normalise_feature(context, feature) for feature in state_space}
