"""
Configuration management for the Fantasy Decision Engine.
Includes the tunable learning constants and the normalisation tables
used to turn a game snapshot into policy features.
"""

import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from dotenv import load_dotenv


# Load environment variables from .env file
load_dotenv()


def _env_float(name: str, default: float) -> float:
    """Read a float override from the environment, keeping the default if unset."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    """Read an int override from the environment, keeping the default if unset."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


@dataclass
class EngineConfig:
    """Engine configuration. Every learning constant is a default, not a law."""
    # Selection / synthesis
    max_selected_policies: int = 3
    exploration_discount: float = 0.8
    neutral_action: str = "hold/monitor"
    neutral_confidence: float = 0.5
    expected_value_base: float = 8.0  # fantasy points
    expected_value_scale: float = 12.0

    # Reward shaping
    reward_bound: float = 10.0
    accuracy_reward_scale: float = 20.0
    performance_clip: float = 10.0
    performance_reward_scale: float = 0.5
    mastery_threshold: float = 0.8
    mastery_bonus: float = 2.0
    regret_penalty: float = 0.3

    # Online policy updates
    weight_update_scale: float = 0.01
    exploration_decay: float = 0.9995
    min_exploration_rate: float = 0.01
    convergence_smoothing: float = 0.95

    # Continuous learning cycle
    learning_rate_decay: float = 0.9999
    mature_policy_episodes: int = 100
    convergence_target: float = 0.95
    learning_cycle_interval: float = 600.0  # seconds
    learning_cycle_window: int = 100
    velocity_baseline: float = 0.75

    # Memory bounds
    episode_log_capacity: int = 10000
    decision_cache_size: int = 10000

    # Insight mining
    miscalibration_accuracy: float = 0.9
    miscalibration_confidence: float = 0.7
    large_error_threshold: float = 8.0  # fantasy points

    # Exploration seed (None = fresh entropy)
    random_seed: Optional[int] = None

    def __post_init__(self):
        """Apply FDE_* environment overrides."""
        self.random_seed = _env_int("FDE_RANDOM_SEED", self.random_seed)
        self.exploration_discount = _env_float("FDE_EXPLORATION_DISCOUNT", self.exploration_discount)
        self.weight_update_scale = _env_float("FDE_WEIGHT_UPDATE_SCALE", self.weight_update_scale)
        self.exploration_decay = _env_float("FDE_EXPLORATION_DECAY", self.exploration_decay)
        self.learning_rate_decay = _env_float("FDE_LEARNING_RATE_DECAY", self.learning_rate_decay)
        self.learning_cycle_interval = _env_float("FDE_LEARNING_CYCLE_INTERVAL", self.learning_cycle_interval)
        self.episode_log_capacity = _env_int("FDE_EPISODE_LOG_CAPACITY", self.episode_log_capacity)
        self.decision_cache_size = _env_int("FDE_DECISION_CACHE_SIZE", self.decision_cache_size)

    def validate_config(self) -> List[str]:
        """
        Validate configuration values.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.max_selected_policies < 1:
            errors.append("max_selected_policies must be at least 1")
        if not 0 < self.exploration_discount <= 1:
            errors.append("exploration_discount must be in (0, 1]")
        if not 0 <= self.neutral_confidence <= 1:
            errors.append("neutral_confidence must be in [0, 1]")
        if self.reward_bound <= 0:
            errors.append("reward_bound must be positive")
        if not 0 < self.exploration_decay <= 1:
            errors.append("exploration_decay must be in (0, 1]")
        if not 0 <= self.min_exploration_rate <= 1:
            errors.append("min_exploration_rate must be in [0, 1]")
        if not 0 <= self.convergence_smoothing <= 1:
            errors.append("convergence_smoothing must be in [0, 1]")
        if not 0 < self.learning_rate_decay <= 1:
            errors.append("learning_rate_decay must be in (0, 1]")
        if self.learning_cycle_interval <= 0:
            errors.append("learning_cycle_interval must be positive")
        if self.learning_cycle_window < 1:
            errors.append("learning_cycle_window must be at least 1")
        if self.episode_log_capacity < 1:
            errors.append("episode_log_capacity must be at least 1")
        if self.decision_cache_size < 1:
            errors.append("decision_cache_size must be at least 1")

        return errors

    def is_valid(self) -> bool:
        """Check whether the configuration passes validation."""
        return not self.validate_config()


def get_config() -> EngineConfig:
    """Get engine configuration."""
    return EngineConfig()


# ============================================================================
# STATE NORMALISATION
# Numeric features are clamped to (low, high) and scaled to [0, 1]
# ============================================================================

NEUTRAL_STATE_VALUE = 0.5

FEATURE_RANGES: Dict[str, Tuple[float, float]] = {
    "down": (0.0, 4.0),
    "distance": (0.0, 20.0),
    "yard_line": (0.0, 100.0),
    "quarter": (0.0, 4.0),
    "time_remaining": (0.0, 3600.0),  # seconds
    "score_differential": (-28.0, 28.0),
    "temperature": (-20.0, 100.0),  # Fahrenheit
    "wind_speed": (0.0, 40.0),  # mph
    "team_fatigue": (0.0, 100.0),
    "recent_performance": (0.0, 40.0),  # fantasy points, last 3 games
    "week": (1.0, 18.0),
}

CATEGORICAL_SCALES: Dict[str, Dict[str, float]] = {
    "precipitation": {
        "none": 0.0, "light_rain": 0.33, "heavy_rain": 0.67, "snow": 1.0,
    },
    "surface": {"grass": 0.0, "turf": 1.0},
    "game_script": {
        "blowout_trailing": 0.0, "comeback": 0.25, "competitive": 0.5,
        "blowout_leading": 0.75, "garbage_time": 1.0,
    },
    "broadcast_slot": {
        "early": 0.0, "afternoon": 0.33, "late_night": 0.67, "prime_time": 1.0,
    },
    "field_zone": {
        "own_territory": 0.0, "midfield": 0.4, "two_minute_warning": 0.6,
        "red_zone": 0.85, "goal_line": 1.0,
    },
    "visibility": {"clear": 0.0, "limited": 0.5, "fog": 1.0},
}

BOOLEAN_FEATURES = ("is_dome", "is_home")

MAX_CONTEXT_EXTRAS = 32


# ============================================================================
# CONTEXT CLASSIFICATION
# ============================================================================

STANDARD_CONTEXT = "standard_game"
CONTEXT_HASH_SEPARATOR = "|"

RED_ZONE_FIELD_ZONES = frozenset({"red_zone", "goal_line"})
WEATHER_WIND_THRESHOLD = 15.0  # mph
FREEZING_TEMPERATURE = 32.0  # Fahrenheit
GARBAGE_TIME_MARGIN = 21
CLOSE_GAME_MARGIN = 7
CRUNCH_TIME_SECONDS = 300

# Policy context names that mean the same thing as a classifier label
CONTEXT_ALIASES: Dict[str, str] = {
    "goal_line": "red_zone",
    "blowout_trailing": "garbage_time",
    "bad_weather": "weather_game",
    "wind_game": "weather_game",
    "snow_game": "weather_game",
    "rain_game": "weather_game",
    "monday_night": "prime_time",
    "thursday_night": "prime_time",
    "sunday_night": "prime_time",
    "rivalry_game": "divisional_game",
    "revenge_game": "divisional_game",
}

NFL_DIVISIONS: Dict[str, Tuple[str, ...]] = {
    "AFC_EAST": ("BUF", "MIA", "NE", "NYJ"),
    "AFC_NORTH": ("BAL", "CIN", "CLE", "PIT"),
    "AFC_SOUTH": ("HOU", "IND", "JAX", "TEN"),
    "AFC_WEST": ("DEN", "KC", "LV", "LAC"),
    "NFC_EAST": ("DAL", "NYG", "PHI", "WSH"),
    "NFC_NORTH": ("CHI", "DET", "GB", "MIN"),
    "NFC_SOUTH": ("ATL", "CAR", "NO", "TB"),
    "NFC_WEST": ("ARI", "LAR", "SF", "SEA"),
}


# ============================================================================
# DECISION ATTRIBUTION
# ============================================================================

RISK_MULTIPLIERS: Dict[str, float] = {"low": 1.1, "medium": 1.0, "high": 0.9}

LOW_RISK_CONFIDENCE = 0.8
MEDIUM_RISK_CONFIDENCE = 0.6

# Shares every decision starts from (sum to 1)
BASELINE_FACTOR_SHARES: Dict[str, float] = {
    "game_script": 0.15,
    "weather": 0.10,
    "opponent": 0.10,
    "recent_form": 0.30,
    "team_situation": 0.20,
    "personal_factors": 0.15,
}

# Policy family -> (factor category, boost scaled by contextual accuracy)
FAMILY_FACTOR_BOOSTS: Dict[str, Tuple[str, float]] = {
    "red_zone": ("game_script", 0.30),
    "garbage_time": ("game_script", 0.30),
    "weather": ("weather", 0.40),
    "prime_time": ("opponent", 0.25),
    "divisional": ("opponent", 0.25),
}

# Policy name keyword -> family
POLICY_FAMILY_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("Red Zone", "red_zone"),
    ("Garbage Time", "garbage_time"),
    ("Weather", "weather"),
    ("Prime Time", "prime_time"),
    ("Divisional", "divisional"),
)

INSIGHT_EXAMPLE_LIMIT = 20
INSIGHT_CONFIDENCE_CEILING = 0.99
