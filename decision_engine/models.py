"""
Data models for the Fantasy Decision Engine.
"""

import math
import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar, Dict, Mapping, Optional, Tuple

from .config import MAX_CONTEXT_EXTRAS


class RiskLevel(Enum):
    """Risk bucket derived from final decision confidence."""
    LOW = "low"        # confidence >= 0.8
    MEDIUM = "medium"  # 0.6 <= confidence < 0.8
    HIGH = "high"      # confidence < 0.6


class InsightTrigger(Enum):
    """Why an insight was mined."""
    CONFIDENCE_MISCALIBRATION = "confidence_miscalibration"
    LARGE_ERROR = "large_error"


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake(name: str) -> str:
    """yardLine -> yard_line"""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def to_camel(name: str) -> str:
    """yard_line -> yardLine"""
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _as_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _as_int(value: Any) -> Optional[int]:
    number = _as_float(value)
    return int(number) if number is not None else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "yes", "1", "false", "no", "0"):
        return value.strip().lower() in ("true", "yes", "1")
    return None


def _as_label(value: Any) -> Optional[str]:
    if value is None or not isinstance(value, str) or not value.strip():
        return None
    return value.strip().lower()


def _as_team(value: Any) -> Optional[str]:
    if value is None or not isinstance(value, str) or not value.strip():
        return None
    return value.strip().upper()


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class GameContext:
    """Immutable snapshot of an in-progress game. Unknown values are None."""
    game_id: Optional[str] = None
    week: Optional[int] = None
    season: Optional[int] = None

    # Situational
    down: Optional[int] = None
    distance: Optional[float] = None
    yard_line: Optional[float] = None  # yards from the opponent goal line
    field_zone: Optional[str] = None  # red_zone, goal_line, midfield, own_territory, two_minute_warning
    quarter: Optional[int] = None
    time_remaining: Optional[float] = None  # seconds
    score_differential: Optional[float] = None  # positive = winning
    game_script: Optional[str] = None  # blowout_leading, competitive, blowout_trailing, comeback, garbage_time
    possession: Optional[str] = None

    # Environmental
    temperature: Optional[float] = None  # Fahrenheit
    wind_speed: Optional[float] = None  # mph
    precipitation: Optional[str] = None  # none, light_rain, heavy_rain, snow
    visibility: Optional[str] = None
    surface: Optional[str] = None  # grass, turf
    is_dome: bool = False

    # Temporal
    broadcast_slot: Optional[str] = None  # early, afternoon, prime_time, late_night
    day_of_week: Optional[str] = None

    # Teams
    home_team: Optional[str] = None
    away_team: Optional[str] = None
    is_home: Optional[bool] = None

    # Derived
    team_fatigue: Optional[float] = None  # 0-100
    recent_performance: Optional[float] = None  # last 3 games average
    injury_report: Tuple[str, ...] = ()

    # Bounded extension map: feature name -> value already on a 0-1 scale
    extras: Mapping[str, float] = field(default_factory=dict)

    _INT_FIELDS: ClassVar[Tuple[str, ...]] = ("week", "season", "down", "quarter")
    _FLOAT_FIELDS: ClassVar[Tuple[str, ...]] = (
        "distance", "yard_line", "time_remaining", "score_differential",
        "temperature", "wind_speed", "team_fatigue", "recent_performance",
    )
    _LABEL_FIELDS: ClassVar[Tuple[str, ...]] = (
        "field_zone", "game_script", "possession", "precipitation",
        "visibility", "surface", "broadcast_slot", "day_of_week",
    )
    _TEAM_FIELDS: ClassVar[Tuple[str, ...]] = ("home_team", "away_team")
    _ALIASES: ClassVar[Dict[str, str]] = {"game_time": "broadcast_slot"}

    def __post_init__(self):
        if isinstance(self.extras, Mapping) and len(self.extras) > MAX_CONTEXT_EXTRAS:
            raise ValueError(f"GameContext.extras holds at most {MAX_CONTEXT_EXTRAS} entries")

        # Direct construction gets the same coercion as from_dict.
        coerce = object.__setattr__
        for name in self._INT_FIELDS:
            coerce(self, name, _as_int(getattr(self, name)))
        for name in self._FLOAT_FIELDS:
            coerce(self, name, _as_float(getattr(self, name)))
        for name in self._LABEL_FIELDS:
            coerce(self, name, _as_label(getattr(self, name)))
        for name in self._TEAM_FIELDS:
            coerce(self, name, _as_team(getattr(self, name)))
        coerce(self, "is_dome", bool(_as_bool(self.is_dome)))
        coerce(self, "is_home", _as_bool(self.is_home))
        if self.game_id is not None:
            coerce(self, "game_id", str(self.game_id))

        injuries = self.injury_report or ()
        if isinstance(injuries, str):
            injuries = (injuries,)
        coerce(self, "injury_report",
               tuple(str(i) for i in injuries) if isinstance(injuries, (list, tuple)) else ())

        extras: Dict[str, float] = {}
        if isinstance(self.extras, Mapping):
            for key, value in self.extras.items():
                number = _as_float(value)
                if number is not None:
                    extras[str(key)] = number
        coerce(self, "extras", extras)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameContext":
        """
        Build a context from a camelCase (wire) or snake_case mapping.
        Malformed values degrade to None instead of raising.
        """
        flat: Dict[str, Any] = {}
        for key, value in (data or {}).items():
            if key == "weather" and isinstance(value, Mapping):
                for inner_key, inner_value in value.items():
                    flat[to_snake(inner_key)] = inner_value
                continue
            flat[to_snake(key)] = value

        for alias, target in cls._ALIASES.items():
            if alias in flat and target not in flat:
                flat[target] = flat.pop(alias)

        kwargs: Dict[str, Any] = {}
        for name in cls._INT_FIELDS:
            kwargs[name] = _as_int(flat.get(name))
        for name in cls._FLOAT_FIELDS:
            kwargs[name] = _as_float(flat.get(name))
        for name in cls._LABEL_FIELDS:
            kwargs[name] = _as_label(flat.get(name))
        for name in cls._TEAM_FIELDS:
            kwargs[name] = _as_team(flat.get(name))

        kwargs["is_dome"] = bool(_as_bool(flat.get("is_dome")))
        kwargs["is_home"] = _as_bool(flat.get("is_home"))
        game_id = flat.get("game_id")
        kwargs["game_id"] = str(game_id) if game_id is not None else None

        injuries = flat.get("injury_report") or ()
        if isinstance(injuries, str):
            injuries = (injuries,)
        kwargs["injury_report"] = tuple(str(i) for i in injuries) if isinstance(injuries, (list, tuple)) else ()

        extras: Dict[str, float] = {}
        raw_extras = flat.get("extras")
        if isinstance(raw_extras, Mapping):
            for key, value in raw_extras.items():
                number = _as_float(value)
                if number is None or len(extras) >= MAX_CONTEXT_EXTRAS:
                    continue
                extras[to_snake(str(key))] = number
        kwargs["extras"] = extras

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        """Wire form with camelCase keys; unset fields are omitted."""
        result: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or (f.name in ("extras", "injury_report") and not value):
                continue
            if f.name == "extras":
                value = dict(value)
            elif f.name == "injury_report":
                value = list(value)
            result[to_camel(f.name)] = value
        return result


@dataclass(frozen=True)
class ContextualPolicy:
    """
    A named, weighted scoring function over normalised context features.
    Replaced wholesale on every update; never mutated in place.
    """
    id: str
    name: str
    applicable_contexts: Tuple[str, ...]
    action_space: Tuple[str, ...]
    state_space: Tuple[str, ...]
    weights: Dict[str, float] = field(default_factory=dict)
    biases: Dict[str, float] = field(default_factory=dict)
    description: str = ""
    reward_function: str = ""

    # Learning parameters
    learning_rate: float = 0.001
    discount_factor: float = 0.9
    exploration_rate: float = 0.1

    # Performance statistics
    success_rate: float = 0.5
    average_reward: float = 0.0
    improved_decisions: int = 0
    contextual_accuracy: float = 0.5
    training_episodes: int = 0
    convergence_rate: float = 0.5

    last_updated: Optional[datetime] = None
    retired: bool = False

    def __post_init__(self):
        object.__setattr__(self, "applicable_contexts", tuple(self.applicable_contexts))
        object.__setattr__(self, "action_space", tuple(self.action_space))
        object.__setattr__(self, "state_space", tuple(self.state_space))
        object.__setattr__(self, "weights", dict(self.weights))
        object.__setattr__(self, "biases", dict(self.biases))

    @property
    def selection_score(self) -> float:
        """Relevance used for ranking and vote weight."""
        return self.contextual_accuracy * self.success_rate

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "applicableContexts": list(self.applicable_contexts),
            "actionSpace": list(self.action_space),
            "stateSpace": list(self.state_space),
            "rewardFunction": self.reward_function,
            "weights": dict(self.weights),
            "biases": dict(self.biases),
            "learningRate": self.learning_rate,
            "discountFactor": self.discount_factor,
            "explorationRate": self.exploration_rate,
            "successRate": self.success_rate,
            "averageReward": self.average_reward,
            "improvedDecisions": self.improved_decisions,
            "contextualAccuracy": self.contextual_accuracy,
            "trainingEpisodes": self.training_episodes,
            "convergenceRate": self.convergence_rate,
            "lastUpdated": _iso(self.last_updated),
            "retired": self.retired,
        }


@dataclass(frozen=True)
class ContextualWeights:
    """How much each factor category influenced a decision (sums to 1)."""
    game_script: float = 0.0
    weather: float = 0.0
    opponent: float = 0.0
    recent_form: float = 0.0
    team_situation: float = 0.0
    personal_factors: float = 0.0

    @property
    def total(self) -> float:
        return sum(self.as_dict().values())

    def as_dict(self) -> Dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_dict(self) -> Dict[str, float]:
        return {to_camel(name): value for name, value in self.as_dict().items()}


@dataclass(frozen=True)
class PlayerDecision:
    """
    An immutable recommendation for one player in one context.

    Equality ignores decision_id and created_at: two decisions are equal
    when they recommend the same thing for the same reasons.
    """
    decision_id: str = field(compare=False)
    player_id: str
    action: str
    context: GameContext
    confidence: float  # 0-1
    risk_level: RiskLevel
    expected_value: Optional[float] = None  # fantasy points; None = no projection
    alternatives: Tuple[str, ...] = ()
    reasoning: Tuple[str, ...] = ()
    contextual_weights: ContextualWeights = field(default_factory=ContextualWeights)
    policy_ids: Tuple[str, ...] = ()
    context_hash: str = ""
    is_exploration: bool = False
    created_at: Optional[datetime] = field(default=None, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "alternatives", tuple(self.alternatives))
        object.__setattr__(self, "reasoning", tuple(self.reasoning))
        object.__setattr__(self, "policy_ids", tuple(self.policy_ids))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "decisionId": self.decision_id,
            "playerId": self.player_id,
            "action": self.action,
            "context": self.context.to_dict(),
            "alternatives": list(self.alternatives),
            "confidence": self.confidence,
            "expectedValue": self.expected_value,
            "riskLevel": self.risk_level.value,
            "reasoning": list(self.reasoning),
            "contextualWeights": self.contextual_weights.to_dict(),
            "policyIds": list(self.policy_ids),
            "contextHash": self.context_hash,
            "isExploration": self.is_exploration,
            "createdAt": _iso(self.created_at),
        }


@dataclass(frozen=True)
class DecisionOutcome:
    """Ground truth for a decision. Reward and context hash are filled on resolution."""
    decision_id: str
    actual_points: float
    accuracy: float  # 0-1
    player_id: Optional[str] = None
    predicted_points: Optional[float] = None
    contextual_success_rate: Optional[float] = None
    regret: float = 0.0  # opportunity cost vs best unchosen alternative
    reward: Optional[float] = None
    context_hash: str = ""
    learning_value: Optional[float] = None
    satisfaction: Optional[float] = None
    outcome_id: str = ""
    recorded_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.decision_id:
            raise ValueError("DecisionOutcome requires a decision_id")
        accuracy = _as_float(self.accuracy)
        if accuracy is None or not 0.0 <= accuracy <= 1.0:
            raise ValueError(f"accuracy must be within [0, 1], got {self.accuracy!r}")
        actual_points = _as_float(self.actual_points)
        if actual_points is None:
            raise ValueError(f"actual_points must be a finite number, got {self.actual_points!r}")
        object.__setattr__(self, "accuracy", accuracy)
        object.__setattr__(self, "actual_points", actual_points)
        object.__setattr__(self, "regret", _as_float(self.regret) or 0.0)
        if not self.outcome_id:
            object.__setattr__(self, "outcome_id", self.decision_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DecisionOutcome":
        """Build an outcome from its camelCase wire form."""
        flat = {to_snake(k): v for k, v in data.items()}
        actual = flat.get("actual_points")
        performance = flat.get("actual_performance")
        if actual is None and isinstance(performance, Mapping):
            actual = performance.get("fantasyPoints")
            flat.setdefault("contextual_success_rate", performance.get("contextualSuccessRate"))
        return cls(
            decision_id=str(flat.get("decision_id") or ""),
            actual_points=_as_float(actual),
            accuracy=_as_float(flat.get("accuracy")),
            player_id=flat.get("player_id"),
            predicted_points=_as_float(flat.get("predicted_points")),
            contextual_success_rate=_as_float(flat.get("contextual_success_rate")),
            regret=_as_float(flat.get("regret")) or 0.0,
            context_hash=str(flat.get("context_hash") or ""),
            learning_value=_as_float(flat.get("learning_value")),
            satisfaction=_as_float(flat.get("satisfaction")),
            outcome_id=str(flat.get("outcome_id") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcomeId": self.outcome_id,
            "decisionId": self.decision_id,
            "playerId": self.player_id,
            "actualPoints": self.actual_points,
            "predictedPoints": self.predicted_points,
            "accuracy": self.accuracy,
            "contextualSuccessRate": self.contextual_success_rate,
            "reward": self.reward,
            "regret": self.regret,
            "contextHash": self.context_hash,
            "learningValue": self.learning_value,
            "satisfaction": self.satisfaction,
            "recordedAt": _iso(self.recorded_at),
        }


@dataclass(frozen=True)
class RewardSignal:
    """Bounded learning signal for one outcome."""
    reward: float
    regret: float


@dataclass(frozen=True)
class LearningEpisode:
    """One decision -> outcome cycle, recorded append-only."""
    episode_id: str
    decision: PlayerDecision
    outcome: DecisionOutcome
    reward: float
    policies_updated: Tuple[str, ...] = ()
    context_patterns: Tuple[str, ...] = ()
    new_insights: Tuple[str, ...] = ()
    episode_type: str = "single_decision"
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def player_id(self) -> str:
        return self.decision.player_id

    @property
    def accuracy(self) -> float:
        return self.outcome.accuracy

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()


@dataclass(frozen=True)
class InsightRecommendation:
    """Actionable follow-up attached to an insight."""
    action: str
    conditions: Tuple[str, ...] = ()
    expected_improvement: float = 0.0
    risk_factors: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "conditions": list(self.conditions),
            "expectedImprovement": self.expected_improvement,
            "riskFactors": list(self.risk_factors),
        }


@dataclass(frozen=True)
class ContextualInsight:
    """A mined generalisation about a context type. The text never changes."""
    insight_id: str
    context_type: str
    trigger: InsightTrigger
    insight: str
    confidence: float
    applicability_score: float = 0.0
    episode_count: int = 1
    average_impact: Optional[float] = None
    impact_samples: int = 0
    success_examples: Tuple[str, ...] = ()
    failure_examples: Tuple[str, ...] = ()
    recommendations: Tuple[InsightRecommendation, ...] = ()
    discovered_at: Optional[datetime] = None
    last_validated: Optional[datetime] = None
    validation_count: int = 1

    @property
    def key(self) -> Tuple[str, InsightTrigger]:
        return (self.context_type, self.trigger)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.insight_id,
            "contextType": self.context_type,
            "trigger": self.trigger.value,
            "insight": self.insight,
            "confidence": self.confidence,
            "applicabilityScore": self.applicability_score,
            "episodeCount": self.episode_count,
            "averageImpact": self.average_impact,
            "successExamples": list(self.success_examples),
            "failureExamples": list(self.failure_examples),
            "recommendations": [r.to_dict() for r in self.recommendations],
            "discoveredAt": _iso(self.discovered_at),
            "lastValidated": _iso(self.last_validated),
            "validationCount": self.validation_count,
        }


# ============================================================================
# Engine results and observer events
# ============================================================================

@dataclass(frozen=True)
class DecisionResult:
    """Returned by DecisionEngine.process_decision."""
    recommendation: PlayerDecision
    confidence: float
    contextual_factors: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "recommendation": self.recommendation.to_dict(),
            "confidence": self.confidence,
            "contextualFactors": list(self.contextual_factors),
        }


@dataclass(frozen=True)
class OutcomeResult:
    """Returned by DecisionEngine.process_outcome. applied=False means no-op."""
    reward: float = 0.0
    policies_updated: Tuple[str, ...] = ()
    new_insights: Tuple[str, ...] = ()
    next_recommendations: Tuple[str, ...] = ()
    applied: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reward": self.reward,
            "policiesUpdated": list(self.policies_updated),
            "newInsights": list(self.new_insights),
            "nextRecommendations": list(self.next_recommendations),
        }


@dataclass(frozen=True)
class SystemPerformance:
    """Engine-wide learning statistics. None means no evidence yet."""
    overall_accuracy: Optional[float]
    active_policies: int
    learning_episodes: int
    learning_velocity: Optional[float]
    top_policies: Tuple[Dict[str, Any], ...] = ()
    contextual_insights: int = 0
    accuracy_by_context: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overallAccuracy": self.overall_accuracy,
            "activePolicies": self.active_policies,
            "learningEpisodes": self.learning_episodes,
            "learningVelocity": self.learning_velocity,
            "topPolicies": [dict(p) for p in self.top_policies],
            "contextualInsights": self.contextual_insights,
            "accuracyByContext": dict(self.accuracy_by_context),
        }


@dataclass(frozen=True)
class LearningCycleReport:
    """Summary of one continuous-learning pass."""
    episodes_scanned: int
    average_accuracy: Optional[float]
    learning_velocity: Optional[float]
    policies_decayed: Tuple[str, ...] = ()


@dataclass(frozen=True)
class DecisionProcessed:
    """Observer event: a recommendation was produced."""
    name: ClassVar[str] = "decisionProcessed"
    player_id: str
    decision_id: str
    action: str
    confidence: float
    context_type: str
    policies: Tuple[str, ...] = ()


@dataclass(frozen=True)
class LearningCompleted:
    """Observer event: an outcome was learned from."""
    name: ClassVar[str] = "learningCompleted"
    player_id: str
    decision_id: str
    accuracy: float
    reward: float
    policies_updated: int
    new_insights: int
    learning_value: Optional[float] = None
