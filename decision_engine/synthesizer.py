"""
Recommendation synthesis for the Fantasy Decision Engine.

Turns the selected policies' scored actions into one PlayerDecision:
weighted vote, exploration perturbation, risk bucket, factor attribution
and human-readable reasoning.
"""

import logging
import threading
import uuid
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from .classifier import ContextClassifier, context_hash, to_state_vector
from .config import (
    BASELINE_FACTOR_SHARES,
    CLOSE_GAME_MARGIN,
    CRUNCH_TIME_SECONDS,
    FAMILY_FACTOR_BOOSTS,
    LOW_RISK_CONFIDENCE,
    MEDIUM_RISK_CONFIDENCE,
    WEATHER_WIND_THRESHOLD,
    EngineConfig,
)
from .models import ContextualPolicy, ContextualWeights, GameContext, PlayerDecision, RiskLevel
from .policies import bias_matches, policy_family

logger = logging.getLogger(__name__)


HIGH_WIND_CALLOUT_MPH = 20.0

FAMILY_REASONING: Dict[str, str] = {
    "red_zone": "Red zone opportunity detected - increased touchdown probability",
    "garbage_time": "Garbage time scenario - volume-based upside available",
    "weather": "Weather conditions favor ground game - adjust accordingly",
    "prime_time": "Prime time spotlight - star players often elevate performance",
    "divisional": "Divisional familiarity effects - defensive knowledge factor",
}

DEFAULT_REASONING = "Contextual analysis recommends this decision"
NEUTRAL_REASONING = "No contextual policy applies to this situation - hold and monitor"


def risk_level_for(confidence: float) -> RiskLevel:
    """Bucket a final confidence into a risk level."""
    if confidence >= LOW_RISK_CONFIDENCE:
        return RiskLevel.LOW
    if confidence >= MEDIUM_RISK_CONFIDENCE:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def score_actions(policy: ContextualPolicy, state: Dict[str, float]) -> Dict[str, float]:
    """Per-action score: shared weighted feature sum plus the action's biases."""
    base = sum(policy.weights.get(feature, 0.0) * value for feature, value in state.items())
    return {
        action: base + sum(v for key, v in policy.biases.items() if bias_matches(key, action))
        for action in policy.action_space
    }


def best_action(scores: Dict[str, float]) -> Tuple[str, float]:
    """Highest-scoring action; the earliest action wins a tie."""
    chosen, top = None, None
    for action, score in scores.items():
        if top is None or score > top:
            chosen, top = action, score
    return chosen, top


def _fmt(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def extract_contextual_factors(context: GameContext,
                               policies: Sequence[ContextualPolicy]) -> List[str]:
    """Human-readable factors that most influenced a decision."""
    factors = []

    if ContextClassifier.is_red_zone(context):
        if context.yard_line is not None:
            factors.append(f"Red Zone Opportunity ({_fmt(context.yard_line)} yard line)")
        else:
            factors.append("Red Zone Opportunity")

    if ContextClassifier.is_garbage_time(context):
        if context.score_differential is not None:
            factors.append(f"Garbage Time Scenario ({_fmt(context.score_differential)} point differential)")
        else:
            factors.append("Garbage Time Scenario")

    if context.wind_speed is not None and context.wind_speed > WEATHER_WIND_THRESHOLD:
        factors.append(f"High Wind Conditions ({_fmt(context.wind_speed)} mph)")

    if ContextClassifier.is_prime_time(context):
        factors.append("Prime Time National Television Game")

    if _is_crunch_time(context):
        factors.append("Fourth Quarter Crunch Time")

    if context.down in (3, 4):
        factors.append(f"{'Third' if context.down == 3 else 'Fourth'} Down Pressure Situation")

    if any(policy_family(p) == "divisional" for p in policies):
        factors.append("Divisional Matchup Familiarity Effects")

    return factors


def _is_crunch_time(context: GameContext) -> bool:
    return (
        context.quarter == 4
        and context.time_remaining is not None
        and context.time_remaining < CRUNCH_TIME_SECONDS
    )


class RecommendationSynthesizer:
    """
    Combines selected policies into a single recommendation.

    Reads policies without locking and never writes to the store. Only
    the exploration draw is serialised so a seeded generator stays
    reproducible under concurrent callers.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 classifier: Optional[ContextClassifier] = None,
                 rng: Optional[np.random.Generator] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config or EngineConfig()
        self.classifier = classifier or ContextClassifier()
        self._rng = rng if rng is not None else np.random.default_rng(self.config.random_seed)
        self._rng_lock = threading.Lock()
        self._clock = clock or datetime.now

    def synthesize(self, player_id: str, context: GameContext,
                   policies: Sequence[ContextualPolicy],
                   decision_id: Optional[str] = None) -> PlayerDecision:
        """Build a PlayerDecision for one player from the selected policies."""
        decision_id = decision_id or f"decision_{uuid.uuid4().hex}"
        labels = self.classifier.classify(context)
        bucket = context_hash(labels)

        if not policies:
            logger.info(f"No applicable policy for {player_id} in {bucket}; using neutral fallback")
            return self._neutral_decision(decision_id, player_id, context, bucket)

        # Per-policy best action and its vote weight
        picks = []
        for policy in policies:
            state = to_state_vector(context, policy.state_space)
            action, score = best_action(score_actions(policy, state))
            picks.append((policy, action, score, policy.selection_score))

        total_weight = sum(w for _, _, _, w in picks)
        if total_weight <= 0:
            picks = [(p, a, s, 1.0) for p, a, s, _ in picks]
            total_weight = float(len(picks))

        weighted_score = sum(s * w for _, _, s, w in picks) / total_weight
        confidence = sum(p.contextual_accuracy * w for p, _, _, w in picks) / total_weight

        votes: Dict[str, float] = {}
        for _, action, _, weight in picks:
            votes[action] = votes.get(action, 0.0) + weight
        chosen = max(votes, key=lambda a: votes[a])  # first voted wins ties

        candidates: List[str] = []
        for policy in policies:
            for action in policy.action_space:
                if action not in candidates:
                    candidates.append(action)

        exploration_rate = min(p.exploration_rate for p in policies)
        is_exploration = False
        others = [a for a in candidates if a != chosen]
        if exploration_rate > 0 and others:
            with self._rng_lock:
                if self._rng.random() < exploration_rate:
                    chosen = others[int(self._rng.integers(len(others)))]
                    is_exploration = True
        if is_exploration:
            confidence *= self.config.exploration_discount

        confidence = min(max(confidence, 0.0), 1.0)
        expected_value = self.config.expected_value_base + weighted_score * self.config.expected_value_scale

        decision = PlayerDecision(
            decision_id=decision_id,
            player_id=player_id,
            action=chosen,
            context=context,
            confidence=confidence,
            risk_level=risk_level_for(confidence),
            expected_value=expected_value,
            alternatives=tuple(a for a in candidates if a != chosen),
            reasoning=tuple(self._reasoning(policies, context, chosen, is_exploration)),
            contextual_weights=self.contextual_weights(policies),
            policy_ids=tuple(p.id for p in policies),
            context_hash=bucket,
            is_exploration=is_exploration,
            created_at=self._clock(),
        )
        logger.info(
            f"Decision {decision_id} for {player_id}: {chosen} "
            f"(confidence {confidence:.2f}, EV {expected_value:.1f}, {len(policies)} policies, "
            f"{'exploring' if is_exploration else 'exploiting'})"
        )
        return decision

    def contextual_weights(self, policies: Sequence[ContextualPolicy]) -> ContextualWeights:
        """Attribute a decision across the six factor categories (sums to 1)."""
        shares = dict(BASELINE_FACTOR_SHARES)
        for policy in policies:
            boost = FAMILY_FACTOR_BOOSTS.get(policy_family(policy))
            if boost:
                category, amount = boost
                shares[category] += policy.contextual_accuracy * amount
        total = sum(shares.values())
        return ContextualWeights(**{k: v / total for k, v in shares.items()})

    def _reasoning(self, policies: Sequence[ContextualPolicy], context: GameContext,
                   action: str, is_exploration: bool) -> List[str]:
        reasoning = []
        for policy in policies:
            line = FAMILY_REASONING.get(policy_family(policy), f"{policy.name} favors this situation")
            if line not in reasoning:
                reasoning.append(line)

        if _is_crunch_time(context):
            reasoning.append("Fourth quarter crunch time - late-game usage takes priority")
        if (context.quarter == 4 and context.score_differential is not None
                and abs(context.score_differential) > CLOSE_GAME_MARGIN):
            reasoning.append("Fourth quarter with score differential - game script considerations")
        if context.wind_speed is not None and context.wind_speed > HIGH_WIND_CALLOUT_MPH:
            reasoning.append("High wind conditions - passing game likely impacted")
        if context.down in (3, 4):
            reasoning.append(
                f"{'Third' if context.down == 3 else 'Fourth'} down pressure - conversion situation"
            )
        if is_exploration:
            reasoning.append(f"Exploring '{action}' to learn from an alternative outcome")

        return reasoning or [DEFAULT_REASONING]

    def _neutral_decision(self, decision_id: str, player_id: str,
                          context: GameContext, bucket: str) -> PlayerDecision:
        confidence = self.config.neutral_confidence
        return PlayerDecision(
            decision_id=decision_id,
            player_id=player_id,
            action=self.config.neutral_action,
            context=context,
            confidence=confidence,
            risk_level=risk_level_for(confidence),
            expected_value=None,
            reasoning=(NEUTRAL_REASONING,),
            contextual_weights=self.contextual_weights(()),
            context_hash=bucket,
            created_at=self._clock(),
        )
