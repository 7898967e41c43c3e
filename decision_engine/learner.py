"""
Learning components for the Fantasy Decision Engine.

1. Reward shaping - turn an observed outcome into a bounded learning signal
2. Online policy updates - nudge weights and roll performance statistics
"""

import logging
import math
import threading
from collections import OrderedDict
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, Optional

from .classifier import to_state_vector
from .config import RISK_MULTIPLIERS, EngineConfig
from .models import ContextualPolicy, DecisionOutcome, GameContext, PlayerDecision, RewardSignal

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    """Bound value to [low, high]; NaN collapses to 0 so it never reaches a policy."""
    if math.isnan(value):
        return 0.0
    return min(max(value, low), high)


class RewardCalculator:
    """
    Compute the reward/regret pair for a resolved decision.

    Pure: the same decision and outcome always give the same signal.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def compute_reward(self, decision: PlayerDecision, outcome: DecisionOutcome) -> RewardSignal:
        """
        reward = (accuracy term + performance term) * risk multiplier
                 + mastery bonus - regret penalty, clamped to +/- reward_bound.
        """
        cfg = self.config
        bound = cfg.reward_bound

        accuracy_term = (outcome.accuracy - 0.5) * cfg.accuracy_reward_scale

        # No projection means no performance evidence
        performance_term = 0.0
        if decision.expected_value is not None:
            delta = outcome.actual_points - decision.expected_value
            performance_term = clamp(delta, -cfg.performance_clip, cfg.performance_clip) * cfg.performance_reward_scale

        reward = (accuracy_term + performance_term) * RISK_MULTIPLIERS[decision.risk_level.value]

        if outcome.contextual_success_rate is not None and outcome.contextual_success_rate > cfg.mastery_threshold:
            reward += cfg.mastery_bonus

        reward -= max(0.0, outcome.regret * cfg.regret_penalty)

        return RewardSignal(
            reward=clamp(reward, -bound, bound),
            regret=clamp(outcome.regret, -bound, bound),
        )


class PolicyUpdater:
    """
    Apply one outcome to one policy, returning the replacement value.

    Remembers which outcomes each policy has absorbed so a replayed
    outcome leaves the policy untouched. Callers serialise updates per
    policy through PolicyStore.lock_for.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.config = config or EngineConfig()
        self._clock = clock or datetime.now
        self._lock = threading.Lock()
        self._applied: Dict[str, "OrderedDict[str, None]"] = {}

    def has_applied(self, policy_id: str, outcome_id: str) -> bool:
        with self._lock:
            return outcome_id in self._applied.get(policy_id, ())

    def _remember(self, policy_id: str, outcome_id: str) -> None:
        with self._lock:
            applied = self._applied.setdefault(policy_id, OrderedDict())
            applied[outcome_id] = None
            while len(applied) > self.config.decision_cache_size:
                applied.popitem(last=False)

    def update(self, policy: ContextualPolicy, decision: PlayerDecision,
               outcome: DecisionOutcome, reward: float,
               context: GameContext) -> ContextualPolicy:
        """Return the policy after learning from one outcome."""
        if self.has_applied(policy.id, outcome.outcome_id):
            logger.debug(f"Outcome {outcome.outcome_id} already applied to {policy.id}")
            return policy

        cfg = self.config
        state = to_state_vector(context, policy.state_space)
        step = reward * policy.learning_rate * cfg.weight_update_scale
        weights = dict(policy.weights)
        for feature, value in state.items():
            weights[feature] = weights.get(feature, 0.0) + step * value

        n = policy.training_episodes
        success = 1.0 if reward > 0 else 0.0

        def running_mean(old: float, sample: float) -> float:
            return (old * n + sample) / (n + 1)

        if policy.retired:
            exploration_rate = 0.0
        else:
            exploration_rate = max(cfg.min_exploration_rate, policy.exploration_rate * cfg.exploration_decay)

        stability = 1.0 - 2.0 * abs(outcome.accuracy - policy.contextual_accuracy)
        convergence = (policy.convergence_rate * cfg.convergence_smoothing
                       + stability * (1.0 - cfg.convergence_smoothing))

        updated = replace(
            policy,
            weights=weights,
            success_rate=running_mean(policy.success_rate, success),
            average_reward=running_mean(policy.average_reward, reward),
            contextual_accuracy=running_mean(policy.contextual_accuracy, outcome.accuracy),
            improved_decisions=policy.improved_decisions + (1 if reward > 0 else 0),
            training_episodes=n + 1,
            exploration_rate=exploration_rate,
            convergence_rate=clamp(convergence, 0.0, 1.0),
            last_updated=self._clock(),
        )
        self._remember(policy.id, outcome.outcome_id)

        logger.info(
            f"Updated {policy.id} from {decision.decision_id}: reward {reward:+.2f}, "
            f"accuracy {updated.contextual_accuracy:.3f}, episodes {updated.training_episodes}"
        )
        return updated
