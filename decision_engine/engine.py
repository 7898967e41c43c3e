"""
Decision Engine for the Fantasy Decision Engine package.

Owns the policy store, insight set and episode log, and wires
classification, selection, synthesis and learning together:

    GameContext -> classify -> select -> synthesize -> PlayerDecision
    PlayerDecision + DecisionOutcome -> reward -> policy updates
                                     -> insights -> episode log
"""

import logging
import threading
from collections import OrderedDict
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

import numpy as np

from .classifier import ContextClassifier
from .config import EngineConfig, get_config
from .episodes import EpisodeLog, detect_context_patterns
from .insights import InsightMiner, InsightSet, next_recommendations
from .learner import PolicyUpdater, RewardCalculator
from .models import (
    ContextualInsight,
    ContextualPolicy,
    DecisionOutcome,
    DecisionProcessed,
    DecisionResult,
    GameContext,
    LearningCompleted,
    LearningCycleReport,
    LearningEpisode,
    OutcomeResult,
    PlayerDecision,
    SystemPerformance,
)
from .policies import PolicySelector, PolicyStore
from .synthesizer import RecommendationSynthesizer, extract_contextual_factors

logger = logging.getLogger(__name__)


Observer = Callable[[Any], None]

OVERALL_ACCURACY_SMOOTHING = 0.95
CONTEXT_ACCURACY_SMOOTHING = 0.9
VELOCITY_SMOOTHING = 0.9
VELOCITY_SCALE = 10.0
TOP_POLICY_COUNT = 3


class DecisionEngine:
    """
    Contextual decision-learning engine.

    Construct one per application and pass it to the callers that need
    it. Call start() to run the periodic learning cycle in the
    background and shutdown() to stop it, or use the engine as a
    context manager.
    """

    def __init__(self, config: Optional[EngineConfig] = None,
                 policies: Optional[Iterable[ContextualPolicy]] = None,
                 rng: Optional[np.random.Generator] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 observers: Optional[Iterable[Observer]] = None):
        self.config = config or get_config()
        errors = self.config.validate_config()
        if errors:
            raise ValueError("Invalid engine configuration: " + "; ".join(errors))

        self._clock = clock or datetime.now
        rng = rng if rng is not None else np.random.default_rng(self.config.random_seed)

        self.classifier = ContextClassifier()
        self.store = PolicyStore(policies)
        self.selector = PolicySelector(self.config)
        self.synthesizer = RecommendationSynthesizer(self.config, self.classifier, rng, self._clock)
        self.reward_calculator = RewardCalculator(self.config)
        self.updater = PolicyUpdater(self.config, self._clock)
        self.insights = InsightSet()
        self.miner = InsightMiner(self.insights, self.config, self._clock, self.classifier)
        self.episodes = EpisodeLog(self.config.episode_log_capacity)

        # Decisions awaiting an outcome, and outcome ids already consumed
        self._pending_lock = threading.Lock()
        self._pending: "OrderedDict[str, PlayerDecision]" = OrderedDict()
        self._seen_outcomes: "OrderedDict[str, None]" = OrderedDict()

        self._observers_lock = threading.Lock()
        self._observers: List[Observer] = list(observers or [])

        self._metrics_lock = threading.Lock()
        self._overall_accuracy: Optional[float] = None
        self._accuracy_by_context: Dict[str, float] = {}
        self._learning_velocity: Optional[float] = None

        self._cycle_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._cycle_thread: Optional[threading.Thread] = None

        logger.info(f"Decision engine ready with {len(self.store)} policies")

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def process_decision(self, player_id: str,
                         context: Union[GameContext, Mapping[str, Any]]) -> DecisionResult:
        """Recommend an action for a player in the given game situation."""
        if not isinstance(context, GameContext):
            context = GameContext.from_dict(context)

        labels = self.classifier.classify(context)
        policies = self.selector.select(labels, self.store)
        decision = self.synthesizer.synthesize(player_id, context, policies)
        factors = extract_contextual_factors(context, policies)

        with self._pending_lock:
            self._pending[decision.decision_id] = decision
            while len(self._pending) > self.config.decision_cache_size:
                evicted, _ = self._pending.popitem(last=False)
                logger.debug(f"Evicted pending decision {evicted}")

        self._emit(DecisionProcessed(
            player_id=player_id,
            decision_id=decision.decision_id,
            action=decision.action,
            confidence=decision.confidence,
            context_type=decision.context_hash,
            policies=decision.policy_ids,
        ))
        return DecisionResult(
            recommendation=decision,
            confidence=decision.confidence,
            contextual_factors=tuple(factors),
        )

    # ------------------------------------------------------------------
    # Learning
    # ------------------------------------------------------------------

    def _claim(self, decision: PlayerDecision, outcome: DecisionOutcome) -> Optional[PlayerDecision]:
        """Take the pending decision an outcome resolves, exactly once."""
        with self._pending_lock:
            if outcome.outcome_id in self._seen_outcomes:
                logger.warning(f"Outcome {outcome.outcome_id} already processed; ignoring")
                return None
            if decision.decision_id != outcome.decision_id:
                logger.warning(
                    f"Outcome {outcome.outcome_id} references {outcome.decision_id}, "
                    f"not {decision.decision_id}; ignoring"
                )
                return None
            cached = self._pending.pop(outcome.decision_id, None)
            if cached is None:
                logger.warning(f"Decision {outcome.decision_id} is unknown or already resolved; ignoring outcome")
                return None
            self._seen_outcomes[outcome.outcome_id] = None
            while len(self._seen_outcomes) > self.config.decision_cache_size:
                self._seen_outcomes.popitem(last=False)
            return cached

    def process_outcome(self, decision: PlayerDecision, outcome: DecisionOutcome) -> OutcomeResult:
        """
        Learn from the real result of an earlier recommendation.

        Unknown, mismatched or repeated outcomes are ignored and return an
        empty result with applied=False.
        """
        cached = self._claim(decision, outcome)
        if cached is None:
            return OutcomeResult()

        started_at = self._clock()
        signal = self.reward_calculator.compute_reward(cached, outcome)
        resolved = replace(
            outcome,
            player_id=outcome.player_id or cached.player_id,
            predicted_points=(outcome.predicted_points if outcome.predicted_points is not None
                              else cached.expected_value),
            reward=signal.reward,
            regret=signal.regret,
            context_hash=outcome.context_hash or cached.context_hash,
            recorded_at=outcome.recorded_at or started_at,
        )

        updated_ids = []
        for policy_id in cached.policy_ids:
            if policy_id not in self.store:
                logger.warning(f"Policy {policy_id} from {cached.decision_id} is no longer registered")
                continue
            with self.store.lock_for(policy_id):
                current = self.store.peek(policy_id)
                updated = self.updater.update(current, cached, resolved, signal.reward, cached.context)
                if updated is not current:
                    self.store.replace(updated)
                    updated_ids.append(policy_id)

        touched = self.miner.mine(cached, resolved, cached.context)
        new_insights = tuple(i.insight for i in touched if i.validation_count == 1)

        episode = LearningEpisode(
            episode_id=self.episodes.new_episode_id(),
            decision=cached,
            outcome=resolved,
            reward=signal.reward,
            policies_updated=tuple(updated_ids),
            context_patterns=tuple(detect_context_patterns(cached.context, resolved)),
            new_insights=new_insights,
            started_at=cached.created_at or started_at,
            ended_at=self._clock(),
        )
        self.episodes.append(episode)
        self._record_accuracy(resolved.context_hash, resolved.accuracy)

        logger.info(
            f"Learned from {cached.decision_id}: reward {signal.reward:+.2f}, "
            f"{len(updated_ids)} policies updated, {len(new_insights)} new insights"
        )
        self._emit(LearningCompleted(
            player_id=cached.player_id,
            decision_id=cached.decision_id,
            accuracy=resolved.accuracy,
            reward=signal.reward,
            policies_updated=len(updated_ids),
            new_insights=len(new_insights),
            learning_value=resolved.learning_value,
        ))
        return OutcomeResult(
            reward=signal.reward,
            policies_updated=tuple(updated_ids),
            new_insights=new_insights,
            next_recommendations=tuple(next_recommendations(resolved.context_hash, resolved)),
            applied=True,
        )

    def _record_accuracy(self, context_type: str, accuracy: float) -> None:
        with self._metrics_lock:
            if self._overall_accuracy is None:
                self._overall_accuracy = accuracy
            else:
                self._overall_accuracy = (self._overall_accuracy * OVERALL_ACCURACY_SMOOTHING
                                          + accuracy * (1 - OVERALL_ACCURACY_SMOOTHING))
            previous = self._accuracy_by_context.get(context_type)
            if previous is None:
                self._accuracy_by_context[context_type] = accuracy
            else:
                self._accuracy_by_context[context_type] = (previous * CONTEXT_ACCURACY_SMOOTHING
                                                           + accuracy * (1 - CONTEXT_ACCURACY_SMOOTHING))

    # ------------------------------------------------------------------
    # Continuous learning cycle
    # ------------------------------------------------------------------

    def run_learning_cycle(self) -> Optional[LearningCycleReport]:
        """
        Refresh learning velocity from recent episodes and slow down
        mature policies that have not converged.

        Returns None if another cycle is already running.
        """
        if not self._cycle_lock.acquire(blocking=False):
            logger.info("Learning cycle already running; skipping")
            return None
        try:
            cfg = self.config
            recent = self.episodes.recent(cfg.learning_cycle_window)
            average = sum(e.accuracy for e in recent) / len(recent) if recent else None

            with self._metrics_lock:
                if average is not None:
                    previous = self._learning_velocity or 0.0
                    self._learning_velocity = (
                        previous * VELOCITY_SMOOTHING
                        + (average - cfg.velocity_baseline) * VELOCITY_SCALE * (1 - VELOCITY_SMOOTHING)
                    )
                velocity = self._learning_velocity

            decayed = []
            for policy_id in self.store.ids():
                with self.store.lock_for(policy_id):
                    policy = self.store.peek(policy_id)
                    if (policy.training_episodes > cfg.mature_policy_episodes
                            and policy.convergence_rate < cfg.convergence_target):
                        self.store.replace(replace(policy, learning_rate=policy.learning_rate * cfg.learning_rate_decay))
                        decayed.append(policy_id)

            logger.info(
                f"Learning cycle: {len(recent)} episodes, velocity {velocity}, "
                f"{len(decayed)} learning rates decayed"
            )
            return LearningCycleReport(
                episodes_scanned=len(recent),
                average_accuracy=average,
                learning_velocity=velocity,
                policies_decayed=tuple(decayed),
            )
        finally:
            self._cycle_lock.release()

    def _cycle_loop(self) -> None:
        while not self._stop_event.wait(self.config.learning_cycle_interval):
            try:
                self.run_learning_cycle()
            except Exception:
                logger.exception("Learning cycle failed")

    def start(self) -> "DecisionEngine":
        """Run the learning cycle every learning_cycle_interval seconds."""
        if self._cycle_thread is not None and self._cycle_thread.is_alive():
            return self
        self._stop_event.clear()
        self._cycle_thread = threading.Thread(target=self._cycle_loop, name="fde-learning-cycle", daemon=True)
        self._cycle_thread.start()
        logger.info(f"Learning cycle started (every {self.config.learning_cycle_interval:.0f}s)")
        return self

    def shutdown(self, timeout: Optional[float] = None) -> None:
        """Stop the background learning cycle."""
        self._stop_event.set()
        if self._cycle_thread is not None:
            self._cycle_thread.join(timeout)
            self._cycle_thread = None
            logger.info("Learning cycle stopped")

    def __enter__(self) -> "DecisionEngine":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def register_policy(self, policy: ContextualPolicy) -> None:
        self.store.register(policy)

    def retire_policy(self, policy_id: str) -> ContextualPolicy:
        return self.store.retire(policy_id)

    def get_policy(self, policy_id: str) -> Optional[ContextualPolicy]:
        return self.store.get(policy_id)

    def get_insights(self, context_type: Optional[str] = None) -> List[ContextualInsight]:
        return self.insights.all(context_type)

    def get_system_performance(self) -> SystemPerformance:
        active = [p for p in self.store.snapshot() if not p.retired]
        top = sorted(active, key=lambda p: p.contextual_accuracy, reverse=True)[:TOP_POLICY_COUNT]
        with self._metrics_lock:
            overall = self._overall_accuracy
            velocity = self._learning_velocity
            by_context = dict(self._accuracy_by_context)
        return SystemPerformance(
            overall_accuracy=overall,
            active_policies=len(active),
            learning_episodes=self.episodes.total_recorded,
            learning_velocity=velocity,
            top_policies=tuple(
                {
                    "id": p.id,
                    "name": p.name,
                    "contextualAccuracy": p.contextual_accuracy,
                    "successRate": p.success_rate,
                    "trainingEpisodes": p.training_episodes,
                }
                for p in top
            ),
            contextual_insights=len(self.insights),
            accuracy_by_context=by_context,
        )

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def add_observer(self, observer: Observer) -> None:
        with self._observers_lock:
            self._observers.append(observer)

    def remove_observer(self, observer: Observer) -> None:
        with self._observers_lock:
            if observer in self._observers:
                self._observers.remove(observer)

    def _emit(self, event: Any) -> None:
        with self._observers_lock:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(event)
            except Exception:
                logger.exception(f"Observer {observer!r} failed handling {event.name}")
