"""
Insight mining for the Fantasy Decision Engine.

Watches resolved decisions for surprising results and keeps one
ContextualInsight per (context type, trigger), revalidating it as the
same pattern recurs.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from .classifier import ContextClassifier, context_hash
from .config import INSIGHT_CONFIDENCE_CEILING, INSIGHT_EXAMPLE_LIMIT, EngineConfig
from .models import (
    ContextualInsight,
    DecisionOutcome,
    GameContext,
    InsightRecommendation,
    InsightTrigger,
    PlayerDecision,
)

logger = logging.getLogger(__name__)


InsightKey = Tuple[str, InsightTrigger]

# Initial (confidence, applicability) per trigger
TRIGGER_DEFAULTS: Dict[InsightTrigger, Tuple[float, float]] = {
    InsightTrigger.CONFIDENCE_MISCALIBRATION: (0.85, 0.7),
    InsightTrigger.LARGE_ERROR: (0.75, 0.8),
}

REVALIDATION_STEP = 0.1


class InsightSet:
    """Thread-safe collection of insights keyed by (context type, trigger)."""

    def __init__(self):
        self._lock = threading.RLock()
        self._insights: Dict[InsightKey, ContextualInsight] = {}

    def get(self, key: InsightKey) -> Optional[ContextualInsight]:
        with self._lock:
            return self._insights.get(key)

    def upsert(self, key: InsightKey,
               create: Callable[[], ContextualInsight],
               revalidate: Callable[[ContextualInsight], ContextualInsight]) -> Tuple[ContextualInsight, bool]:
        """
        Create the insight for key, or replace it with a revalidated copy.

        Returns:
            (insight, created)
        """
        with self._lock:
            existing = self._insights.get(key)
            insight = create() if existing is None else revalidate(existing)
            self._insights[key] = insight
            return insight, existing is None

    def all(self, context_type: Optional[str] = None) -> List[ContextualInsight]:
        """Insights, optionally for one context type, highest confidence first."""
        with self._lock:
            insights = list(self._insights.values())
        if context_type is not None:
            insights = [i for i in insights if i.context_type == context_type]
        return sorted(insights, key=lambda i: i.confidence, reverse=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._insights)


class InsightMiner:
    """
    Detect confidence miscalibration and large projection errors.

    Both triggers may fire for the same outcome.
    """

    def __init__(self, insights: Optional[InsightSet] = None,
                 config: Optional[EngineConfig] = None,
                 clock: Optional[Callable[[], datetime]] = None,
                 classifier: Optional[ContextClassifier] = None):
        self.insights = insights if insights is not None else InsightSet()
        self.config = config or EngineConfig()
        self._clock = clock or datetime.now
        self.classifier = classifier or ContextClassifier()

    def mine(self, decision: PlayerDecision, outcome: DecisionOutcome,
             context: GameContext) -> List[ContextualInsight]:
        """
        Return every insight created or revalidated by this outcome.

        The bucket is the outcome's context hash, then the decision's;
        when neither carries one the context is classified here.
        """
        cfg = self.config
        context_type = (outcome.context_hash or decision.context_hash
                        or context_hash(self.classifier.classify(context)))
        expected = decision.expected_value
        error = None if expected is None else outcome.actual_points - expected
        touched = []

        if outcome.accuracy > cfg.miscalibration_accuracy and decision.confidence < cfg.miscalibration_confidence:
            touched.append(self._record(
                context_type, InsightTrigger.CONFIDENCE_MISCALIBRATION,
                impact=error, example_id=outcome.decision_id, success=True,
            ))

        if error is not None and abs(error) > cfg.large_error_threshold:
            touched.append(self._record(
                context_type, InsightTrigger.LARGE_ERROR,
                impact=abs(error), example_id=outcome.decision_id, success=False,
            ))

        return touched

    def _record(self, context_type: str, trigger: InsightTrigger,
                impact: Optional[float], example_id: str, success: bool) -> ContextualInsight:
        now = self._clock()

        def create() -> ContextualInsight:
            confidence, applicability = TRIGGER_DEFAULTS[trigger]
            return ContextualInsight(
                insight_id=f"insight_{trigger.value}_{context_type}",
                context_type=context_type,
                trigger=trigger,
                insight=_insight_text(trigger, context_type),
                confidence=confidence,
                applicability_score=applicability,
                average_impact=impact,
                impact_samples=0 if impact is None else 1,
                success_examples=(example_id,) if success else (),
                failure_examples=() if success else (example_id,),
                recommendations=(_insight_recommendation(trigger, context_type),),
                discovered_at=now,
                last_validated=now,
            )

        def revalidate(existing: ContextualInsight) -> ContextualInsight:
            average, samples = existing.average_impact, existing.impact_samples
            if impact is not None:
                average = impact if average is None else (average * samples + impact) / (samples + 1)
                samples += 1
            confidence = existing.confidence + (INSIGHT_CONFIDENCE_CEILING - existing.confidence) * REVALIDATION_STEP
            if success:
                examples = {"success_examples": (existing.success_examples + (example_id,))[-INSIGHT_EXAMPLE_LIMIT:]}
            else:
                examples = {"failure_examples": (existing.failure_examples + (example_id,))[-INSIGHT_EXAMPLE_LIMIT:]}
            return replace(
                existing,
                confidence=confidence,
                episode_count=existing.episode_count + 1,
                validation_count=existing.validation_count + 1,
                average_impact=average,
                impact_samples=samples,
                last_validated=now,
                **examples,
            )

        insight, created = self.insights.upsert((context_type, trigger), create, revalidate)
        if created:
            logger.info(f"New insight {insight.insight_id}: {insight.insight}")
        else:
            logger.info(f"Revalidated {insight.insight_id} (x{insight.validation_count})")
        return insight


def _insight_text(trigger: InsightTrigger, context_type: str) -> str:
    if trigger is InsightTrigger.CONFIDENCE_MISCALIBRATION:
        return f"Unexpectedly high accuracy in {context_type} context suggests opportunity for confidence calibration"
    return f"Large projection error in {context_type} suggests need for context-specific adjustment"


def _insight_recommendation(trigger: InsightTrigger, context_type: str) -> InsightRecommendation:
    if trigger is InsightTrigger.CONFIDENCE_MISCALIBRATION:
        return InsightRecommendation(
            action="Increase confidence thresholds for similar contexts",
            conditions=(f"{context_type} context", "Multiple confirming factors"),
            expected_improvement=0.15,
            risk_factors=("Overconfidence in limited sample",),
        )
    return InsightRecommendation(
        action="Calibrate projection models for this context type",
        conditions=(f"{context_type} scenarios",),
        expected_improvement=0.2,
        risk_factors=("Context-specific overfitting",),
    )


def next_recommendations(context_hash: str, outcome: DecisionOutcome) -> List[str]:
    """Follow-up guidance after an outcome is learned from."""
    recommendations = []
    if outcome.accuracy > 0.85:
        recommendations.append("Apply similar analysis to comparable contexts")
        recommendations.append("Increase confidence in similar future decisions")
    elif outcome.accuracy < 0.6:
        recommendations.append("Review contextual factors that led to inaccuracy")
        recommendations.append("Consider alternative approaches for this context type")
    recommendations.append(f"Continue learning from {context_hash} scenarios")
    recommendations.append("Monitor for pattern consistency across multiple episodes")
    return recommendations
