"""
Fantasy Decision Engine
Contextual start/sit recommendations that learn from real outcomes.
"""

__version__ = "1.0.0"

from .models import (
    GameContext, ContextualPolicy, ContextualWeights, PlayerDecision,
    DecisionOutcome, RewardSignal, LearningEpisode, ContextualInsight,
    InsightRecommendation, RiskLevel, InsightTrigger, DecisionResult,
    OutcomeResult, SystemPerformance, LearningCycleReport,
    DecisionProcessed, LearningCompleted,
)
from .config import EngineConfig, get_config
from .classifier import ContextClassifier, context_hash, to_state_vector
from .policies import (
    DecisionEngineError, PolicyConfigurationError, PolicyStore,
    PolicySelector, validate_policy,
)
from .synthesizer import RecommendationSynthesizer, extract_contextual_factors, risk_level_for
from .learner import RewardCalculator, PolicyUpdater
from .insights import InsightMiner, InsightSet, next_recommendations
from .episodes import EpisodeLog, detect_context_patterns
from .engine import DecisionEngine
from .seed_data import seed_policies

__all__ = [
    # Models
    "GameContext", "ContextualPolicy", "ContextualWeights", "PlayerDecision",
    "DecisionOutcome", "RewardSignal", "LearningEpisode", "ContextualInsight",
    "InsightRecommendation", "RiskLevel", "InsightTrigger", "DecisionResult",
    "OutcomeResult", "SystemPerformance", "LearningCycleReport",
    "DecisionProcessed", "LearningCompleted",
    # Config
    "EngineConfig", "get_config",
    # Errors
    "DecisionEngineError", "PolicyConfigurationError",
    # Components
    "ContextClassifier", "PolicyStore", "PolicySelector",
    "RecommendationSynthesizer", "RewardCalculator", "PolicyUpdater",
    "InsightMiner", "InsightSet", "EpisodeLog", "DecisionEngine",
    # Functions
    "context_hash", "to_state_vector", "validate_policy",
    "extract_contextual_factors", "risk_level_for", "next_recommendations",
    "detect_context_patterns", "seed_policies",
]
