"""
Policy storage and selection for the Fantasy Decision Engine.
"""

import copy
import logging
import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from .config import CONTEXT_ALIASES, POLICY_FAMILY_KEYWORDS, EngineConfig
from .models import ContextualPolicy

logger = logging.getLogger(__name__)


class DecisionEngineError(ValueError):
    """Base error for the decision engine."""
    pass


class PolicyConfigurationError(DecisionEngineError):
    """A policy definition is internally inconsistent."""
    pass


def bias_matches(bias_key: str, action: str) -> bool:
    """A bias applies to an action when its key is the action or is prefixed by it."""
    return bias_key == action or bias_key.startswith(action + "_")


def canonical_context(name: str) -> str:
    """Resolve a policy context name to the classifier label it stands for."""
    return CONTEXT_ALIASES.get(name, name)


def policy_family(policy: ContextualPolicy) -> str:
    """Family used for reasoning templates and factor attribution."""
    for keyword, family in POLICY_FAMILY_KEYWORDS:
        if keyword in policy.name:
            return family
    return "general"


def validate_policy(policy: ContextualPolicy) -> List[str]:
    """
    Check a policy for internal consistency.

    Returns:
        List of error messages (empty if valid)
    """
    errors = []

    if not policy.id:
        errors.append("policy id must not be empty")
    if not policy.action_space:
        errors.append("action space must not be empty")
    elif len(set(policy.action_space)) != len(policy.action_space):
        errors.append("action space contains duplicate actions")
    if not policy.applicable_contexts:
        errors.append("applicable contexts must not be empty")

    state_space = set(policy.state_space)
    for feature in policy.weights:
        if feature not in state_space:
            errors.append(f"weight '{feature}' is not in the state space")

    for bias_key in policy.biases:
        if not any(bias_matches(bias_key, action) for action in policy.action_space):
            errors.append(f"bias '{bias_key}' matches no action")

    for name in ("discount_factor", "exploration_rate", "success_rate",
                 "contextual_accuracy", "convergence_rate"):
        value = getattr(policy, name)
        if not 0.0 <= value <= 1.0:
            errors.append(f"{name} must be in [0, 1], got {value}")
    if not 0.0 < policy.learning_rate <= 1.0:
        errors.append(f"learning_rate must be in (0, 1], got {policy.learning_rate}")
    if policy.training_episodes < 0:
        errors.append("training_episodes must not be negative")
    if policy.improved_decisions < 0:
        errors.append("improved_decisions must not be negative")

    return errors


class PolicyStore:
    """
    Holds the single authoritative copy of every policy.

    Policies are frozen values; an update swaps the stored reference
    while holding that policy's lock.
    """

    def __init__(self, policies: Optional[Iterable[ContextualPolicy]] = None):
        self._lock = threading.RLock()
        self._policies: Dict[str, ContextualPolicy] = {}
        self._policy_locks: Dict[str, threading.Lock] = {}
        if policies:
            self.register_many(policies)

    def register(self, policy: ContextualPolicy) -> None:
        """Validate and add a policy. Raises PolicyConfigurationError."""
        errors = validate_policy(policy)
        with self._lock:
            if policy.id in self._policies:
                errors.append(f"duplicate policy id '{policy.id}'")
            if errors:
                raise PolicyConfigurationError(f"Invalid policy '{policy.id}': " + "; ".join(errors))
            self._policies[policy.id] = policy
            self._policy_locks[policy.id] = threading.Lock()
        logger.info(f"Registered policy {policy.id} ({len(policy.action_space)} actions)")

    def register_many(self, policies: Iterable[ContextualPolicy]) -> None:
        for policy in policies:
            self.register(policy)

    def get(self, policy_id: str) -> Optional[ContextualPolicy]:
        """Deep copy of a policy, or None if unknown."""
        with self._lock:
            policy = self._policies.get(policy_id)
        return copy.deepcopy(policy) if policy is not None else None

    def peek(self, policy_id: str) -> Optional[ContextualPolicy]:
        """Current reference for read-only use."""
        with self._lock:
            return self._policies.get(policy_id)

    def snapshot(self) -> List[ContextualPolicy]:
        """Current references in registration order, for read-only use."""
        with self._lock:
            return list(self._policies.values())

    def replace(self, policy: ContextualPolicy) -> None:
        """
        Swap in a new value for an existing policy.

        Callers hold lock_for(policy.id) so updates to one policy never interleave.
        """
        with self._lock:
            if policy.id not in self._policies:
                raise KeyError(f"Unknown policy: {policy.id}")
            self._policies[policy.id] = policy

    def lock_for(self, policy_id: str) -> threading.Lock:
        with self._lock:
            return self._policy_locks[policy_id]

    def retire(self, policy_id: str) -> ContextualPolicy:
        """Stop exploring with a policy and exclude it from selection."""
        with self.lock_for(policy_id):
            retired = replace(self._policies[policy_id], exploration_rate=0.0, retired=True)
            self.replace(retired)
        logger.info(f"Retired policy {policy_id}")
        return retired

    def ids(self) -> List[str]:
        with self._lock:
            return list(self._policies)

    def __len__(self) -> int:
        with self._lock:
            return len(self._policies)

    def __contains__(self, policy_id: object) -> bool:
        with self._lock:
            return policy_id in self._policies


class PolicySelector:
    """Pick the most relevant policies for a set of classifier labels."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    @staticmethod
    def is_applicable(policy: ContextualPolicy, labels: Sequence[str]) -> bool:
        wanted = set(labels)
        return any(canonical_context(c) in wanted for c in policy.applicable_contexts)

    def select(self, labels: Sequence[str], store: PolicyStore) -> List[ContextualPolicy]:
        """
        Return at most max_selected_policies applicable, non-retired policies,
        best first by contextual_accuracy * success_rate, then by experience.
        """
        candidates = [
            policy for policy in store.snapshot()
            if not policy.retired and self.is_applicable(policy, labels)
        ]
        candidates.sort(key=lambda p: (-p.selection_score, -p.training_episodes))
        return candidates[:self.config.max_selected_policies]
