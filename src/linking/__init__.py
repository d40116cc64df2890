"""Idempotent linking of candidates to topics and mirror reconciliation."""

from src.linking.coordinator import (
    LinkCoordinator,
    build_link_request,
    synthesize_linked_item,
)
from src.linking.metrics import LinkingMetrics
from src.linking.models import (
    BatchReport,
    LinkFailureKind,
    LinkOutcome,
    LinkOutcomeKind,
)
from src.linking.orchestrator import BatchOrchestrator, BatchResult
from src.linking.reconciler import (
    LinkedItemsMirror,
    MirrorState,
    RefreshError,
    fold_outcomes,
    load,
    refresh,
    unlink,
)
from src.linking.state_machine import (
    BatchState,
    BatchStateMachine,
    LinkAttemptState,
    LinkAttemptStateMachine,
    StateTransitionError,
)


__all__ = [
    "BatchOrchestrator",
    "BatchReport",
    "BatchResult",
    "BatchState",
    "BatchStateMachine",
    "LinkAttemptState",
    "LinkAttemptStateMachine",
    "LinkCoordinator",
    "LinkFailureKind",
    "LinkOutcome",
    "LinkOutcomeKind",
    "LinkedItemsMirror",
    "LinkingMetrics",
    "MirrorState",
    "RefreshError",
    "StateTransitionError",
    "build_link_request",
    "fold_outcomes",
    "load",
    "refresh",
    "synthesize_linked_item",
    "unlink",
]
