"""Data models for link attempts and batch runs."""

from dataclasses import dataclass, field
from enum import Enum

from src.sources.models import CandidateKey
from src.topic_store.models import LinkedItem


class LinkOutcomeKind(str, Enum):
    """Result of one link attempt.

    - CREATED: the store accepted a new link
    - ALREADY_LINKED_SAME_TOPIC: the topic already had the item
    - ALREADY_LINKED_OTHER_TOPIC: linked elsewhere; resolved by a forced link
    - FAILED: the attempt did not produce a link
    """

    CREATED = "created"
    ALREADY_LINKED_SAME_TOPIC = "already_linked_same_topic"
    ALREADY_LINKED_OTHER_TOPIC = "already_linked_other_topic"
    FAILED = "failed"


class LinkFailureKind(str, Enum):
    """Why a link attempt failed.

    - SCHEMA: the store reported a constraint or schema problem
    - TRANSIENT: network or server error; retrying later may succeed
    - CONFLICT: the forced retry conflicted again
    """

    SCHEMA = "schema"
    TRANSIENT = "transient"
    CONFLICT = "conflict"


@dataclass(frozen=True)
class LinkOutcome:
    """Transient result of one link attempt.

    Attributes:
        kind: Outcome classification.
        candidate_key: (source, external_id) of the candidate.
        topic_id: Target topic.
        item: Resulting linked item; None when the mirror already had it
            or the attempt failed.
        created: Whether the store created a new link row.
        attempts: Number of store calls made (1 or 2).
        failure: Failure classification (FAILED only).
        error: Error message (FAILED only).
    """

    kind: LinkOutcomeKind
    candidate_key: CandidateKey
    topic_id: str
    item: LinkedItem | None = None
    created: bool = False
    attempts: int = 1
    failure: LinkFailureKind | None = None
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        """Check whether the candidate ended linked to the topic."""
        return self.kind != LinkOutcomeKind.FAILED

    @property
    def is_schema_error(self) -> bool:
        """Check whether the failure was a constraint/schema problem."""
        return self.failure == LinkFailureKind.SCHEMA


@dataclass(frozen=True)
class BatchReport:
    """Summary of one batch run, the only thing surfaced to the caller.

    Attributes:
        linked: Candidates newly linked.
        already_linked: Candidates that were already linked somewhere.
        failed: Candidates that did not end up linked.
        resolved_keys: Keys of candidates that ended non-failed.
        schema_error: Whether any failure was a constraint/schema problem.
        refresh_failed: Whether the authoritative refresh failed.
    """

    linked: int = 0
    already_linked: int = 0
    failed: int = 0
    resolved_keys: frozenset[CandidateKey] = field(default_factory=frozenset)
    schema_error: bool = False
    refresh_failed: bool = False

    @property
    def total(self) -> int:
        """Get number of candidates processed."""
        return self.linked + self.already_linked + self.failed

    @classmethod
    def from_outcomes(
        cls,
        outcomes: list[LinkOutcome],
        refresh_failed: bool = False,
    ) -> "BatchReport":
        """Reduce link outcomes to a report.

        A forced cross-topic link counts as already_linked: the item was
        linked before the batch, only under a different topic.

        Args:
            outcomes: Outcomes in attempt order.
            refresh_failed: Whether the authoritative refresh failed.

        Returns:
            BatchReport with counts and resolved keys.
        """
        linked = sum(1 for o in outcomes if o.kind == LinkOutcomeKind.CREATED)
        failed = sum(1 for o in outcomes if o.kind == LinkOutcomeKind.FAILED)
        return cls(
            linked=linked,
            already_linked=len(outcomes) - linked - failed,
            failed=failed,
            resolved_keys=frozenset(o.candidate_key for o in outcomes if o.succeeded),
            schema_error=any(o.is_schema_error for o in outcomes),
            refresh_failed=refresh_failed,
        )

    def to_dict(self) -> dict[str, object]:
        """Convert to JSON-serializable dictionary.

        Returns:
            Dictionary with counts, sorted resolved keys, and flags.
        """
        return {
            "linked": self.linked,
            "already_linked": self.already_linked,
            "failed": self.failed,
            "resolved_keys": [list(k) for k in sorted(self.resolved_keys)],
            "schema_error": self.schema_error,
            "refresh_failed": self.refresh_failed,
        }
