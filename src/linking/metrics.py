"""Metrics for link attempts and batch runs."""

from dataclasses import dataclass
from typing import ClassVar

from src.linking.models import LinkFailureKind, LinkOutcome, LinkOutcomeKind


@dataclass
class LinkingMetrics:
    """Metrics for linking operations.

    Tracks outcome counts, forced retries, and refresh health.
    """

    _instance: ClassVar["LinkingMetrics | None"] = None

    attempts_total: int = 0
    created_total: int = 0
    already_linked_total: int = 0
    forced_retries_total: int = 0
    failed_transient_total: int = 0
    failed_schema_total: int = 0
    failed_conflict_total: int = 0
    batches_total: int = 0
    refresh_failures_total: int = 0
    stale_refreshes_total: int = 0
    enrich_failures_total: int = 0

    @classmethod
    def get_instance(cls) -> "LinkingMetrics":
        """Get or create the singleton instance.

        Returns:
            LinkingMetrics instance.
        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance for testing."""
        cls._instance = None

    def record_outcome(self, outcome: LinkOutcome) -> None:
        """Record the result of one link attempt.

        Args:
            outcome: Completed link outcome.
        """
        self.attempts_total += 1
        if outcome.attempts > 1:
            self.forced_retries_total += 1

        if outcome.kind == LinkOutcomeKind.CREATED:
            self.created_total += 1
        elif outcome.kind == LinkOutcomeKind.FAILED:
            if outcome.failure == LinkFailureKind.SCHEMA:
                self.failed_schema_total += 1
            elif outcome.failure == LinkFailureKind.CONFLICT:
                self.failed_conflict_total += 1
            else:
                self.failed_transient_total += 1
        else:
            self.already_linked_total += 1

    def record_batch(self) -> None:
        """Record a started batch."""
        self.batches_total += 1

    def record_refresh_failure(self) -> None:
        """Record a failed authoritative refresh."""
        self.refresh_failures_total += 1

    def record_stale_refresh(self) -> None:
        """Record a refresh discarded because a newer batch started."""
        self.stale_refreshes_total += 1

    def record_enrich_failure(self) -> None:
        """Record a failed enrichment call."""
        self.enrich_failures_total += 1

    def to_dict(self) -> dict[str, int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric values.
        """
        return {
            "attempts_total": self.attempts_total,
            "created_total": self.created_total,
            "already_linked_total": self.already_linked_total,
            "forced_retries_total": self.forced_retries_total,
            "failed_transient_total": self.failed_transient_total,
            "failed_schema_total": self.failed_schema_total,
            "failed_conflict_total": self.failed_conflict_total,
            "batches_total": self.batches_total,
            "refresh_failures_total": self.refresh_failures_total,
            "stale_refreshes_total": self.stale_refreshes_total,
            "enrich_failures_total": self.enrich_failures_total,
        }
