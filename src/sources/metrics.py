"""Metrics for candidate aggregation."""

from dataclasses import dataclass, field
from typing import ClassVar


@dataclass
class AggregatorMetrics:
    """Metrics for aggregator searches.

    Tracks searches, surfaced candidates, and per-source failures.
    """

    _instance: ClassVar["AggregatorMetrics | None"] = None

    searches_total: int = 0
    candidates_total: int = 0
    already_linked_total: int = 0
    source_failures: dict[str, int] = field(default_factory=dict)

    @classmethod
    def get_instance(cls) -> "AggregatorMetrics":
        """Get or create the singleton instance.

        Returns:
            AggregatorMetrics instance.
        """
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset the singleton instance for testing."""
        cls._instance = None

    def record_search(self, candidates: int, already_linked: int) -> None:
        """Record a completed search.

        Args:
            candidates: Number of candidates returned.
            already_linked: Number tagged as already linked.
        """
        self.searches_total += 1
        self.candidates_total += candidates
        self.already_linked_total += already_linked

    def record_source_failure(self, source: str) -> None:
        """Record a failed source.

        Args:
            source: Source that failed.
        """
        self.source_failures[source] = self.source_failures.get(source, 0) + 1

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric values.
        """
        return {
            "searches_total": self.searches_total,
            "candidates_total": self.candidates_total,
            "already_linked_total": self.already_linked_total,
            "source_failures": dict(sorted(self.source_failures.items())),
        }
