"""Candidate source aggregator with per-source failure isolation."""

import asyncio
from collections.abc import Collection, Iterable, Mapping

import structlog

from src.sources.constants import MIN_AI_CONFIDENCE
from src.sources.errors import ProviderError
from src.sources.metrics import AggregatorMetrics
from src.sources.models import (
    AggregationResult,
    CandidateItem,
    CandidateKey,
    ProviderResult,
    SearchRequest,
    SourceWarning,
)
from src.sources.provider import SourceProvider


logger = structlog.get_logger()


def tag_already_linked(
    items: Iterable[CandidateItem],
    linked_keys: Collection[CandidateKey],
) -> list[CandidateItem]:
    """Set already_linked on candidates present in the linked set.

    Args:
        items: Candidates to tag.
        linked_keys: (source, external_id) keys linked to the active topic.

    Returns:
        Tagged candidates in input order.
    """
    return [item.tagged(item.key in linked_keys) for item in items]


def select_confident(
    items: Iterable[CandidateItem],
    min_confidence: float = MIN_AI_CONFIDENCE,
) -> list[CandidateItem]:
    """Pick linkable candidates scored at or above the confidence threshold.

    Unscored candidates are never auto-selected.

    Args:
        items: Candidates to choose from.
        min_confidence: Inclusive relevance threshold.

    Returns:
        Selected candidates in input order.
    """
    return [
        item
        for item in items
        if not item.already_linked
        and item.ai_confidence is not None
        and item.ai_confidence >= min_confidence
    ]


class CandidateAggregator:
    """Merges results from several source providers into one list.

    Provides:
    - Concurrent fan-out to every enabled source
    - Failure isolation (one source failing doesn't stop others)
    - Tagging of candidates already linked to the active topic
    """

    def __init__(
        self,
        providers: Mapping[str, SourceProvider] | Iterable[SourceProvider],
        metrics: AggregatorMetrics | None = None,
    ) -> None:
        """Initialize the aggregator.

        Args:
            providers: Providers keyed by source, or an iterable of providers.
            metrics: Optional metrics instance for dependency injection.
        """
        if isinstance(providers, Mapping):
            self._providers = dict(providers)
        else:
            self._providers = {p.source: p for p in providers}
        self._metrics = metrics or AggregatorMetrics.get_instance()
        self._log = logger.bind(component="aggregator")

    @property
    def sources(self) -> list[str]:
        """Get the sources this aggregator can search."""
        return list(self._providers)

    async def search(
        self,
        request: SearchRequest,
        linked_keys: Collection[CandidateKey] = frozenset(),
    ) -> AggregationResult:
        """Search every enabled source and tag already-linked candidates.

        Zero results is a valid outcome; nothing is raised for failed
        sources.

        Args:
            request: Search request.
            linked_keys: Keys linked to the active topic (from the mirror).

        Returns:
            AggregationResult with items in source order and warnings.
        """
        log = self._log.bind(query_length=len(request.query))
        log.info("search_started", sources=request.sources)

        enabled = [s for s in dict.fromkeys(request.sources) if s in self._providers]
        warnings = [
            SourceWarning(source=s, message=f"Unsupported source: {s}")
            for s in dict.fromkeys(request.sources)
            if s not in self._providers
        ]

        outcomes = await asyncio.gather(
            *(self._search_one(source, request) for source in enabled)
        )

        items: list[CandidateItem] = []
        accounts: dict[str, list[dict[str, object]]] = {}
        for outcome in outcomes:
            if isinstance(outcome, SourceWarning):
                warnings.append(outcome)
                continue
            items.extend(outcome.items)
            for kind, entries in outcome.accounts.items():
                accounts.setdefault(kind, [])
                for entry in entries:
                    if entry not in accounts[kind]:
                        accounts[kind].append(entry)

        tagged = tag_already_linked(items, linked_keys)
        already_linked = sum(1 for item in tagged if item.already_linked)
        self._metrics.record_search(len(tagged), already_linked)

        log.info(
            "search_complete",
            sources_searched=len(enabled),
            sources_failed=len(warnings),
            candidates=len(tagged),
            already_linked=already_linked,
        )

        return AggregationResult(items=tagged, warnings=warnings, accounts=accounts)

    async def _search_one(
        self,
        source: str,
        request: SearchRequest,
    ) -> ProviderResult | SourceWarning:
        """Search a single source, converting failures into a warning.

        Args:
            source: Source to search.
            request: Search request.

        Returns:
            ProviderResult on success, SourceWarning on failure.
        """
        provider = self._providers[source]
        try:
            return await provider.search(request.for_source(source))
        except ProviderError as e:
            self._metrics.record_source_failure(source)
            self._log.warning("source_search_failed", **e.to_dict())
            return e.to_warning()
        except Exception as e:  # noqa: BLE001
            self._metrics.record_source_failure(source)
            self._log.error("source_execution_error", source=source, error=str(e))
            return SourceWarning(source=source, message=f"Execution error: {e}")
