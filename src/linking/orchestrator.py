"""Batch orchestrator: link a selection sequentially, then reconcile."""

import asyncio
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

import structlog

from src.linking.coordinator import LinkCoordinator
from src.linking.metrics import LinkingMetrics
from src.linking.models import (
    BatchReport,
    LinkFailureKind,
    LinkOutcome,
    LinkOutcomeKind,
)
from src.linking.reconciler import (
    LinkedItemsMirror,
    MirrorState,
    RefreshError,
    fold_outcomes,
    refresh,
)
from src.linking.state_machine import BatchState, BatchStateMachine
from src.observability.logging import bind_batch_context, clear_batch_context
from src.sources.models import CandidateItem
from src.topic_store.client import Enricher, TopicStore


logger = structlog.get_logger()


@dataclass
class BatchResult:
    """Result of one batch run.

    Only ``report`` is meant for the user; the rest is for callers that
    render the mirror or inspect individual attempts.
    """

    batch_id: str
    seq: int
    topic_id: str
    report: BatchReport
    mirror: LinkedItemsMirror
    state: BatchState
    committed: bool = True
    outcomes: list[LinkOutcome] = field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def stale(self) -> bool:
        """Check whether a newer batch superseded this one's mirror."""
        return not self.committed


class BatchOrchestrator:
    """Links a user's selection to one topic.

    Provides:
    - Strictly sequential link attempts (one coordinator call at a time)
    - Failure isolation (a failed candidate never aborts the loop)
    - One authoritative refresh after the loop, tolerated if it fails
    - Fire-and-forget enrichment when anything was newly created
    """

    def __init__(  # noqa: PLR0913
        self,
        store: TopicStore,
        state: MirrorState,
        enricher: Enricher | None = None,
        linked_by: str = "user",
        metrics: LinkingMetrics | None = None,
        coordinator: LinkCoordinator | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            store: Topic store used for linking and refreshing.
            state: Holder of the per-topic mirrors.
            enricher: Optional enrichment endpoint.
            linked_by: Value recorded as the link's creator.
            metrics: Optional metrics instance for dependency injection.
            coordinator: Optional coordinator; built from store if omitted.
        """
        self._store = store
        self._state = state
        self._enricher = enricher
        self._metrics = metrics or LinkingMetrics.get_instance()
        self._coordinator = coordinator or LinkCoordinator(
            store, linked_by=linked_by, metrics=self._metrics
        )
        self._background: set[asyncio.Task[None]] = set()
        self._log = logger.bind(component="orchestrator")

    async def run(
        self,
        candidates: Iterable[CandidateItem],
        topic_id: str,
    ) -> BatchResult:
        """Link candidates to a topic and reconcile the mirror.

        Args:
            candidates: Selected candidates, linked in the given order.
            topic_id: Target topic.

        Returns:
            BatchResult with the report and the resulting mirror.
        """
        selection = list(candidates)
        seq = self._state.begin_batch(topic_id)
        batch_id = f"batch-{seq}"
        sm = BatchStateMachine(batch_id)
        start = time.perf_counter()

        bind_batch_context(batch_id, topic_id)
        try:
            sm.to_running()
            self._metrics.record_batch()
            self._log.info("batch_started", candidates=len(selection))

            mirror = self._state.get(topic_id)
            outcomes: list[LinkOutcome] = []
            for candidate in selection:
                outcome = await self._link_one(candidate, topic_id, mirror)
                outcomes.append(outcome)
                mirror = fold_outcomes(mirror, [outcome])

            committed = self._state.commit(seq, mirror)

            sm.to_refreshing()
            refresh_failed = False
            try:
                mirror = await refresh(self._store, topic_id)
            except RefreshError as e:
                refresh_failed = True
                self._metrics.record_refresh_failure()
                self._log.warning("refresh_failed", error=str(e))
                sm.to_done_refresh_failed()
            else:
                committed = self._state.commit(seq, mirror)
                sm.to_done()

            report = BatchReport.from_outcomes(outcomes, refresh_failed=refresh_failed)
            if any(o.created for o in outcomes):
                self._schedule_enrichment(topic_id)

            duration_ms = (time.perf_counter() - start) * 1000
            self._log.info(
                "batch_completed",
                linked=report.linked,
                already_linked=report.already_linked,
                failed=report.failed,
                schema_error=report.schema_error,
                refresh_failed=refresh_failed,
                committed=committed,
                duration_ms=round(duration_ms, 2),
            )
            return BatchResult(
                batch_id=batch_id,
                seq=seq,
                topic_id=topic_id,
                report=report,
                mirror=mirror,
                state=sm.state,
                committed=committed,
                outcomes=outcomes,
                duration_ms=duration_ms,
            )
        finally:
            clear_batch_context()

    async def _link_one(
        self,
        candidate: CandidateItem,
        topic_id: str,
        mirror: LinkedItemsMirror,
    ) -> LinkOutcome:
        """Run the coordinator for one candidate, isolating failures."""
        try:
            return await self._coordinator.link(
                candidate, topic_id, mirror_keys=mirror.keys()
            )
        except Exception as e:  # noqa: BLE001
            self._log.error(
                "link_unexpected_error",
                source=candidate.source,
                external_id=candidate.external_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            outcome = LinkOutcome(
                kind=LinkOutcomeKind.FAILED,
                candidate_key=candidate.key,
                topic_id=topic_id,
                failure=LinkFailureKind.TRANSIENT,
                error=str(e),
            )
            self._metrics.record_outcome(outcome)
            return outcome

    def _schedule_enrichment(self, topic_id: str) -> None:
        if self._enricher is None:
            return
        task = asyncio.create_task(self._enrich(self._enricher, topic_id))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _enrich(self, enricher: Enricher, topic_id: str) -> None:
        try:
            await enricher.enrich(topic_id)
        except Exception as e:  # noqa: BLE001
            self._metrics.record_enrich_failure()
            self._log.warning("enrichment_failed", topic_id=topic_id, error=str(e))
        else:
            self._log.info("enrichment_requested", topic_id=topic_id)

    async def wait_for_background(self) -> None:
        """Wait for pending enrichment calls to finish."""
        if self._background:
            await asyncio.gather(*self._background)
