"""Tests for the batch orchestrator."""

import asyncio
import json
from collections.abc import Callable, Iterable
from unittest.mock import AsyncMock

import httpx
import pytest

from src.linking.coordinator import build_link_request
from src.linking.metrics import LinkingMetrics
from src.linking.models import LinkFailureKind, LinkOutcomeKind
from src.linking.orchestrator import BatchOrchestrator, BatchResult
from src.linking.reconciler import MirrorState
from src.linking.state_machine import BatchState
from src.sources.models import CandidateItem
from src.topic_store.client import HttpTopicStore
from src.topic_store.models import LinkedItem
from tests.helpers.stores import FlakyTopicStore, make_candidate


TOPIC = "topic-1"


def run_batch(
    orchestrator: BatchOrchestrator,
    candidates: Iterable[CandidateItem],
    topic_id: str = TOPIC,
) -> BatchResult:
    """Run a batch and wait for its background enrichment."""

    async def go() -> BatchResult:
        result = await orchestrator.run(candidates, topic_id)
        await orchestrator.wait_for_background()
        return result

    return asyncio.run(go())


def candidates(count: int) -> list[CandidateItem]:
    """Build candidates c-1..c-N, most recent first."""
    return [make_candidate(f"c-{n}", hours=n) for n in range(1, count + 1)]


def build(
    store: object,
    state: MirrorState | None = None,
    enricher: object | None = None,
) -> tuple[BatchOrchestrator, MirrorState, LinkingMetrics]:
    """Build an orchestrator with isolated metrics."""
    metrics = LinkingMetrics()
    state = state or MirrorState(metrics=metrics)
    orchestrator = BatchOrchestrator(
        store,  # type: ignore[arg-type]
        state,
        enricher=enricher,  # type: ignore[arg-type]
        metrics=metrics,
    )
    return orchestrator, state, metrics


class TestBatchOrchestrator:
    """Tests for BatchOrchestrator.run."""

    @pytest.mark.unit
    def test_all_created(self) -> None:
        """Test a clean batch."""
        store = FlakyTopicStore()
        orchestrator, state, metrics = build(store, enricher=store)

        result = run_batch(orchestrator, candidates(3))

        assert result.report.to_dict()["linked"] == 3
        assert result.state == BatchState.DONE
        assert result.committed
        assert result.batch_id == f"batch-{result.seq}"
        assert [i.external_id for i in result.mirror.items] == ["c-1", "c-2", "c-3"]
        assert state.get(TOPIC) == result.mirror
        assert store.enrich_calls == [TOPIC]
        assert metrics.batches_total == 1

    @pytest.mark.unit
    def test_partial_failure_does_not_abort(self) -> None:
        """Test that one transient failure leaves the other four linked."""
        store = FlakyTopicStore()
        store.fail_external_ids = {"c-3"}
        orchestrator, _, metrics = build(store, enricher=store)

        result = run_batch(orchestrator, candidates(5))

        report = result.report
        assert (report.linked, report.already_linked, report.failed) == (4, 0, 1)
        assert ("gmail", "c-3") not in report.resolved_keys
        assert len(report.resolved_keys) == 4
        assert not report.schema_error
        assert [c.external_id for c in store.create_calls] == [
            "c-1",
            "c-2",
            "c-3",
            "c-4",
            "c-5",
        ]
        assert result.mirror.keys() == report.resolved_keys
        assert metrics.failed_transient_total == 1

    @pytest.mark.unit
    def test_schema_error_flagged(self) -> None:
        """Test that a constraint error is surfaced in the report."""
        store = FlakyTopicStore()
        store.constraint_external_ids = {"c-2"}
        orchestrator, _, _ = build(store)

        result = run_batch(orchestrator, candidates(2))

        assert result.report.schema_error
        assert result.report.failed == 1
        failed = [o for o in result.outcomes if not o.succeeded]
        assert failed[0].failure == LinkFailureKind.SCHEMA

    @pytest.mark.unit
    def test_unexpected_error_is_isolated(self) -> None:
        """Test that an unexpected exception becomes a failed outcome."""
        store = AsyncMock()
        store.create_link.side_effect = RuntimeError("bug")
        store.list_links.return_value = []
        orchestrator, _, _ = build(store)

        result = run_batch(orchestrator, candidates(2))

        assert result.report.failed == 2
        assert all(o.failure == LinkFailureKind.TRANSIENT for o in result.outcomes)
        assert result.state == BatchState.DONE

    @pytest.mark.unit
    def test_refresh_failure_keeps_local_state(self) -> None:
        """Test that a failed refresh ends in DONE_REFRESH_FAILED."""
        store = FlakyTopicStore()
        store.fail_list = True
        orchestrator, state, metrics = build(store)

        result = run_batch(orchestrator, candidates(2))

        assert result.state == BatchState.DONE_REFRESH_FAILED
        assert result.report.refresh_failed
        assert result.report.linked == 2
        assert result.mirror.keys() == {("gmail", "c-1"), ("gmail", "c-2")}
        assert state.get(TOPIC) == result.mirror
        assert metrics.refresh_failures_total == 1

    @pytest.mark.unit
    def test_enrichment_failure_does_not_affect_report(self) -> None:
        """Test that enrichment is fire-and-forget."""
        store = FlakyTopicStore()
        store.fail_enrich = True
        orchestrator, _, metrics = build(store, enricher=store)

        result = run_batch(orchestrator, candidates(1))

        assert result.report.linked == 1
        assert result.report.failed == 0
        assert metrics.enrich_failures_total == 1

    @pytest.mark.unit
    def test_no_enrichment_without_new_links(self) -> None:
        """Test that enrichment only follows newly created links."""
        store = FlakyTopicStore()
        orchestrator, _, _ = build(store, enricher=store)
        run_batch(orchestrator, candidates(1))

        again = run_batch(orchestrator, candidates(1))

        assert again.report.already_linked == 1
        assert store.enrich_calls == [TOPIC]

    @pytest.mark.unit
    def test_synthesized_entry_replaced_by_refresh(self) -> None:
        """Test that a mirror gap is filled, then replaced by the stored item."""
        store = FlakyTopicStore()
        candidate = make_candidate("c-1")
        asyncio.run(store.create_link(build_link_request(candidate, TOPIC)))
        orchestrator, state, _ = build(store)

        result = run_batch(orchestrator, [candidate])

        outcome = result.outcomes[0]
        assert outcome.kind == LinkOutcomeKind.ALREADY_LINKED_SAME_TOPIC
        assert outcome.item is not None
        assert outcome.item.synthesized
        assert result.mirror.synthesized_count == 0
        assert result.mirror.set_equal(asyncio.run(store.list_links(TOPIC)))

    @pytest.mark.unit
    def test_duplicate_in_batch_uses_running_mirror(self) -> None:
        """Test that a repeat within one batch sees the first link."""
        store = FlakyTopicStore()
        orchestrator, _, _ = build(store)
        candidate = make_candidate("c-1")

        result = run_batch(orchestrator, [candidate, candidate])

        assert [o.kind for o in result.outcomes] == [
            LinkOutcomeKind.CREATED,
            LinkOutcomeKind.ALREADY_LINKED_SAME_TOPIC,
        ]
        assert result.outcomes[1].item is None
        assert len(store.all_items()) == 1

    @pytest.mark.unit
    def test_empty_batch(self) -> None:
        """Test that an empty selection still refreshes."""
        store = FlakyTopicStore()
        orchestrator, _, _ = build(store, enricher=store)

        result = run_batch(orchestrator, [])

        assert result.report.total == 0
        assert result.state == BatchState.DONE
        assert store.enrich_calls == []


class NewerBatchDuringRefresh(FlakyTopicStore):
    """Store that starts a newer batch while a refresh is in flight."""

    def __init__(self, state: MirrorState) -> None:
        super().__init__()
        self._state = state

    async def list_links(self, topic_id: str) -> list[LinkedItem]:
        self._state.begin_batch(topic_id)
        return await super().list_links(topic_id)


class TestStaleRefresh:
    """Tests for the stale refresh guard."""

    @pytest.mark.unit
    def test_older_refresh_does_not_overwrite(self) -> None:
        """Test that a superseded batch's refresh is discarded."""
        metrics = LinkingMetrics()
        state = MirrorState(metrics=metrics)
        store = NewerBatchDuringRefresh(state)
        orchestrator = BatchOrchestrator(store, state, metrics=metrics)

        result = run_batch(orchestrator, candidates(1))

        assert result.stale
        assert result.state == BatchState.DONE
        assert metrics.stale_refreshes_total == 1
        assert state.get(TOPIC).keys() == {("gmail", "c-1")}


def run_over_http(
    handler: Callable[[httpx.Request], httpx.Response],
    selection: list[CandidateItem],
) -> tuple[BatchResult, MirrorState]:
    """Run a batch against HttpTopicStore over a mock transport."""

    async def go() -> tuple[BatchResult, MirrorState]:
        metrics = LinkingMetrics()
        state = MirrorState(metrics=metrics)
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            store = HttpTopicStore(client, "https://api.example.com/api")
            orchestrator = BatchOrchestrator(store, state, metrics=metrics)
            result = await orchestrator.run(selection, TOPIC)
        return result, state

    return asyncio.run(go())


class TestMalformedStoreResponses:
    """Tests for batches against a store returning unexpected bodies."""

    @pytest.mark.unit
    def test_non_object_list_entries_end_in_refresh_failed(self) -> None:
        """Test that an unusable list body still yields a report."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"items": ["garbage"]})
            payload = json.loads(request.content)
            return httpx.Response(
                201,
                json={
                    "item": {
                        "id": f"srv-{payload['external_id']}",
                        "source": payload["source"],
                        "external_id": payload["external_id"],
                        "title": payload["title"],
                    }
                },
            )

        result, state = run_over_http(handler, candidates(1))

        assert result.state == BatchState.DONE_REFRESH_FAILED
        assert result.report.refresh_failed
        assert result.report.linked == 1
        assert state.get(TOPIC).keys() == {("gmail", "c-1")}

    @pytest.mark.unit
    def test_non_object_create_echo_counts_as_linked(self) -> None:
        """Test that a 2xx create with a list echo is a created link."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.method == "GET":
                return httpx.Response(200, json={"items": []})
            return httpx.Response(201, json={"item": ["unexpected"]})

        result, _ = run_over_http(handler, candidates(1))

        assert result.report.linked == 1
        assert result.report.failed == 0
        assert result.outcomes[0].kind == LinkOutcomeKind.CREATED
