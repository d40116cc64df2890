"""Link coordinator: one idempotent link attempt per candidate."""

from collections.abc import Collection

import structlog

from src.linking.metrics import LinkingMetrics
from src.linking.models import LinkFailureKind, LinkOutcome, LinkOutcomeKind
from src.linking.state_machine import LinkAttemptStateMachine
from src.sources.models import CandidateItem, CandidateKey
from src.topic_store.client import TopicStore
from src.topic_store.errors import TopicStoreError
from src.topic_store.models import (
    CreateLinkResponse,
    CreateLinkStatus,
    LinkedItem,
    LinkRequest,
)


logger = structlog.get_logger()

SYNTHESIZED_ID_PREFIX = "local"


def build_link_request(
    candidate: CandidateItem,
    topic_id: str,
    linked_by: str = "user",
    force: bool = False,
) -> LinkRequest:
    """Build the create-link body for a candidate.

    Args:
        candidate: Candidate to link.
        topic_id: Target topic.
        linked_by: Who is creating the link.
        force: Whether an additional cross-topic link is permitted.

    Returns:
        LinkRequest carrying the candidate's fields.
    """
    return LinkRequest(
        topic_id=topic_id,
        external_id=candidate.external_id,
        source=candidate.source,
        source_account_id=candidate.source_account_id,
        title=candidate.title,
        snippet=candidate.snippet,
        url=candidate.url,
        occurred_at=candidate.occurred_at,
        metadata=dict(candidate.metadata),
        linked_by=linked_by,
        confidence=candidate.ai_confidence,
        link_reason=candidate.ai_reason,
        force=force,
    )


def synthesize_linked_item(candidate: CandidateItem, topic_id: str) -> LinkedItem:
    """Build a local linked item from the candidate's own fields.

    Used when the store confirms a link without returning it. The id is
    local-only; the next refresh replaces the entry with the stored one.

    Args:
        candidate: Candidate that is linked.
        topic_id: Topic it is linked to.

    Returns:
        LinkedItem marked as synthesized.
    """
    return LinkedItem(
        id=f"{SYNTHESIZED_ID_PREFIX}:{candidate.source}:{candidate.external_id}",
        topic_id=topic_id,
        source=candidate.source,
        external_id=candidate.external_id,
        source_account_id=candidate.source_account_id,
        title=candidate.title,
        snippet=candidate.snippet,
        url=candidate.url,
        occurred_at=candidate.occurred_at,
        metadata=dict(candidate.metadata),
        confidence=candidate.ai_confidence,
        link_reason=candidate.ai_reason,
        synthesized=True,
    )


class LinkCoordinator:
    """Performs one link attempt per candidate against the topic store.

    Branches on the store's answer:
    - created: return the stored item
    - conflict, same topic: success; synthesize an item if the mirror lacks it
    - conflict, other topic: one forced retry, then resolved or failed
    - anything else: failure, classified as schema or transient

    The coordinator never mutates shared state; callers fold the returned
    outcome into their mirror.
    """

    def __init__(
        self,
        store: TopicStore,
        linked_by: str = "user",
        metrics: LinkingMetrics | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Topic store to link against.
            linked_by: Value recorded as the link's creator.
            metrics: Optional metrics instance for dependency injection.
        """
        self._store = store
        self._linked_by = linked_by
        self._metrics = metrics or LinkingMetrics.get_instance()
        self._log = logger.bind(component="coordinator")

    async def link(
        self,
        candidate: CandidateItem,
        topic_id: str,
        mirror_keys: Collection[CandidateKey] = frozenset(),
        force: bool = False,
    ) -> LinkOutcome:
        """Link one candidate to a topic.

        Args:
            candidate: Candidate to link.
            topic_id: Target topic.
            mirror_keys: (source, external_id) keys the local mirror of
                ``topic_id`` already holds.
            force: Start with a forced request; no further retry is made.

        Returns:
            LinkOutcome describing the result.
        """
        outcome = await self._link(candidate, topic_id, mirror_keys, force)
        self._metrics.record_outcome(outcome)
        return outcome

    async def _link(
        self,
        candidate: CandidateItem,
        topic_id: str,
        mirror_keys: Collection[CandidateKey],
        force: bool,
    ) -> LinkOutcome:
        log = self._log.bind(
            topic_id=topic_id,
            source=candidate.source,
            external_id=candidate.external_id,
        )
        sm = LinkAttemptStateMachine(
            f"{topic_id}:{candidate.source}:{candidate.external_id}"
        )
        request = build_link_request(candidate, topic_id, self._linked_by, force)

        response = await self._attempt(request, log)
        if response.status == CreateLinkStatus.CREATED:
            sm.to_resolved()
            log.info("link_created")
            return self._created(candidate, topic_id, response, LinkOutcomeKind.CREATED)
        if response.status == CreateLinkStatus.ERROR:
            sm.to_failed()
            return self._failed(candidate, topic_id, response, log)

        sm.to_conflict_detected()
        log.info("link_conflict_detected", same_topic=response.same_topic)

        if response.same_topic:
            sm.to_resolved()
            item = None
            if candidate.key not in mirror_keys:
                item = synthesize_linked_item(candidate, topic_id)
            return LinkOutcome(
                kind=LinkOutcomeKind.ALREADY_LINKED_SAME_TOPIC,
                candidate_key=candidate.key,
                topic_id=topic_id,
                item=item,
            )

        if request.force:
            sm.to_failed()
            log.warning("link_conflict_unresolved", forced=request.force)
            return LinkOutcome(
                kind=LinkOutcomeKind.FAILED,
                candidate_key=candidate.key,
                topic_id=topic_id,
                failure=LinkFailureKind.CONFLICT,
                error="Item is linked to another topic",
            )

        sm.to_force_retry()
        log.info("link_force_retry")
        retry = await self._attempt(request.forced(), log)

        if retry.status == CreateLinkStatus.CREATED:
            sm.to_resolved()
            log.info("link_created", forced=True)
            return self._created(
                candidate,
                topic_id,
                retry,
                LinkOutcomeKind.ALREADY_LINKED_OTHER_TOPIC,
                attempts=2,
            )

        sm.to_failed()
        if retry.status == CreateLinkStatus.CONFLICT:
            log.warning("link_force_retry_conflict", same_topic=retry.same_topic)
            return LinkOutcome(
                kind=LinkOutcomeKind.FAILED,
                candidate_key=candidate.key,
                topic_id=topic_id,
                attempts=2,
                failure=LinkFailureKind.CONFLICT,
                error="Forced link conflicted again",
            )
        return self._failed(candidate, topic_id, retry, log, attempts=2)

    async def _attempt(
        self,
        request: LinkRequest,
        log: structlog.stdlib.BoundLogger,
    ) -> CreateLinkResponse:
        """Send one create call; transport failures become an ERROR response."""
        try:
            return await self._store.create_link(request)
        except TopicStoreError as exc:
            log.warning("link_transport_error", error=str(exc), forced=request.force)
            return CreateLinkResponse.failure(0, str(exc))

    def _created(
        self,
        candidate: CandidateItem,
        topic_id: str,
        response: CreateLinkResponse,
        kind: LinkOutcomeKind,
        attempts: int = 1,
    ) -> LinkOutcome:
        return LinkOutcome(
            kind=kind,
            candidate_key=candidate.key,
            topic_id=topic_id,
            item=response.item or synthesize_linked_item(candidate, topic_id),
            created=True,
            attempts=attempts,
        )

    def _failed(
        self,
        candidate: CandidateItem,
        topic_id: str,
        response: CreateLinkResponse,
        log: structlog.stdlib.BoundLogger,
        attempts: int = 1,
    ) -> LinkOutcome:
        failure = (
            LinkFailureKind.SCHEMA
            if response.constraint_error
            else LinkFailureKind.TRANSIENT
        )
        log.warning(
            "link_failed",
            failure=failure.value,
            status_code=response.status_code,
            error=response.error,
        )
        return LinkOutcome(
            kind=LinkOutcomeKind.FAILED,
            candidate_key=candidate.key,
            topic_id=topic_id,
            attempts=attempts,
            failure=failure,
            error=response.error,
        )
