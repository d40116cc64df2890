"""State reconciler: local mirror of a topic's linked items.

The mirror may run ahead of the store between refreshes (synthesized
entries, optimistic folds) and is replaced wholesale by an authoritative
refresh. Every function here returns a new mirror; the only mutable holder
is ``MirrorState``, whose batch sequence numbers keep an older batch from
overwriting a newer one.
"""

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from src.linking.metrics import LinkingMetrics
from src.linking.models import LinkOutcome
from src.sources.models import CandidateKey
from src.topic_store.client import TopicStore
from src.topic_store.errors import TopicStoreError
from src.topic_store.models import LinkedItem


logger = structlog.get_logger()


class RefreshError(Exception):
    """Raised when the authoritative refresh could not be completed."""

    def __init__(self, topic_id: str, message: str) -> None:
        """Initialize the refresh error.

        Args:
            topic_id: Topic that was being refreshed.
            message: Human-readable error message.
        """
        self.topic_id = topic_id
        super().__init__(f"Refresh of topic '{topic_id}' failed: {message}")


@dataclass(frozen=True)
class LinkedItemsMirror:
    """Ordered local copy of one topic's linked items, most recent first.

    Attributes:
        topic_id: Topic the items belong to.
        items: Linked items, one per (source, external_id).
    """

    topic_id: str
    items: tuple[LinkedItem, ...] = ()

    @classmethod
    def from_items(
        cls, topic_id: str, items: Iterable[LinkedItem]
    ) -> "LinkedItemsMirror":
        """Build a mirror, keeping the first item seen for each key."""
        seen: set[CandidateKey] = set()
        kept: list[LinkedItem] = []
        for item in items:
            if item.topic_id != topic_id or item.candidate_key in seen:
                continue
            seen.add(item.candidate_key)
            kept.append(item)
        return cls(topic_id=topic_id, items=tuple(kept))

    def __len__(self) -> int:
        return len(self.items)

    def keys(self) -> frozenset[CandidateKey]:
        """Get the (source, external_id) keys present."""
        return frozenset(item.candidate_key for item in self.items)

    def contains(self, key: CandidateKey) -> bool:
        """Check whether a (source, external_id) key is present."""
        return any(item.candidate_key == key for item in self.items)

    def get(self, key: CandidateKey) -> LinkedItem | None:
        """Get the item for a (source, external_id) key, if present."""
        for item in self.items:
            if item.candidate_key == key:
                return item
        return None

    def with_item(self, item: LinkedItem) -> "LinkedItemsMirror":
        """Return a mirror with the item at the front.

        An existing entry for the same key is replaced.
        """
        rest = tuple(i for i in self.items if i.candidate_key != item.candidate_key)
        return LinkedItemsMirror(topic_id=self.topic_id, items=(item, *rest))

    def without_item(self, item_id: str) -> "LinkedItemsMirror":
        """Return a mirror without the item with the given store id."""
        return LinkedItemsMirror(
            topic_id=self.topic_id,
            items=tuple(i for i in self.items if i.id != item_id),
        )

    def set_equal(self, items: Iterable[LinkedItem]) -> bool:
        """Check set-equality with another item list, ignoring order."""
        return {i.key for i in self.items} == {i.key for i in items}

    @property
    def synthesized_count(self) -> int:
        """Get number of locally synthesized entries."""
        return sum(1 for item in self.items if item.synthesized)


def fold_outcomes(
    mirror: LinkedItemsMirror,
    outcomes: Iterable[LinkOutcome],
) -> LinkedItemsMirror:
    """Fold link outcomes into a mirror.

    Outcomes that carry an item for the mirror's topic are placed at the
    front; failed outcomes and outcomes without an item leave it as is.

    Args:
        mirror: Mirror to start from.
        outcomes: Outcomes in attempt order.

    Returns:
        New mirror.
    """
    for outcome in outcomes:
        if outcome.item is None or outcome.topic_id != mirror.topic_id:
            continue
        mirror = mirror.with_item(outcome.item)
    return mirror


async def refresh(store: TopicStore, topic_id: str) -> LinkedItemsMirror:
    """Rebuild a topic's mirror from the store.

    Args:
        store: Authoritative topic store.
        topic_id: Topic to refresh.

    Returns:
        Mirror set-equal to the store's list.

    Raises:
        RefreshError: If the store could not be listed.
    """
    try:
        items = await store.list_links(topic_id)
    except TopicStoreError as exc:
        raise RefreshError(topic_id, str(exc)) from exc
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "refresh_unexpected_error",
            component="reconciler",
            topic_id=topic_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        raise RefreshError(topic_id, str(exc)) from exc
    return LinkedItemsMirror.from_items(topic_id, items)


class MirrorState:
    """Holds the current mirror per topic and orders batch writes.

    Sequence numbers increase across all topics. A write is accepted only
    from the newest batch started for its topic; writes without a sequence
    number (explicit unlink) always apply.
    """

    def __init__(self, metrics: LinkingMetrics | None = None) -> None:
        """Initialize with no mirrors loaded.

        Args:
            metrics: Optional metrics instance for dependency injection.
        """
        self._metrics = metrics or LinkingMetrics.get_instance()
        self._mirrors: dict[str, LinkedItemsMirror] = {}
        self._latest_seq: dict[str, int] = {}
        self._next_seq = 0

    def get(self, topic_id: str) -> LinkedItemsMirror:
        """Get a topic's current mirror (empty if never loaded)."""
        return self._mirrors.get(topic_id, LinkedItemsMirror(topic_id=topic_id))

    def begin_batch(self, topic_id: str) -> int:
        """Reserve the next sequence number for a batch on a topic.

        Returns:
            The batch's sequence number.
        """
        self._next_seq += 1
        self._latest_seq[topic_id] = self._next_seq
        return self._next_seq

    def is_current(self, topic_id: str, seq: int) -> bool:
        """Check whether seq belongs to the newest batch for the topic."""
        return self._latest_seq.get(topic_id) == seq

    def commit(self, seq: int, mirror: LinkedItemsMirror) -> bool:
        """Store a batch's mirror unless a newer batch has started.

        Args:
            seq: Sequence number from ``begin_batch``.
            mirror: Mirror to store.

        Returns:
            True if stored, False if discarded as stale.
        """
        if not self.is_current(mirror.topic_id, seq):
            self._metrics.record_stale_refresh()
            logger.warning(
                "stale_mirror_discarded",
                component="reconciler",
                topic_id=mirror.topic_id,
                seq=seq,
                latest_seq=self._latest_seq.get(mirror.topic_id),
            )
            return False
        self._mirrors[mirror.topic_id] = mirror
        return True

    def replace(self, mirror: LinkedItemsMirror) -> None:
        """Store a mirror outside any batch (initial load, unlink)."""
        self._mirrors[mirror.topic_id] = mirror

    def clear(self, topic_id: str | None = None) -> None:
        """Forget one topic's mirror, or all of them."""
        if topic_id is None:
            self._mirrors.clear()
        else:
            self._mirrors.pop(topic_id, None)


async def load(
    store: TopicStore, state: MirrorState, topic_id: str
) -> LinkedItemsMirror:
    """Load a topic's mirror from the store outside any batch.

    Raises:
        RefreshError: If the store could not be listed.
    """
    mirror = await refresh(store, topic_id)
    state.replace(mirror)
    return mirror


async def unlink(
    store: TopicStore,
    state: MirrorState,
    topic_id: str,
    item_id: str,
) -> LinkedItemsMirror:
    """Unlink one item in the store, then drop it from the mirror.

    Args:
        store: Authoritative topic store.
        state: Mirror holder.
        topic_id: Topic the item is linked to.
        item_id: Store id of the linked item.

    Returns:
        The topic's updated mirror.

    Raises:
        TopicStoreError: If the store rejected or could not take the unlink.
    """
    await store.unlink(topic_id, item_id)
    mirror = state.get(topic_id).without_item(item_id)
    state.replace(mirror)
    logger.info(
        "item_unlinked",
        component="reconciler",
        topic_id=topic_id,
        remaining=len(mirror),
    )
    return mirror
