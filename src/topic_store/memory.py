"""In-process topic store enforcing the link uniqueness constraint."""

import uuid

import structlog

from src.topic_store.errors import LinkedItemNotFoundError
from src.topic_store.models import (
    CreateLinkResponse,
    LinkedItem,
    LinkKey,
    LinkRequest,
)


logger = structlog.get_logger()


class InMemoryTopicStore:
    """Topic store kept in memory.

    Mirrors the server's conflict rules:
    - (topic_id, source, external_id) is unique; a repeat is a 409 with
      ``same_topic=True`` even when forced
    - an item linked under another topic is a 409 with ``same_topic=False``
      unless the request is forced, in which case a second link is created
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._items: dict[LinkKey, LinkedItem] = {}
        self._enrich_calls: list[str] = []
        self._log = logger.bind(component="topic_store", backend="memory")

    @property
    def enrich_calls(self) -> list[str]:
        """Get topic ids passed to ``enrich``, in call order."""
        return list(self._enrich_calls)

    def all_items(self) -> list[LinkedItem]:
        """Get every linked item across all topics."""
        return list(self._items.values())

    async def create_link(self, request: LinkRequest) -> CreateLinkResponse:
        """Create a link unless a conflicting one exists.

        Args:
            request: Link request.

        Returns:
            CREATED with the new item, or CONFLICT.
        """
        if request.key in self._items:
            return CreateLinkResponse.conflict(same_topic=True)

        linked_elsewhere = any(
            item.candidate_key == (request.source, request.external_id)
            for item in self._items.values()
        )
        if linked_elsewhere and not request.force:
            return CreateLinkResponse.conflict(same_topic=False)

        item = LinkedItem(
            id=str(uuid.uuid4()),
            topic_id=request.topic_id,
            source=request.source,
            external_id=request.external_id,
            source_account_id=request.source_account_id,
            title=request.title,
            snippet=request.snippet,
            url=request.url,
            occurred_at=request.occurred_at,
            metadata=dict(request.metadata),
            linked_by=request.linked_by,
            confidence=request.confidence,
            link_reason=request.link_reason,
        )
        self._items[item.key] = item
        self._log.debug(
            "link_created", topic_id=request.topic_id, forced=request.force
        )
        return CreateLinkResponse.created(item)

    async def list_links(self, topic_id: str) -> list[LinkedItem]:
        """List a topic's items, most recent occurrence first.

        Args:
            topic_id: Topic to list.

        Returns:
            Linked items sorted by occurred_at descending.
        """
        items = [item for item in self._items.values() if item.topic_id == topic_id]
        return sorted(items, key=lambda i: i.occurred_at, reverse=True)

    async def unlink(self, topic_id: str, item_id: str) -> None:
        """Delete one linked item.

        Args:
            topic_id: Topic the item is linked to.
            item_id: Store id of the linked item.

        Raises:
            LinkedItemNotFoundError: If the topic has no such item.
        """
        for key, item in self._items.items():
            if item.topic_id == topic_id and item.id == item_id:
                del self._items[key]
                return
        raise LinkedItemNotFoundError(topic_id, item_id)

    async def enrich(self, topic_id: str) -> None:
        """Record an enrichment request.

        Args:
            topic_id: Topic to enrich.
        """
        self._enrich_calls.append(topic_id)
