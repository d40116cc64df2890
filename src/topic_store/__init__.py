"""Access to the authoritative topic/item store."""

from src.topic_store.client import Enricher, HttpTopicStore, TopicStore
from src.topic_store.errors import (
    LinkedItemNotFoundError,
    TopicStoreError,
    TopicStoreResponseError,
    TopicStoreTransportError,
)
from src.topic_store.memory import InMemoryTopicStore
from src.topic_store.models import (
    CreateLinkResponse,
    CreateLinkStatus,
    LinkedItem,
    LinkKey,
    LinkRequest,
)


__all__ = [
    "CreateLinkResponse",
    "CreateLinkStatus",
    "Enricher",
    "HttpTopicStore",
    "InMemoryTopicStore",
    "LinkKey",
    "LinkRequest",
    "LinkedItem",
    "LinkedItemNotFoundError",
    "TopicStore",
    "TopicStoreError",
    "TopicStoreResponseError",
    "TopicStoreTransportError",
]
