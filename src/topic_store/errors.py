"""Domain exceptions for topic store access.

Link attempts do not raise for conflicts or error responses; those are
returned as ``CreateLinkResponse`` so the caller can branch on them.
Exceptions here cover transport failures and calls with no branching
(list, unlink, enrich).
"""


class TopicStoreError(Exception):
    """Base exception for all topic store errors."""


class TopicStoreTransportError(TopicStoreError):
    """Raised when the store could not be reached."""

    def __init__(self, operation: str, message: str) -> None:
        """Initialize the transport error.

        Args:
            operation: Store operation that failed ('create', 'list', ...).
            message: Human-readable error message.
        """
        self.operation = operation
        super().__init__(f"Topic store {operation} failed: {message}")


class TopicStoreResponseError(TopicStoreError):
    """Raised when the store answered with a non-success status."""

    def __init__(self, operation: str, status_code: int, message: str = "") -> None:
        """Initialize the response error.

        Args:
            operation: Store operation that failed.
            status_code: HTTP status code returned.
            message: Error message from the response body.
        """
        self.operation = operation
        self.status_code = status_code
        self.message = message
        detail = f": {message}" if message else ""
        super().__init__(f"Topic store {operation} returned {status_code}{detail}")


class LinkedItemNotFoundError(TopicStoreError):
    """Raised when unlinking an item the topic does not have."""

    def __init__(self, topic_id: str, item_id: str) -> None:
        """Initialize the error with the missing identifiers.

        Args:
            topic_id: Topic that was searched.
            item_id: Linked item id that was not found.
        """
        self.topic_id = topic_id
        self.item_id = item_id
        super().__init__(f"Linked item not found: {item_id} in topic {topic_id}")
