"""Topic store interface and HTTP adapter."""

from http import HTTPStatus
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import ValidationError

from src.topic_store.errors import (
    LinkedItemNotFoundError,
    TopicStoreResponseError,
    TopicStoreTransportError,
)
from src.topic_store.models import (
    CreateLinkResponse,
    CreateLinkStatus,
    LinkedItem,
    LinkRequest,
)


logger = structlog.get_logger()


@runtime_checkable
class TopicStore(Protocol):
    """Protocol for the authoritative topic/item store.

    The store owns linked items and enforces uniqueness of
    (topic_id, source, external_id).
    """

    async def create_link(self, request: LinkRequest) -> CreateLinkResponse:
        """Create a link, reporting conflicts in the response.

        Raises:
            TopicStoreError: If the store could not be reached.
        """
        ...

    async def list_links(self, topic_id: str) -> list[LinkedItem]:
        """List a topic's linked items, most recent first.

        Raises:
            TopicStoreError: On transport or response failure.
        """
        ...

    async def unlink(self, topic_id: str, item_id: str) -> None:
        """Delete one linked item.

        Raises:
            TopicStoreError: On transport or response failure.
        """
        ...


@runtime_checkable
class Enricher(Protocol):
    """Protocol for the downstream enrichment/re-analysis service."""

    async def enrich(self, topic_id: str) -> None:
        """Re-enrich a topic's items.

        Raises:
            TopicStoreError: If the call fails.
        """
        ...


class HttpTopicStore:
    """Topic store client over the topics HTTP API.

    Endpoints:
    - POST   {base}/topics/{topic_id}/items            create link
    - GET    {base}/topics/{topic_id}/items            list links
    - DELETE {base}/topics/{topic_id}/items/{item_id}  unlink
    - POST   {base}/topics/{topic_id}/enrich           enrichment
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the store client.

        Args:
            client: Shared async HTTP client.
            base_url: API base URL.
            headers: Extra request headers (auth).
        """
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._log = logger.bind(component="topic_store")

    def _items_url(self, topic_id: str) -> str:
        return f"{self._base_url}/topics/{topic_id}/items"

    async def _send(
        self,
        operation: str,
        method: str,
        url: str,
        json: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """Send a request, wrapping transport failures.

        Raises:
            TopicStoreTransportError: On network errors.
        """
        try:
            return await self._client.request(
                method, url, json=json, headers=self._headers
            )
        except httpx.HTTPError as exc:
            self._log.warning(
                "topic_store_transport_error", operation=operation, error=str(exc)
            )
            raise TopicStoreTransportError(operation, str(exc)) from exc

    async def create_link(self, request: LinkRequest) -> CreateLinkResponse:
        """Create a link and classify the response.

        Args:
            request: Link request.

        Returns:
            CreateLinkResponse; conflicts and error statuses are not raised.

        Raises:
            TopicStoreTransportError: On network errors.
        """
        response = await self._send(
            "create",
            "POST",
            self._items_url(request.topic_id),
            json=request.to_payload(),
        )
        body = _json_body(response)

        if response.status_code == HTTPStatus.CONFLICT:
            return CreateLinkResponse.conflict(same_topic=bool(body.get("same_topic")))

        if response.is_success:
            item = self._parse_echo(request.topic_id, body.get("item"))
            if item is None:
                # Created, but the echo is unusable; the caller falls back
                # to the candidate's own fields.
                return CreateLinkResponse(
                    status=CreateLinkStatus.CREATED,
                    status_code=response.status_code,
                )
            return CreateLinkResponse.created(item, status_code=response.status_code)

        return CreateLinkResponse.failure(
            response.status_code,
            str(body.get("error") or f"Create returned {response.status_code}"),
            constraint_error=bool(body.get("constraint_error")),
        )

    def _parse_echo(self, topic_id: str, raw_item: object) -> LinkedItem | None:
        if not isinstance(raw_item, dict):
            self._log.warning(
                "linked_item_echo_invalid", item_type=type(raw_item).__name__
            )
            return None
        try:
            return LinkedItem.model_validate({"topic_id": topic_id, **raw_item})
        except ValidationError as exc:
            self._log.warning("linked_item_echo_invalid", errors=exc.error_count())
            return None

    async def list_links(self, topic_id: str) -> list[LinkedItem]:
        """List a topic's linked items.

        Args:
            topic_id: Topic to list.

        Returns:
            Linked items in store order (most recent first).

        Raises:
            TopicStoreTransportError: On network errors.
            TopicStoreResponseError: On non-success or malformed responses.
        """
        response = await self._send("list", "GET", self._items_url(topic_id))
        body = _json_body(response)
        if not response.is_success:
            raise TopicStoreResponseError(
                "list", response.status_code, str(body.get("error") or "")
            )
        raw_items = body.get("items") or []
        if not isinstance(raw_items, list) or not all(
            isinstance(raw, dict) for raw in raw_items
        ):
            raise TopicStoreResponseError(
                "list", response.status_code, "items is not a list of objects"
            )
        try:
            return [
                LinkedItem.model_validate({"topic_id": topic_id, **raw})
                for raw in raw_items
            ]
        except ValidationError as exc:
            raise TopicStoreResponseError(
                "list", response.status_code, "malformed items"
            ) from exc

    async def unlink(self, topic_id: str, item_id: str) -> None:
        """Delete one linked item.

        Args:
            topic_id: Topic the item is linked to.
            item_id: Store id of the linked item.

        Raises:
            LinkedItemNotFoundError: If the store answers 404.
            TopicStoreTransportError: On network errors.
            TopicStoreResponseError: On other non-success responses.
        """
        response = await self._send(
            "unlink", "DELETE", f"{self._items_url(topic_id)}/{item_id}"
        )
        if response.status_code == HTTPStatus.NOT_FOUND:
            raise LinkedItemNotFoundError(topic_id, item_id)
        if not response.is_success:
            body = _json_body(response)
            raise TopicStoreResponseError(
                "unlink", response.status_code, str(body.get("error") or "")
            )

    async def enrich(self, topic_id: str) -> None:
        """Trigger enrichment of a topic's items.

        Args:
            topic_id: Topic to enrich.

        Raises:
            TopicStoreTransportError: On network errors.
            TopicStoreResponseError: On non-success responses.
        """
        response = await self._send(
            "enrich", "POST", f"{self._base_url}/topics/{topic_id}/enrich"
        )
        if not response.is_success:
            raise TopicStoreResponseError("enrich", response.status_code)


def _json_body(response: httpx.Response) -> dict[str, Any]:
    """Parse a JSON object body, tolerating empty or non-JSON bodies."""
    try:
        body = response.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
