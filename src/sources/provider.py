"""Source provider interface and the HTTP search adapter."""

from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import ValidationError

from src.sources.errors import ProviderError
from src.sources.models import CandidateItem, ProviderResult, SearchRequest


logger = structlog.get_logger()


@runtime_checkable
class SourceProvider(Protocol):
    """Protocol for candidate search providers.

    Providers are opaque: the aggregator only needs a source name and an
    async ``search`` returning the candidates for that source.
    """

    source: str

    async def search(self, request: SearchRequest) -> ProviderResult:
        """Search one source.

        Args:
            request: Search request narrowed to this provider's source.

        Returns:
            ProviderResult with candidate items.

        Raises:
            ProviderError: If the source failed.
        """
        ...


class HttpSearchProvider:
    """Searches one source through the search HTTP endpoint.

    The endpoint answers ``{results: [{source, items, error?}], accounts}``.
    A per-source ``error`` in the body is raised as ``ProviderError`` so
    the aggregator can report it as a warning.
    """

    def __init__(
        self,
        source: str,
        client: httpx.AsyncClient,
        search_url: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            source: Source this provider searches.
            client: Shared async HTTP client.
            search_url: URL of the search endpoint.
            headers: Extra request headers (auth).
        """
        self.source = source
        self._client = client
        self._search_url = search_url
        self._headers = headers or {}
        self._log = logger.bind(component="sources", source=source)

    async def search(self, request: SearchRequest) -> ProviderResult:
        """Search this provider's source.

        Args:
            request: Search request; its sources are narrowed to this one.

        Returns:
            ProviderResult with parsed candidate items.

        Raises:
            ProviderError: On network errors, non-2xx responses, a
                per-source error in the body, or malformed items.
        """
        payload = request.for_source(self.source).to_payload()
        try:
            response = await self._client.post(
                self._search_url, json=payload, headers=self._headers
            )
        except httpx.HTTPError as exc:
            msg = f"Search request failed: {exc}"
            raise ProviderError(self.source, msg) from exc

        if not response.is_success:
            msg = _error_message(response) or f"Search returned {response.status_code}"
            raise ProviderError(self.source, msg, status_code=response.status_code)

        data: dict[str, Any] = response.json()
        items: list[CandidateItem] = []
        for result in data.get("results", []):
            if result.get("source") != self.source:
                continue
            if result.get("error"):
                raise ProviderError(self.source, str(result["error"]))
            try:
                items.extend(
                    CandidateItem.model_validate(raw) for raw in result.get("items", [])
                )
            except ValidationError as exc:
                msg = f"Malformed search item: {exc.error_count()} validation errors"
                raise ProviderError(self.source, msg) from exc

        self._log.debug("provider_search_complete", items=len(items))
        return ProviderResult(
            source=self.source,
            items=items,
            accounts=data.get("accounts") or {},
        )


def _error_message(response: httpx.Response) -> str | None:
    """Extract the ``error`` field from a JSON error body, if present."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return None
