"""Suggestion generator interface and HTTP adapter."""

from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from pydantic import ValidationError

from src.suggestions.errors import SuggestionGeneratorError
from src.suggestions.models import Suggestion


logger = structlog.get_logger()


@runtime_checkable
class SuggestionGenerator(Protocol):
    """Protocol for the opaque suggestion service."""

    async def generate(self, exclude_titles: list[str]) -> list[Suggestion]:
        """Generate ranked suggestions.

        Args:
            exclude_titles: Titles that must not be suggested again.

        Returns:
            Suggestions in ranked order.

        Raises:
            SuggestionGeneratorError: If the service call fails.
        """
        ...


class HttpSuggestionGenerator:
    """Calls the suggestion endpoint over HTTP."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        """Initialize the generator client.

        Args:
            client: Shared async HTTP client.
            url: Suggestion endpoint URL.
            headers: Extra request headers (auth).
        """
        self._client = client
        self._url = url
        self._headers = headers or {}
        self._log = logger.bind(component="suggestions", subcomponent="generator")

    async def generate(self, exclude_titles: list[str]) -> list[Suggestion]:
        """Request suggestions, excluding already-seen titles.

        Args:
            exclude_titles: Titles that must not be suggested again.

        Returns:
            Parsed suggestions in ranked order.

        Raises:
            SuggestionGeneratorError: On network errors, non-2xx responses,
                or a malformed body.
        """
        try:
            response = await self._client.post(
                self._url,
                json={"exclude_titles": exclude_titles},
                headers=self._headers,
            )
        except httpx.HTTPError as exc:
            msg = f"Suggestion request failed: {exc}"
            raise SuggestionGeneratorError(msg) from exc

        if not response.is_success:
            msg = f"Suggestion service returned {response.status_code}"
            raise SuggestionGeneratorError(msg, status_code=response.status_code)

        try:
            data: dict[str, Any] = response.json()
            suggestions = [
                Suggestion.model_validate(raw) for raw in data.get("suggestions", [])
            ]
        except (ValueError, ValidationError) as exc:
            msg = f"Malformed suggestion response: {exc}"
            raise SuggestionGeneratorError(msg) from exc

        self._log.info(
            "suggestions_generated",
            count=len(suggestions),
            excluded=len(exclude_titles),
        )
        return suggestions
