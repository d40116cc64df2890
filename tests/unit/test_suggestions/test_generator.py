"""Tests for the HTTP suggestion generator."""

import asyncio
import json
from unittest.mock import MagicMock

import httpx
import pytest

from src.suggestions.errors import SuggestionGeneratorError
from src.suggestions.generator import HttpSuggestionGenerator, SuggestionGenerator
from src.suggestions.models import Suggestion


URL = "https://api.example.com/ai/agents"


def run_generate(
    transport: httpx.MockTransport, exclude: list[str]
) -> list[Suggestion]:
    """Run one generate call against a mock transport."""

    async def go() -> list[Suggestion]:
        async with httpx.AsyncClient(transport=transport) as client:
            generator = HttpSuggestionGenerator(client, URL, {"Authorization": "t"})
            return await generator.generate(exclude)

    return asyncio.run(go())


class TestHttpSuggestionGenerator:
    """Tests for HttpSuggestionGenerator."""

    @pytest.mark.unit
    def test_satisfies_protocol(self) -> None:
        """Test that the HTTP adapter is a SuggestionGenerator."""
        client = MagicMock(spec=httpx.AsyncClient)
        assert isinstance(HttpSuggestionGenerator(client, URL), SuggestionGenerator)

    @pytest.mark.unit
    def test_parses_suggestions_and_sends_exclusions(self) -> None:
        """Test the request body and the parsed response."""
        seen: dict[str, object] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(
                200,
                json={
                    "suggestions": [
                        {
                            "title": "Hiring plan",
                            "description": "Plan Q3 hiring",
                            "area": "people",
                            "reason": "Several threads mention headcount",
                        }
                    ]
                },
            )

        result = run_generate(httpx.MockTransport(handler), ["retro"])

        assert seen["body"] == {"exclude_titles": ["retro"]}
        assert seen["auth"] == "t"
        assert len(result) == 1
        assert result[0].title == "Hiring plan"
        assert result[0].area == "people"

    @pytest.mark.unit
    def test_missing_suggestions_key_is_empty(self) -> None:
        """Test that a body without suggestions yields an empty list."""
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        assert run_generate(transport, []) == []

    @pytest.mark.unit
    def test_non_success_raises(self) -> None:
        """Test that a server error raises with its status code."""
        transport = httpx.MockTransport(lambda r: httpx.Response(503))
        with pytest.raises(SuggestionGeneratorError) as exc_info:
            run_generate(transport, [])
        assert exc_info.value.status_code == 503

    @pytest.mark.unit
    def test_malformed_body_raises(self) -> None:
        """Test that a suggestion without a title is rejected."""
        transport = httpx.MockTransport(
            lambda r: httpx.Response(200, json={"suggestions": [{"title": ""}]})
        )
        with pytest.raises(SuggestionGeneratorError, match="Malformed"):
            run_generate(transport, [])

    @pytest.mark.unit
    def test_transport_error_raises(self) -> None:
        """Test that a network failure raises."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(SuggestionGeneratorError, match="request failed"):
            run_generate(httpx.MockTransport(handler), [])
