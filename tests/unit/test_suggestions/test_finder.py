"""Tests for the suggestion finder."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from src.suggestions.errors import SuggestionGeneratorError
from src.suggestions.finder import SuggestionFinder
from src.suggestions.models import Suggestion
from src.suggestions.session import SuggestionSession


def suggestions(*titles: str) -> list[Suggestion]:
    """Build suggestions from titles."""
    return [Suggestion(title=t, area="product") for t in titles]


class TestSuggestionFinder:
    """Tests for SuggestionFinder.fetch."""

    @pytest.mark.unit
    def test_fetch_marks_survivors_seen(self) -> None:
        """Test that returned suggestions are recorded as seen."""
        generator = AsyncMock()
        generator.generate.return_value = suggestions("Hiring plan", "Security audit")
        session = SuggestionSession()

        result = asyncio.run(SuggestionFinder(generator).fetch(session))

        assert [s.title for s in result] == ["Hiring plan", "Security audit"]
        assert session.seen == {"hiring plan", "security audit"}
        generator.generate.assert_awaited_once_with([])

    @pytest.mark.unit
    def test_fetch_sends_exclude_titles(self) -> None:
        """Test that seen and dismissed titles are sent to the generator."""
        generator = AsyncMock()
        generator.generate.return_value = []
        session = SuggestionSession()
        session.mark_seen(["Retro"])
        session.dismiss("Offsite")

        asyncio.run(SuggestionFinder(generator).fetch(session))

        generator.generate.assert_awaited_once_with(["offsite", "retro"])

    @pytest.mark.unit
    def test_dismissed_title_never_reappears(self) -> None:
        """Test dismissal permanence across fetch-more calls."""
        generator = AsyncMock()
        generator.generate.side_effect = [
            suggestions("Redesign onboarding flow", "Vendor renewal"),
            suggestions("redesign onboarding flow", "Team offsite"),
        ]
        session = SuggestionSession()
        finder = SuggestionFinder(generator)

        first = asyncio.run(finder.fetch(session))
        session.dismiss(first[0].title)
        visible = [s for s in first if not session.is_dismissed(s.title)]
        second = asyncio.run(finder.fetch(session, visible))

        assert [s.title for s in second] == ["Team offsite"]
        assert generator.generate.await_args_list[1].args[0] == [
            "redesign onboarding flow",
            "vendor renewal",
        ]

    @pytest.mark.unit
    def test_visible_duplicates_filtered(self) -> None:
        """Test that suggestions duplicating visible ones are dropped."""
        generator = AsyncMock()
        generator.generate.return_value = suggestions(
            "Onboarding flow redesign", "Redesign pricing page"
        )
        visible = suggestions("Redesign onboarding flow")

        result = asyncio.run(
            SuggestionFinder(generator).fetch(SuggestionSession(), visible)
        )

        assert [s.title for s in result] == ["Redesign pricing page"]

    @pytest.mark.unit
    def test_zero_suggestions_is_empty_result(self) -> None:
        """Test that an empty generator response is not an error."""
        generator = AsyncMock()
        generator.generate.return_value = []
        assert asyncio.run(SuggestionFinder(generator).fetch(SuggestionSession())) == []

    @pytest.mark.unit
    def test_generator_failure_propagates(self) -> None:
        """Test that a generator failure raises and marks nothing seen."""
        generator = AsyncMock()
        generator.generate.side_effect = SuggestionGeneratorError("boom", 502)
        session = SuggestionSession()

        with pytest.raises(SuggestionGeneratorError) as exc_info:
            asyncio.run(SuggestionFinder(generator).fetch(session))

        assert exc_info.value.status_code == 502
        assert session.seen == frozenset()
