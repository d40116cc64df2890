"""Tests for the suggestion session registries."""

import pytest

from src.suggestions.session import SuggestionSession


class TestSuggestionSession:
    """Tests for SuggestionSession."""

    @pytest.mark.unit
    def test_starts_empty(self) -> None:
        """Test that a new session has no titles."""
        session = SuggestionSession("s-1")
        assert session.seen == frozenset()
        assert session.dismissed == frozenset()
        assert session.exclude_titles() == []

    @pytest.mark.unit
    def test_mark_seen_normalizes(self) -> None:
        """Test that seen titles are stored normalized."""
        session = SuggestionSession()
        session.mark_seen(["  Hiring Plan ", "Retro"])
        assert session.seen == {"hiring plan", "retro"}

    @pytest.mark.unit
    def test_mark_created_counts_as_seen(self) -> None:
        """Test that created titles are excluded from regeneration."""
        session = SuggestionSession()
        session.mark_created("Launch Plan")
        assert session.exclude_titles() == ["launch plan"]
        assert not session.is_dismissed("Launch Plan")

    @pytest.mark.unit
    def test_dismiss_adds_to_both_registries(self) -> None:
        """Test that a dismissed title is both seen and dismissed."""
        session = SuggestionSession()
        session.dismiss("Budget Review")
        assert "budget review" in session.seen
        assert session.is_dismissed("budget review  ")

    @pytest.mark.unit
    def test_exclude_titles_sorted_union(self) -> None:
        """Test that exclude_titles is the sorted union of both registries."""
        session = SuggestionSession()
        session.mark_seen(["zeta", "alpha"])
        session.dismiss("Mid")
        assert session.exclude_titles() == ["alpha", "mid", "zeta"]

    @pytest.mark.unit
    def test_clear_drops_everything(self) -> None:
        """Test that clearing ends the session's memory."""
        session = SuggestionSession()
        session.mark_seen(["a"])
        session.dismiss("b")
        session.clear()
        assert session.seen == frozenset()
        assert session.dismissed == frozenset()
