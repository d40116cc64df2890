"""Session-scoped registries of seen and dismissed suggestion titles."""

from collections.abc import Iterable

import structlog

from src.dedupe.titles import normalize_title


logger = structlog.get_logger()


class SuggestionSession:
    """Title registries for one user session.

    Created when the session starts and cleared when it ends; never
    persisted. Both registries only grow while the session is open.

    - seen: every title surfaced, created, or dismissed
    - dismissed: titles the user explicitly rejected
    """

    def __init__(self, session_id: str = "") -> None:
        """Initialize empty registries.

        Args:
            session_id: Identifier for logging.
        """
        self._seen: set[str] = set()
        self._dismissed: set[str] = set()
        self._log = logger.bind(component="suggestions", session_id=session_id)

    @property
    def seen(self) -> frozenset[str]:
        """Get normalized titles surfaced, created, or dismissed."""
        return frozenset(self._seen)

    @property
    def dismissed(self) -> frozenset[str]:
        """Get normalized titles the user rejected."""
        return frozenset(self._dismissed)

    def mark_seen(self, titles: Iterable[str]) -> None:
        """Record titles shown to the user."""
        self._seen.update(normalize_title(t) for t in titles)

    def mark_created(self, title: str) -> None:
        """Record a title the user turned into a topic."""
        self._seen.add(normalize_title(title))

    def dismiss(self, title: str) -> None:
        """Record a title the user rejected."""
        normalized = normalize_title(title)
        self._seen.add(normalized)
        self._dismissed.add(normalized)
        self._log.info("suggestion_dismissed", dismissed_total=len(self._dismissed))

    def is_dismissed(self, title: str) -> bool:
        """Check whether a title was rejected in this session."""
        return normalize_title(title) in self._dismissed

    def exclude_titles(self) -> list[str]:
        """Titles the generator must not suggest again, sorted."""
        return sorted(self._seen | self._dismissed)

    def clear(self) -> None:
        """Drop both registries at session end."""
        self._seen.clear()
        self._dismissed.clear()
