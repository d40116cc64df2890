"""Suggestion flow: generate, deduplicate, and record what was shown."""

from collections.abc import Iterable

import structlog

from src.dedupe.filter import filter_duplicates_detailed
from src.suggestions.generator import SuggestionGenerator
from src.suggestions.models import Suggestion
from src.suggestions.session import SuggestionSession


logger = structlog.get_logger()


class SuggestionFinder:
    """Runs the suggestion agent for a session.

    Each call ("run suggestion agent" or "fetch more") asks the generator
    for new suggestions with every seen and dismissed title excluded, then
    drops anything that still duplicates a visible or dismissed title.
    """

    def __init__(self, generator: SuggestionGenerator) -> None:
        """Initialize the finder.

        Args:
            generator: Suggestion service.
        """
        self._generator = generator
        self._log = logger.bind(component="suggestions")

    async def fetch(
        self,
        session: SuggestionSession,
        visible: Iterable[Suggestion] = (),
    ) -> list[Suggestion]:
        """Fetch a new batch of non-duplicate suggestions.

        Args:
            session: Session registries; survivors are marked seen.
            visible: Suggestions currently shown to the user.

        Returns:
            New suggestions, possibly empty.

        Raises:
            SuggestionGeneratorError: If the generator call fails.
        """
        generated = await self._generator.generate(session.exclude_titles())
        result = filter_duplicates_detailed(
            generated,
            existing_titles=[s.title for s in visible],
            dismissed_titles=session.dismissed,
        )
        session.mark_seen(s.title for s in result.kept)

        self._log.info(
            "suggestions_fetched",
            generated=len(generated),
            kept=len(result.kept),
            dropped=result.dropped_count,
        )
        return result.kept
