"""Engine wiring the search, suggestion and linking components together."""

from collections.abc import Iterable

import httpx
import structlog

from src.linking.orchestrator import BatchOrchestrator, BatchResult
from src.linking.reconciler import LinkedItemsMirror, MirrorState, load, unlink
from src.observability.logging import configure_logging
from src.settings import AppSettings
from src.sources.aggregator import CandidateAggregator, select_confident
from src.sources.constants import DEFAULT_SOURCES, MIN_AI_CONFIDENCE
from src.sources.models import AggregationResult, CandidateItem, SearchRequest
from src.sources.provider import HttpSearchProvider, SourceProvider
from src.suggestions.finder import SuggestionFinder
from src.suggestions.generator import HttpSuggestionGenerator, SuggestionGenerator
from src.suggestions.models import Suggestion
from src.suggestions.session import SuggestionSession
from src.topic_store.client import Enricher, HttpTopicStore, TopicStore


logger = structlog.get_logger()


class TopicLinkEngine:
    """Entry point for one user session.

    Holds the per-topic mirrors, so search results are tagged against what
    the session last saw linked and every batch reconciles into the same
    state.
    """

    def __init__(  # noqa: PLR0913
        self,
        store: TopicStore,
        providers: Iterable[SourceProvider],
        generator: SuggestionGenerator | None = None,
        enricher: Enricher | None = None,
        linked_by: str = "user",
        min_ai_confidence: float = MIN_AI_CONFIDENCE,
    ) -> None:
        """Initialize the engine.

        Args:
            store: Authoritative topic store.
            providers: Source providers, one per source.
            generator: Optional suggestion service.
            enricher: Optional enrichment endpoint.
            linked_by: Value recorded as the link's creator.
            min_ai_confidence: Threshold for auto-selecting scored candidates.
        """
        self._store = store
        self._state = MirrorState()
        self._aggregator = CandidateAggregator(providers)
        self._finder = SuggestionFinder(generator) if generator else None
        self._orchestrator = BatchOrchestrator(
            store, self._state, enricher=enricher, linked_by=linked_by
        )
        self._min_ai_confidence = min_ai_confidence
        self._client: httpx.AsyncClient | None = None
        self._log = logger.bind(component="engine")

    @classmethod
    def from_settings(
        cls,
        settings: AppSettings,
        client: httpx.AsyncClient | None = None,
    ) -> "TopicLinkEngine":
        """Build an engine talking to the configured HTTP services.

        Args:
            settings: Application settings.
            client: Optional shared HTTP client; one is created if omitted
                and closed by ``aclose``.

        Returns:
            Configured engine.
        """
        configure_logging(level=settings.log_level, json_format=settings.log_json)
        owned = client is None
        http = client or httpx.AsyncClient(timeout=settings.request_timeout_seconds)
        headers = settings.auth_headers()

        store = HttpTopicStore(http, settings.topic_store_url, headers)
        engine = cls(
            store=store,
            providers=[
                HttpSearchProvider(source, http, settings.search_url, headers)
                for source in DEFAULT_SOURCES
            ],
            generator=HttpSuggestionGenerator(http, settings.suggestion_url, headers),
            enricher=store,
            linked_by=settings.linked_by,
            min_ai_confidence=settings.min_ai_confidence,
        )
        if owned:
            engine._client = http
        return engine

    @property
    def state(self) -> MirrorState:
        """Get the per-topic mirror holder."""
        return self._state

    def mirror(self, topic_id: str) -> LinkedItemsMirror:
        """Get a topic's current mirror."""
        return self._state.get(topic_id)

    async def open_topic(self, topic_id: str) -> LinkedItemsMirror:
        """Load a topic's linked items from the store.

        Raises:
            RefreshError: If the store could not be listed.
        """
        return await load(self._store, self._state, topic_id)

    async def search(self, request: SearchRequest, topic_id: str) -> AggregationResult:
        """Search all enabled sources for candidates to link to a topic.

        Args:
            request: Validated search request.
            topic_id: Active topic; its mirror drives already_linked tagging.

        Returns:
            Aggregated candidates plus per-source warnings.
        """
        return await self._aggregator.search(
            request, linked_keys=self._state.get(topic_id).keys()
        )

    async def link_selected(
        self,
        candidates: Iterable[CandidateItem],
        topic_id: str,
    ) -> BatchResult:
        """Link a selection of candidates to a topic."""
        return await self._orchestrator.run(candidates, topic_id)

    async def auto_link(self, result: AggregationResult, topic_id: str) -> BatchResult:
        """Link the linkable candidates the analysis service scored highly.

        Args:
            result: Search result to pick from.
            topic_id: Target topic.

        Returns:
            BatchResult for the confident candidates (empty batch if none).
        """
        selection = select_confident(result.linkable, self._min_ai_confidence)
        self._log.info(
            "auto_link_selected",
            topic_id=topic_id,
            selected=len(selection),
            linkable=len(result.linkable),
        )
        return await self._orchestrator.run(selection, topic_id)

    async def unlink(self, topic_id: str, item_id: str) -> LinkedItemsMirror:
        """Remove one linked item from a topic.

        Raises:
            TopicStoreError: If the store rejected or could not take the unlink.
        """
        return await unlink(self._store, self._state, topic_id, item_id)

    async def find_suggestions(
        self,
        session: SuggestionSession,
        visible: Iterable[Suggestion] = (),
    ) -> list[Suggestion]:
        """Fetch new topic suggestions not yet seen in the session.

        Raises:
            RuntimeError: If no suggestion generator is configured.
            SuggestionGeneratorError: If the generator call failed.
        """
        if self._finder is None:
            raise RuntimeError("No suggestion generator configured")
        return await self._finder.fetch(session, visible)

    async def wait_for_background(self) -> None:
        """Wait for fire-and-forget enrichment calls to finish."""
        await self._orchestrator.wait_for_background()

    async def aclose(self) -> None:
        """Wait for background work and close the owned HTTP client."""
        await self.wait_for_background()
        if self._client is not None:
            await self._client.aclose()
            self._client = None
