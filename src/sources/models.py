"""Data models for candidate discovery."""

from datetime import UTC, datetime
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.sources.constants import (
    DEFAULT_MAX_RESULTS,
    DEFAULT_SOURCES,
    MAX_QUERY_LENGTH,
    MAX_RESULTS_CEILING,
    MAX_RESULTS_FLOOR,
)


CandidateKey = tuple[str, str]
"""Identity of a candidate across sources: (source, external_id)."""


class CandidateItem(BaseModel):
    """Content discovered from an external source, not yet linked.

    Candidates are ephemeral: each aggregator call produces a fresh list.
    The only field that changes after creation is ``already_linked``, and
    that change is made by copying (see ``tagged``).

    Attributes:
        source: Source that produced the item.
        external_id: Identifier of the item inside its source.
        title: Display title.
        snippet: Short preview text.
        url: Link back to the item in its source.
        occurred_at: When the underlying event happened.
        source_account_id: Connected account the item belongs to.
        metadata: Free-form provider metadata.
        ai_confidence: Relevance score from the analysis service, if scored.
        ai_reason: Explanation attached to ``ai_confidence``.
        already_linked: Whether the active topic already links this item.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    source: Annotated[str, Field(min_length=1)]
    external_id: Annotated[str, Field(min_length=1)]
    title: str = ""
    snippet: str = ""
    url: str = ""
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    source_account_id: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    ai_confidence: Annotated[float, Field(ge=0.0, le=1.0)] | None = None
    ai_reason: str | None = None
    already_linked: bool = False

    @field_validator("source_account_id", "snippet", "url", mode="before")
    @classmethod
    def coerce_null_text(cls, v: Any) -> Any:
        """Providers send null for absent text fields."""
        return "" if v is None else v

    @property
    def key(self) -> CandidateKey:
        """Get the (source, external_id) identity."""
        return (self.source, self.external_id)

    def tagged(self, already_linked: bool) -> "CandidateItem":
        """Return a copy with the already_linked flag set."""
        if already_linked == self.already_linked:
            return self
        return self.model_copy(update={"already_linked": already_linked})


class SearchRequest(BaseModel):
    """Search request fanned out to source providers.

    The query is trimmed and capped, and ``max_results`` is clamped
    rather than rejected, matching what the search endpoint accepts.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    query: Annotated[str, Field(min_length=1)]
    sources: list[str] = Field(default_factory=lambda: list(DEFAULT_SOURCES))
    date_from: datetime | None = None
    date_to: datetime | None = None
    account_ids: list[str] | None = None
    max_results: int = DEFAULT_MAX_RESULTS

    @field_validator("query", mode="before")
    @classmethod
    def sanitize_query(cls, v: Any) -> Any:
        """Trim the query and cap its length."""
        if isinstance(v, str):
            return v.strip()[:MAX_QUERY_LENGTH]
        return v

    @field_validator("max_results", mode="before")
    @classmethod
    def clamp_max_results(cls, v: Any) -> Any:
        """Clamp max_results into the accepted range."""
        if isinstance(v, int) and not isinstance(v, bool):
            return min(max(MAX_RESULTS_FLOOR, v), MAX_RESULTS_CEILING)
        return v

    def for_source(self, source: str) -> "SearchRequest":
        """Narrow the request to a single source."""
        return self.model_copy(update={"sources": [source]})

    def to_payload(self) -> dict[str, Any]:
        """Convert to the JSON body sent to the search endpoint."""
        payload: dict[str, Any] = {
            "query": self.query,
            "sources": list(self.sources),
            "max_results": self.max_results,
        }
        if self.date_from is not None:
            payload["date_from"] = self.date_from.isoformat()
        if self.date_to is not None:
            payload["date_to"] = self.date_to.isoformat()
        if self.account_ids is not None:
            payload["account_ids"] = list(self.account_ids)
        return payload


class SourceWarning(BaseModel):
    """Per-source failure surfaced alongside results.

    A warning never aborts the other sources of the same search.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: Annotated[str, Field(min_length=1)]
    message: Annotated[str, Field(min_length=1)]
    details: dict[str, str | int | bool | None] = Field(default_factory=dict)


class ProviderResult(BaseModel):
    """What a single provider returned for one search."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    source: Annotated[str, Field(min_length=1)]
    items: list[CandidateItem] = Field(default_factory=list)
    accounts: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)


class AggregationResult(BaseModel):
    """Concatenated candidates from every enabled source.

    Attributes:
        items: Candidates in source order, tagged with already_linked.
        warnings: Per-source failures.
        accounts: Connected accounts reported by the providers.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    items: list[CandidateItem] = Field(default_factory=list)
    warnings: list[SourceWarning] = Field(default_factory=list)
    accounts: dict[str, list[dict[str, Any]]] = Field(default_factory=dict)

    @property
    def linkable(self) -> list[CandidateItem]:
        """Candidates that may still be offered for linking."""
        return [item for item in self.items if not item.already_linked]

    @property
    def has_warnings(self) -> bool:
        """Check whether any source failed."""
        return bool(self.warnings)
