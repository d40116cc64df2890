"""Data models for the topic store."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


LinkKey = tuple[str, str, str]
"""Unique identity of a linked item: (topic_id, source, external_id)."""


class LinkedItem(BaseModel):
    """An item associated with a topic, as stored by the topic store.

    Attributes:
        id: Store-assigned identifier.
        topic_id: Topic the item is linked to.
        source: Source the item came from.
        external_id: Identifier of the item inside its source.
        source_account_id: Connected account the item belongs to.
        title: Display title.
        snippet: Short preview text.
        url: Link back to the item in its source.
        occurred_at: When the underlying event happened.
        metadata: Free-form provider metadata.
        linked_by: Who created the link ('user', 'ai', ...).
        confidence: Analysis score when linked by the AI.
        link_reason: Explanation attached to ``confidence``.
        synthesized: True when built locally without a store echo.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: Annotated[str, Field(min_length=1)]
    topic_id: Annotated[str, Field(min_length=1)]
    source: Annotated[str, Field(min_length=1)]
    external_id: Annotated[str, Field(min_length=1)]
    source_account_id: str = ""
    title: str = ""
    snippet: str = ""
    url: str = ""
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)
    linked_by: str | None = None
    confidence: float | None = None
    link_reason: str | None = None
    synthesized: bool = False

    @field_validator("source_account_id", "snippet", "url", "title", mode="before")
    @classmethod
    def coerce_null_text(cls, v: Any) -> Any:
        """The store returns null for empty text columns."""
        return "" if v is None else v

    @property
    def key(self) -> LinkKey:
        """Get the (topic_id, source, external_id) identity."""
        return (self.topic_id, self.source, self.external_id)

    @property
    def candidate_key(self) -> tuple[str, str]:
        """Get the (source, external_id) identity, ignoring the topic."""
        return (self.source, self.external_id)


class LinkRequest(BaseModel):
    """Body of a create-link call."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    topic_id: Annotated[str, Field(min_length=1)]
    external_id: Annotated[str, Field(min_length=1)]
    source: Annotated[str, Field(min_length=1)]
    source_account_id: str = ""
    title: str = ""
    snippet: str = ""
    url: str = ""
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    metadata: dict[str, Any] = Field(default_factory=dict)
    linked_by: str = "user"
    confidence: float | None = None
    link_reason: str | None = None
    force: bool = False

    @property
    def key(self) -> LinkKey:
        """Get the (topic_id, source, external_id) identity."""
        return (self.topic_id, self.source, self.external_id)

    def forced(self) -> "LinkRequest":
        """Return a copy that permits an additional cross-topic link."""
        return self.model_copy(update={"force": True})

    def to_payload(self) -> dict[str, Any]:
        """Convert to the JSON body; optional fields only when set."""
        payload = self.model_dump(
            mode="json", exclude={"topic_id", "confidence", "link_reason", "force"}
        )
        if self.confidence is not None:
            payload["confidence"] = self.confidence
        if self.link_reason:
            payload["link_reason"] = self.link_reason
        if self.force:
            payload["force"] = True
        return payload


class CreateLinkStatus(str, Enum):
    """Classification of a create-link response.

    - CREATED: the store inserted the link (2xx)
    - CONFLICT: the unique constraint rejected it (409)
    - ERROR: any other non-success response
    """

    CREATED = "created"
    CONFLICT = "conflict"
    ERROR = "error"


@dataclass(frozen=True)
class CreateLinkResponse:
    """Parsed create-link response.

    Attributes:
        status: Response classification.
        status_code: HTTP status code.
        item: Created item (CREATED only).
        same_topic: Whether the conflicting link is under the same topic.
        error: Error message (ERROR only).
        constraint_error: Whether the store reported a constraint/schema problem.
    """

    status: CreateLinkStatus
    status_code: int
    item: LinkedItem | None = None
    same_topic: bool = False
    error: str | None = None
    constraint_error: bool = False

    @classmethod
    def created(cls, item: LinkedItem, status_code: int = 201) -> "CreateLinkResponse":
        """Build a CREATED response."""
        return cls(status=CreateLinkStatus.CREATED, status_code=status_code, item=item)

    @classmethod
    def conflict(cls, same_topic: bool) -> "CreateLinkResponse":
        """Build a 409 CONFLICT response."""
        return cls(
            status=CreateLinkStatus.CONFLICT, status_code=409, same_topic=same_topic
        )

    @classmethod
    def failure(
        cls,
        status_code: int,
        error: str,
        constraint_error: bool = False,
    ) -> "CreateLinkResponse":
        """Build an ERROR response."""
        return cls(
            status=CreateLinkStatus.ERROR,
            status_code=status_code,
            error=error,
            constraint_error=constraint_error,
        )
