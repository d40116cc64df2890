"""Candidate factories and topic store doubles for tests."""

from src.sources.models import CandidateItem
from src.topic_store.errors import TopicStoreResponseError, TopicStoreTransportError
from src.topic_store.memory import InMemoryTopicStore
from src.topic_store.models import CreateLinkResponse, LinkedItem, LinkRequest
from tests.helpers.time import hours_ago


def make_candidate(
    external_id: str,
    source: str = "gmail",
    hours: int = 1,
    **overrides: object,
) -> CandidateItem:
    """Build a candidate with predictable fields."""
    fields: dict[str, object] = {
        "source": source,
        "external_id": external_id,
        "title": f"Item {external_id}",
        "snippet": f"Snippet for {external_id}",
        "url": f"https://example.com/{source}/{external_id}",
        "occurred_at": hours_ago(hours),
        "source_account_id": "acct-1",
    }
    fields.update(overrides)
    return CandidateItem.model_validate(fields)


class FlakyTopicStore(InMemoryTopicStore):
    """In-memory store with injectable failures.

    Attributes:
        fail_external_ids: Create calls for these ids raise a transport error.
        constraint_external_ids: Create calls for these ids answer 422 with
            a constraint error.
        fail_list: list_links raises a response error.
        fail_enrich: enrich raises a transport error.
        create_calls: Every create request received, in order.
    """

    def __init__(self) -> None:
        super().__init__()
        self.fail_external_ids: set[str] = set()
        self.constraint_external_ids: set[str] = set()
        self.fail_list = False
        self.fail_enrich = False
        self.create_calls: list[LinkRequest] = []

    async def create_link(self, request: LinkRequest) -> CreateLinkResponse:
        self.create_calls.append(request)
        if request.external_id in self.fail_external_ids:
            raise TopicStoreTransportError("create", "connection reset")
        if request.external_id in self.constraint_external_ids:
            return CreateLinkResponse.failure(
                422, "violates check constraint", constraint_error=True
            )
        return await super().create_link(request)

    async def list_links(self, topic_id: str) -> list[LinkedItem]:
        if self.fail_list:
            raise TopicStoreResponseError("list", 503, "unavailable")
        return await super().list_links(topic_id)

    async def enrich(self, topic_id: str) -> None:
        if self.fail_enrich:
            raise TopicStoreTransportError("enrich", "timeout")
        await super().enrich(topic_id)
