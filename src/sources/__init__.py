"""Candidate discovery across independent external sources."""

from src.sources.aggregator import (
    CandidateAggregator,
    select_confident,
    tag_already_linked,
)
from src.sources.errors import ProviderError
from src.sources.metrics import AggregatorMetrics
from src.sources.models import (
    AggregationResult,
    CandidateItem,
    CandidateKey,
    ProviderResult,
    SearchRequest,
    SourceWarning,
)
from src.sources.provider import HttpSearchProvider, SourceProvider


__all__ = [
    "AggregationResult",
    "AggregatorMetrics",
    "CandidateAggregator",
    "CandidateItem",
    "CandidateKey",
    "HttpSearchProvider",
    "ProviderError",
    "ProviderResult",
    "SearchRequest",
    "SourceProvider",
    "SourceWarning",
    "select_confident",
    "tag_already_linked",
]
