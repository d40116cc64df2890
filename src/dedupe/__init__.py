"""Fuzzy title deduplication."""

from src.dedupe.filter import (
    DropReason,
    FilterResult,
    filter_duplicates,
    filter_duplicates_detailed,
)
from src.dedupe.titles import (
    is_contained,
    is_near_duplicate,
    normalize_title,
    significant_tokens,
    token_overlap_ratio,
)


__all__ = [
    "DropReason",
    "FilterResult",
    "filter_duplicates",
    "filter_duplicates_detailed",
    "is_contained",
    "is_near_duplicate",
    "normalize_title",
    "significant_tokens",
    "token_overlap_ratio",
]
