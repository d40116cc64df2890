"""Duplicate filter for suggestion batches.

Suggestions are regenerated by an AI service on every request and carry
no stable identifier, so equivalence is decided by title alone.
"""

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from operator import attrgetter
from typing import Generic, TypeVar

import structlog

from src.dedupe.constants import OVERLAP_THRESHOLD
from src.dedupe.titles import is_near_duplicate, normalize_title


logger = structlog.get_logger()

T = TypeVar("T")


class DropReason(str, Enum):
    """Why a candidate was filtered out.

    - EXACT: same normalized title as one already accepted
    - DISMISSED: same normalized title as one the user rejected
    - FUZZY: containment or token overlap with an accepted title
    """

    EXACT = "exact"
    DISMISSED = "dismissed"
    FUZZY = "fuzzy"


@dataclass
class FilterResult(Generic[T]):
    """Result of a duplicate filter pass.

    Attributes:
        kept: Surviving candidates, in original order.
        dropped: Filtered candidates with the reason they were dropped.
    """

    kept: list[T] = field(default_factory=list)
    dropped: list[tuple[T, DropReason]] = field(default_factory=list)

    @property
    def dropped_count(self) -> int:
        """Get number of dropped candidates."""
        return len(self.dropped)


def filter_duplicates_detailed(
    candidates: Iterable[T],
    existing_titles: Iterable[str],
    dismissed_titles: Iterable[str] = (),
    title_of: Callable[[T], str] = attrgetter("title"),
    threshold: float = OVERLAP_THRESHOLD,
) -> FilterResult[T]:
    """Filter candidates whose titles duplicate accepted or dismissed ones.

    Exact normalized matches against existing or dismissed titles are
    dropped first. Remaining candidates are compared against every title
    accepted so far, and the accepted set grows as the pass proceeds, so
    the first of two near-duplicates in one batch wins.

    Args:
        candidates: New candidates in presentation order.
        existing_titles: Titles already visible to the user.
        dismissed_titles: Titles the user rejected.
        title_of: Extracts the title from a candidate.
        threshold: Token-overlap ratio that must be exceeded.

    Returns:
        FilterResult with kept and dropped candidates.
    """
    dismissed = {normalize_title(t) for t in dismissed_titles}
    accepted = [normalize_title(t) for t in existing_titles]
    exact = set(accepted)
    result: FilterResult[T] = FilterResult()

    for candidate in candidates:
        title = normalize_title(title_of(candidate))

        if title in dismissed:
            result.dropped.append((candidate, DropReason.DISMISSED))
            continue
        if title in exact:
            result.dropped.append((candidate, DropReason.EXACT))
            continue
        if any(is_near_duplicate(title, seen, threshold) for seen in accepted):
            result.dropped.append((candidate, DropReason.FUZZY))
            continue

        accepted.append(title)
        exact.add(title)
        result.kept.append(candidate)

    if result.dropped:
        logger.debug(
            "duplicates_filtered",
            component="dedupe",
            kept=len(result.kept),
            dropped=result.dropped_count,
        )

    return result


def filter_duplicates(
    candidates: Iterable[T],
    existing_titles: Iterable[str],
    dismissed_titles: Iterable[str] = (),
    title_of: Callable[[T], str] = attrgetter("title"),
) -> list[T]:
    """Return the candidates that are not duplicates, in original order.

    See ``filter_duplicates_detailed`` for the matching rules.
    """
    return filter_duplicates_detailed(
        candidates, existing_titles, dismissed_titles, title_of
    ).kept
