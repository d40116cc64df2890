"""Title normalization and fuzzy similarity signals."""

from src.dedupe.constants import MIN_TOKEN_LENGTH, OVERLAP_THRESHOLD


def normalize_title(title: str) -> str:
    """Normalize a title for comparison (lowercase, trimmed)."""
    return title.strip().lower()


def significant_tokens(normalized: str) -> set[str]:
    """Split a normalized title into tokens longer than two characters."""
    return {token for token in normalized.split() if len(token) > MIN_TOKEN_LENGTH}


def token_overlap_ratio(a: str, b: str) -> float:
    """Share of significant tokens two normalized titles have in common.

    The ratio is ``|shared| / min(|tokens a|, |tokens b|)``. A title with no
    significant tokens yields 0.0, so it can only be matched by containment.

    Args:
        a: First normalized title.
        b: Second normalized title.

    Returns:
        Overlap ratio between 0.0 and 1.0.
    """
    tokens_a = significant_tokens(a)
    tokens_b = significant_tokens(b)
    smaller = min(len(tokens_a), len(tokens_b))
    if smaller == 0:
        return 0.0
    return len(tokens_a & tokens_b) / smaller


def is_contained(a: str, b: str) -> bool:
    """Check substring containment in either direction.

    An empty title contains nothing and is contained by nothing; it can
    only match another empty title exactly.
    """
    if not a or not b:
        return False
    return a in b or b in a


def is_near_duplicate(
    a: str,
    b: str,
    threshold: float = OVERLAP_THRESHOLD,
) -> bool:
    """Check whether two normalized titles describe the same thing.

    Args:
        a: First normalized title.
        b: Second normalized title.
        threshold: Overlap ratio that must be exceeded.

    Returns:
        True if either title contains the other or the overlap exceeds
        the threshold.
    """
    return is_contained(a, b) or token_overlap_ratio(a, b) > threshold
