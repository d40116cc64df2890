"""Constants for fuzzy title deduplication."""

# Tokens of this length or shorter are ignored by the overlap signal
MIN_TOKEN_LENGTH = 2

# Overlap ratio above which two titles are duplicates
OVERLAP_THRESHOLD = 0.6
