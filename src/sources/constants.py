"""Constants for candidate discovery."""

# Sources searched when the caller does not choose any
DEFAULT_SOURCES: tuple[str, ...] = ("gmail", "calendar", "drive", "slack")

# Query length accepted by the search endpoint
MAX_QUERY_LENGTH = 500

# Per-source result limits
DEFAULT_MAX_RESULTS = 20
MAX_RESULTS_FLOOR = 1
MAX_RESULTS_CEILING = 100

# Minimum analysis score for a candidate to be auto-selected
MIN_AI_CONFIDENCE = 0.6
