"""Error types for source providers."""

from src.sources.models import SourceWarning


class ProviderError(Exception):
    """A single source failed to search.

    Non-fatal: the aggregator turns it into a ``SourceWarning`` and keeps
    the results of every other source.
    """

    def __init__(
        self,
        source: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        """Initialize the provider error.

        Args:
            source: Source that failed.
            message: Human-readable error message.
            status_code: HTTP status code if the failure came from a response.
        """
        super().__init__(message)
        self.source = source
        self.message = message
        self.status_code = status_code

    def to_dict(self) -> dict[str, str | int | None]:
        """Convert error to dictionary for logging/serialization.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "source": self.source,
            "message": self.message,
            "status_code": self.status_code,
        }

    def to_warning(self) -> SourceWarning:
        """Convert to the warning record surfaced with search results."""
        details: dict[str, str | int | bool | None] = {}
        if self.status_code is not None:
            details["status_code"] = self.status_code
        return SourceWarning(
            source=self.source,
            message=self.message or "Search failed",
            details=details,
        )
