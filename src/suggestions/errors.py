"""Error types for the suggestion generator."""


class SuggestionGeneratorError(Exception):
    """Suggestion generator call failure.

    Attributes:
        status_code: HTTP status code from the response, 0 if none.
    """

    def __init__(self, message: str, status_code: int = 0) -> None:
        super().__init__(message)
        self.status_code = status_code
