"""AI topic suggestions with session-scoped deduplication."""

from src.suggestions.errors import SuggestionGeneratorError
from src.suggestions.finder import SuggestionFinder
from src.suggestions.generator import HttpSuggestionGenerator, SuggestionGenerator
from src.suggestions.models import Suggestion
from src.suggestions.session import SuggestionSession


__all__ = [
    "HttpSuggestionGenerator",
    "Suggestion",
    "SuggestionFinder",
    "SuggestionGenerator",
    "SuggestionGeneratorError",
    "SuggestionSession",
]
