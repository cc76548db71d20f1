"""
Exceptions raised by the material search pipeline.

Only FallbackExhausted is meant to reach callers of SearchEngine.search;
everything else is contained by the engine and turned into a degraded result.
"""

from typing import Optional


class SearchError(Exception):
    """Base class for search pipeline errors."""


class RetrievalError(SearchError):
    """The materials store could not answer a query."""


class SemanticServiceError(SearchError):
    """
    The similarity service failed: non-2xx status, malformed payload or timeout.

    Never fatal. The current search continues with lexical scores only.
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class FallbackExhausted(SearchError):
    """Every strategy in a fallback chain failed."""

    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.last_error = last_error
