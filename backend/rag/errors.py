"""Errors raised on the document-scoped retrieval path."""
from __future__ import annotations


class RetrievalError(Exception):
    code = "retrieval_error"
    status_code = 500


class NoSelection(RetrievalError):
    """No documents were selected; the request must not reach the index."""

    code = "no_selection"
    status_code = 400

    def __init__(self, reason: str = "no documents selected") -> None:
        self.reason = reason
        super().__init__(reason)


class InvalidQuery(RetrievalError):
    code = "invalid_query"
    status_code = 400

    def __init__(self, query: object) -> None:
        self.query = query
        super().__init__("query text must be a non-empty string")


class InvalidLimit(RetrievalError):
    code = "invalid_limit"
    status_code = 400

    def __init__(self, limit: object) -> None:
        self.limit = limit
        super().__init__(f"result limit must be a positive integer, got {limit!r}")


class UpstreamSearchFailure(RetrievalError):
    """
    The similarity search collaborator failed.

    Attributes:
        backend: Name of the index backend that failed
    """

    code = "search_unavailable"
    status_code = 502

    def __init__(self, backend: str, cause: BaseException | None = None) -> None:
        self.backend = backend
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"similarity search failed on '{backend}'{detail}")
