"""Caller input error classes."""

from typing import Optional


class ValidationError(ValueError):
    """Raised when a tool argument fails validation.

    Attributes:
        field: Name of the offending argument, when known
    """

    def __init__(self, message: str, *, field: Optional[str] = None):
        self.field = field
        super().__init__(message)


class CacheMissError(ValidationError):
    """Raised when a query id has no cached response to re-render."""

    def __init__(self, query_id: str):
        self.query_id = query_id
        super().__init__(
            f"No cached response found for query ID: {query_id}. "
            "Ask the question first or check the query ID.",
            field="query_id",
        )
