"""Save-location authorization error classes."""

from typing import Optional


class PathValidationError(Exception):
    """Raised when a save location falls outside the allowed directories."""

    def __init__(self, path: str, reason: str, detail: Optional[str] = None):
        self.path = path
        self.reason = reason
        self.detail = detail
        message = f"Invalid save location: {reason} (path={path})"
        if detail:
            message = f"{message}; {detail}"
        super().__init__(message)
