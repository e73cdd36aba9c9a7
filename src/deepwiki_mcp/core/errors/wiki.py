"""Wiki retrieval and parsing error classes."""

from typing import List, Optional


class WikiError(Exception):
    """Base exception for wiki retrieval and parsing."""


class WikiFetchError(WikiError):
    """Raised when the wiki page for a repository cannot be downloaded."""

    def __init__(self, repo: str, reason: str, *, status_code: Optional[int] = None):
        self.repo = repo
        self.status_code = status_code
        super().__init__(f"Failed to fetch wiki for {repo}: {reason}")


class WikiParseError(WikiError):
    """Raised when a requested chapter or section cannot be resolved.

    Attributes:
        candidates: Matching headers when the request was ambiguous
    """

    def __init__(self, message: str, *, candidates: Optional[List[str]] = None):
        self.candidates = list(candidates or [])
        super().__init__(message)
