"""Saved-output helpers: file naming, directory layout and location checks."""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Literal, Optional

from deepwiki_mcp.config import StorageConfig
from deepwiki_mcp.core.cache import repo_folder
from deepwiki_mcp.core.errors import PathValidationError

logger = logging.getLogger(__name__)

OutputKind = Literal["question", "wiki"]

_STOP_WORDS = frozenset({"how", "what", "why", "when", "where", "the", "and", "for", "with"})
_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def generate_descriptive_name(question: Optional[str]) -> str:
    """Build a kebab-case filename fragment from the first meaningful words.

    Words of two characters or fewer and common question words are dropped.

    Example:
        >>> generate_descriptive_name("How does the authentication work?")
        'does-authentication-work'
        >>> generate_descriptive_name(None)
        'query'
    """
    if not question:
        return "query"
    words = _NON_ALNUM.sub(" ", question.lower()).split()
    meaningful = [word for word in words if len(word) > 2 and word not in _STOP_WORDS]
    return "-".join(meaningful[:3]) or "query"


def ensure_output_structure(storage: StorageConfig, repo: str, kind: OutputKind) -> Path:
    """Create and return ``<output_dir>/<owner-repo>/<questions|wiki>``."""
    subfolder = "questions" if kind == "question" else "wiki"
    path = Path(storage.output_dir).expanduser() / repo_folder(repo) / subfolder
    path.mkdir(parents=True, exist_ok=True)
    return path


def timestamped_filename(description: str, suffix: str = "", now: Optional[datetime] = None) -> str:
    """Return ``YYYY-MM-DD_HH-MM-SS_<description><suffix>.md``."""
    now = now or datetime.now()
    return f"{now.strftime('%Y-%m-%d_%H-%M-%S')}_{description}{suffix}.md"


def validate_save_location(storage: StorageConfig, save_location: str) -> Path:
    """Resolve a caller-supplied path and check it is safe to write.

    Raises:
        PathValidationError: If the path is empty, escapes the allowed
            directories, or contains a ``..`` component
    """
    if not save_location or not isinstance(save_location, str):
        raise PathValidationError(str(save_location), "must be a non-empty string")

    if ".." in Path(save_location).parts:
        raise PathValidationError(save_location, "path traversal patterns not allowed")

    resolved = Path(save_location).expanduser().resolve()
    allowed = storage.get_allowed_directories()
    if not any(resolved == base or resolved.is_relative_to(base) for base in allowed):
        raise PathValidationError(
            save_location,
            "outside allowed directories",
            detail="must be within one of: " + ", ".join(str(base) for base in allowed),
        )
    return resolved


def save_markdown(path: Path, markdown: str) -> Path:
    """Write markdown to ``path``, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(markdown, encoding="utf-8")
    logger.info("Output saved to %s", path)
    return path
