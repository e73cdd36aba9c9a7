"""Parsing and normalization helpers for configuration values.

Provides boolean parsing, polling-schedule parsing and directory-list
parsing used by other config sub-modules.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

logger = logging.getLogger(__name__)


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _try_parse_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in {"true", "1", "yes", "on"}:
        return True
    if normalized in {"false", "0", "no", "off"}:
        return False
    return None


def parse_poll_schedule(raw: Any, default: Sequence[int]) -> List[int]:
    """Parse a polling schedule override into sorted second offsets.

    Accepts a comma-separated string (``"10,20,30"``) or a list of integers
    (as found in TOML). Every entry must be a positive integer; if any entry
    is invalid, or the override is empty, the default schedule is returned.

    Args:
        raw: Override value from env or TOML (may be None)
        default: Schedule to fall back to

    Returns:
        Schedule sorted ascending
    """
    if raw is None:
        return list(default)

    if isinstance(raw, str):
        if not raw.strip():
            return list(default)
        entries: List[Any] = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        entries = list(raw)
    else:
        logger.warning("Ignoring polling schedule of type %s; using defaults", type(raw).__name__)
        return list(default)

    parsed: List[int] = []
    for entry in entries:
        try:
            seconds = int(str(entry).strip())
        except ValueError:
            logger.warning("Invalid polling interval %r; using default schedule", entry)
            return list(default)
        if seconds <= 0:
            logger.warning("Polling interval must be positive, got %r; using default schedule", entry)
            return list(default)
        parsed.append(seconds)

    if not parsed:
        return list(default)
    return sorted(parsed)


def _parse_path_list(raw: Any) -> List[Path]:
    """Parse a comma-separated string or list into expanded, resolved paths."""
    if isinstance(raw, str):
        items = [p.strip() for p in raw.split(",")]
    elif isinstance(raw, (list, tuple)):
        items = [str(p).strip() for p in raw]
    else:
        return []
    return [Path(p).expanduser().resolve() for p in items if p]
