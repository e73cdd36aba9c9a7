"""File-based response cache.

Entries are keyed by (kind, identifier, repository). Layout::

    <cache_dir>/<owner-repo>/questions/query-<id>.json
    <cache_dir>/<owner-repo>/wiki/wiki_<md5>.md
    <cache_dir>/<kind>_<md5>.json            (no repository)

Writes are atomic (temp file + rename). There is no locking; the last
writer wins.
"""

import hashlib
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Literal, Optional

logger = logging.getLogger(__name__)

CacheKind = Literal["question", "wiki"]

_UNSAFE_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*]')


def repo_folder(repo: str) -> str:
    """Flatten ``owner/name`` into a single directory name."""
    return repo.replace("/", "-")


def _digest(identifier: str) -> str:
    return hashlib.md5(identifier.encode("utf-8")).hexdigest()


def _looks_like_query_id(identifier: str) -> bool:
    # Engine ids are long and hyphenated; anything else is a synthetic key.
    return "-" in identifier and len(identifier) > 30


class ResponseCache:
    """Read and write cached question documents and wiki pages."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir).expanduser()

    def path_for(self, kind: CacheKind, identifier: str, repo: Optional[str] = None) -> Path:
        """Return the file path an entry is stored at."""
        if kind == "wiki":
            filename = f"wiki_{_digest(identifier)}.md"
        elif _looks_like_query_id(identifier):
            filename = f"query-{_UNSAFE_FILENAME_CHARS.sub('_', identifier)}.json"
        else:
            filename = f"{kind}_{_digest(identifier)}.json"

        if not repo:
            return self.cache_dir / filename
        subfolder = "questions" if kind == "question" else "wiki"
        return self.cache_dir / repo_folder(repo) / subfolder / filename

    def get(self, kind: CacheKind, identifier: str, repo: Optional[str] = None) -> Optional[str]:
        """Return cached text, or None when absent or unreadable."""
        path = self.path_for(kind, identifier, repo)
        try:
            content = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning("Failed to read cache entry %s: %s", path, e)
            return None
        logger.debug("Cache hit: %s", path)
        return content

    def set(self, kind: CacheKind, identifier: str, content: str, repo: Optional[str] = None) -> Path:
        """Store text and return the path written."""
        path = self.path_for(kind, identifier, repo)
        path.parent.mkdir(parents=True, exist_ok=True)

        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

        logger.debug("Cached %s entry at %s", kind, path)
        return path

    def get_json(self, kind: CacheKind, identifier: str, repo: Optional[str] = None) -> Optional[Any]:
        """Return a cached JSON value; corrupt entries count as misses."""
        content = self.get(kind, identifier, repo)
        if content is None:
            return None
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("Ignoring corrupt cache entry for %s: %s", identifier, e)
            return None

    def set_json(self, kind: CacheKind, identifier: str, value: Any, repo: Optional[str] = None) -> Path:
        return self.set(kind, identifier, json.dumps(value, indent=2), repo)
