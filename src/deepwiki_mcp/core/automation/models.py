"""Data model for DeepWiki query payloads and automation results.

The status endpoint returns ``{"queries": [...]}`` where each query carries
a ``response`` array of loosely shaped items: the meaning of ``data``
depends on its sibling ``type``.  ``decode_fragment`` turns each raw item
into one of four frozen dataclasses at the boundary so that the assembler
only ever sees a closed set of fragment types.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class QueryState(str, Enum):
    """Lifecycle state of one query as reported by the status endpoint."""

    PENDING = "pending"
    DONE = "done"
    COMPLETE = "complete"
    ERROR = "error"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> "QueryState":
        """Map a raw state string to a member, unrecognized values to UNKNOWN."""
        if not value:
            return cls.UNKNOWN
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_success(self) -> bool:
        # "done" and "complete" are reported interchangeably by the backend
        return self in (QueryState.DONE, QueryState.COMPLETE)


class ApiQuery(BaseModel):
    """One conversation turn as returned by the status endpoint.

    Only ``user_query``, ``repo_context_ids``, ``response``, ``error`` and
    ``state`` are consumed. Values of an unexpected type are coerced rather
    than rejected so one odd field never discards a whole payload.
    """

    model_config = ConfigDict(extra="ignore")

    user_query: str = Field(default="", description="Question text for this turn")
    use_knowledge: Optional[Any] = Field(None, description="Whether wiki knowledge was used")
    engine_id: Optional[Any] = Field(None, description="Remote engine identifier")
    repo_context_ids: List[str] = Field(default_factory=list, description="Repositories searched")
    response: List[Any] = Field(default_factory=list, description="Raw response fragments")
    error: Optional[Any] = Field(None, description="Remote error, if any")
    state: Optional[str] = Field(None, description="Raw state string")
    redis_stream: Optional[Any] = Field(None, description="Remote stream identifier")

    @field_validator("user_query", mode="before")
    @classmethod
    def _coerce_user_query(cls, v: Any) -> str:
        if v is None:
            return ""
        return v if isinstance(v, str) else str(v)

    @field_validator("state", mode="before")
    @classmethod
    def _coerce_state(cls, v: Any) -> Optional[str]:
        if v is None or isinstance(v, str):
            return v
        return str(v)

    @field_validator("repo_context_ids", mode="before")
    @classmethod
    def _coerce_repo_ids(cls, v: Any) -> List[str]:
        if not isinstance(v, (list, tuple)):
            return []
        return [item for item in v if isinstance(item, str)]

    @field_validator("response", mode="before")
    @classmethod
    def _coerce_response(cls, v: Any) -> List[Any]:
        return list(v) if isinstance(v, (list, tuple)) else []

    @property
    def query_state(self) -> QueryState:
        return QueryState.parse(self.state)

    @property
    def error_message(self) -> Optional[str]:
        """The remote error as text, or None when no error was reported."""
        if not self.error:
            return None
        if isinstance(self.error, str):
            return self.error
        if isinstance(self.error, dict) and isinstance(self.error.get("message"), str):
            return self.error["message"]
        return str(self.error)

    @property
    def fragments(self) -> List["Fragment"]:
        """Decoded response fragments, malformed items skipped."""
        decoded = (decode_fragment(item) for item in self.response)
        return [fragment for fragment in decoded if fragment is not None]


class StatusPayload(BaseModel):
    """Body of a successful status endpoint response."""

    model_config = ConfigDict(extra="ignore")

    queries: List[ApiQuery] = Field(default_factory=list)

    @field_validator("queries", mode="before")
    @classmethod
    def _drop_non_objects(cls, v: Any) -> List[Any]:
        if not isinstance(v, (list, tuple)):
            return []
        return [item for item in v if isinstance(item, dict)]


@dataclass(frozen=True)
class TextChunk:
    """A piece of streamed answer prose."""

    text: str


@dataclass(frozen=True)
class Citation:
    """A file and line range cited by the preceding prose."""

    file_path: str
    range_start: Optional[int] = None
    range_end: Optional[int] = None

    @property
    def has_range(self) -> bool:
        return self.range_start is not None and self.range_end is not None


@dataclass(frozen=True)
class Statistic:
    key: str
    value: float


@dataclass(frozen=True)
class FileCapture:
    """Full text of a file the engine read while answering."""

    repository: str
    path: str
    content: str

    @property
    def full_path(self) -> str:
        return f"{self.repository}/{self.path}"


Fragment = Union[TextChunk, Citation, Statistic, FileCapture]


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def decode_fragment(item: Any) -> Optional[Fragment]:
    """Decode one raw response item into a typed fragment.

    Returns None (and logs at debug level) when the item has an unknown
    type or a ``data`` value whose shape does not match its type.
    """
    if not isinstance(item, dict):
        logger.debug("Skipping non-object response item: %r", item)
        return None

    kind = item.get("type")
    data = item.get("data")

    if kind == "chunk":
        if isinstance(data, str):
            return TextChunk(data)
    elif kind == "reference":
        if isinstance(data, dict) and isinstance(data.get("file_path"), str):
            return Citation(
                file_path=data["file_path"],
                range_start=_as_int(data.get("range_start")),
                range_end=_as_int(data.get("range_end")),
            )
    elif kind == "stats":
        if isinstance(data, dict) and data.get("key"):
            value = data.get("value")
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return Statistic(key=str(data["key"]), value=value)
    elif kind == "file_contents":
        if isinstance(data, (list, tuple)) and len(data) >= 2 and all(isinstance(part, str) for part in data[:3]):
            content = data[2] if len(data) >= 3 else ""
            return FileCapture(repository=data[0], path=data[1], content=content)
    else:
        logger.debug("Skipping response item of unknown type %r", kind)
        return None

    logger.debug("Skipping %s item with mismatched data shape", kind)
    return None


@dataclass(frozen=True)
class Reference:
    """A cited file range collected from a completed conversation.

    File captures contribute a 0-0 reference, the engine's marker for
    "no specific range".
    """

    file_path: str
    range_start: int = 0
    range_end: int = 0

    @property
    def is_degenerate(self) -> bool:
        return self.range_start == 0 and self.range_end == 0

    def to_dict(self) -> Dict[str, Any]:
        return {"file_path": self.file_path, "range_start": self.range_start, "range_end": self.range_end}


@dataclass
class AutomationResult:
    """Outcome of one automation operation.

    On success ``query_id``, ``answer``, ``references``, ``stats`` and
    ``raw_queries`` are populated; on failure only ``error`` is.
    """

    success: bool
    query_id: Optional[str] = None
    answer: Optional[str] = None
    references: List[Reference] = field(default_factory=list)
    stats: Dict[str, float] = field(default_factory=dict)
    raw_queries: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None

    @classmethod
    def failure(cls, error: str) -> "AutomationResult":
        return cls(success=False, error=error)

    @property
    def queries(self) -> List[ApiQuery]:
        return [ApiQuery.model_validate(raw) for raw in self.raw_queries]


def dump_queries(queries: Sequence[ApiQuery]) -> List[Dict[str, Any]]:
    """Serialize queries to JSON-compatible dicts for caching."""
    return [query.model_dump(mode="json") for query in queries]
