"""Assemble raw query payloads into answers and normalized documents.

``collect_result`` produces the flat answer/references/stats summary the
automation layer returns; ``assemble_document`` produces the structured
``NormalizedDocument`` the renderer consumes.  Both are pure functions.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, NamedTuple, Optional, Sequence, Set, Tuple

from deepwiki_mcp.core.automation.models import (
    ApiQuery,
    Citation,
    FileCapture,
    Reference,
    Statistic,
    TextChunk,
)
from deepwiki_mcp.core.transform.models import (
    AnswerSegment,
    ContextFile,
    ConversationTurn,
    NormalizedDocument,
    ReferencedFile,
)

logger = logging.getLogger(__name__)

TURN_SEPARATOR = "\n\n---\n\n"
SEARCHING_MARKER = "Searching codebase..."

# "Repo owner/name: path/to/file.py" with an optional ":start-end" suffix
_PREFIXED_PATH = re.compile(r"Repo\s+([^:]+):\s+([^:]+)(?::\d+-\d+)?")


class CollectedResult(NamedTuple):
    answer: Optional[str]
    references: List[Reference]
    stats: Dict[str, float]
    queries: List[ApiQuery]


def collect_result(queries: Sequence[ApiQuery]) -> CollectedResult:
    """Flatten a completed conversation into answer text, references and stats.

    Chunks are joined per query and the per-query answers are separated by
    a horizontal rule.  Citations contribute their range; file captures
    contribute a 0-0 reference.  Statistics are merged, last write wins.
    """
    answers: List[str] = []
    references: List[Reference] = []
    stats: Dict[str, float] = {}

    for query in queries:
        parts: List[str] = []
        for fragment in query.fragments:
            if isinstance(fragment, TextChunk):
                parts.append(fragment.text)
            elif isinstance(fragment, Citation):
                references.append(
                    Reference(fragment.file_path, fragment.range_start or 0, fragment.range_end or 0)
                )
            elif isinstance(fragment, Statistic):
                stats[fragment.key] = fragment.value
            elif isinstance(fragment, FileCapture):
                references.append(Reference(fragment.full_path, 0, 0))
        text = "".join(parts).strip()
        if text:
            answers.append(text)

    answer = TURN_SEPARATOR.join(answers).strip() or None
    return CollectedResult(answer, references, stats, list(queries))


def format_reference_key(citation: Citation) -> str:
    """Normalize a citation's path into ``owner/name: path[:start-end]``."""
    file_path = citation.file_path
    suffix = f":{citation.range_start}-{citation.range_end}" if citation.has_range else ""

    if "Repo " in file_path:
        match = _PREFIXED_PATH.search(file_path)
        if match:
            return f"{match.group(1)}: {match.group(2)}{suffix}"
        return file_path

    parts = file_path.split("/")
    if len(parts) >= 3:
        return f"{'/'.join(parts[:2])}: {'/'.join(parts[2:])}{suffix}"
    return f"{file_path}{suffix}"


def resolve_reference_path(file_path: str) -> str:
    """Map a prefixed ``Repo owner/name: path`` form to ``owner/name/path``."""
    if "Repo " in file_path:
        match = _PREFIXED_PATH.search(file_path)
        if match:
            return f"{match.group(1)}/{match.group(2)}"
    return file_path


def strip_search_preamble(text: str) -> str:
    """Drop the "Searching codebase..." progress lines the engine echoes."""
    last = text.rfind(SEARCHING_MARKER)
    if last == -1:
        return text
    end_of_line = text.find("\n", last)
    if end_of_line == -1:
        return ""
    return text[end_of_line + 1 :].lstrip("\n")


def _segment_query(query: ApiQuery) -> List[AnswerSegment]:
    segments: List[AnswerSegment] = []
    buffer: List[str] = []
    for fragment in query.fragments:
        if isinstance(fragment, TextChunk):
            buffer.append(fragment.text)
        elif isinstance(fragment, Citation) and buffer:
            segments.append(AnswerSegment(text="".join(buffer), reference=format_reference_key(fragment)))
            buffer = []
    if buffer:
        segments.append(AnswerSegment(text="".join(buffer)))
    return segments


def slice_reference(lines: Sequence[str], range_start: int, range_end: int) -> str:
    """Extract cited lines: 1-based start, end used as an exclusive bound."""
    start = max(0, range_start - 1)
    end = min(len(lines), range_end)
    if start >= end:
        return ""
    return "\n".join(lines[start:end])


def assemble_document(
    query_id: str,
    queries: Sequence[ApiQuery],
    references: Sequence[Reference],
) -> NormalizedDocument:
    """Build the normalized document for a completed conversation.

    Args:
        query_id: Identifier of the conversation
        queries: All turns, oldest first
        references: References as returned by ``collect_result``

    Returns:
        NormalizedDocument with segments, resolved citations and captures
    """
    document = NormalizedDocument(
        query_id=query_id,
        repo_context_ids=list(queries[0].repo_context_ids) if queries else [],
    )

    for query in queries:
        document.conversation.append(
            ConversationTurn(user_query=query.user_query, answer_segments=_segment_query(query))
        )

    if document.conversation and document.conversation[0].answer_segments:
        first = document.conversation[0].answer_segments[0]
        if SEARCHING_MARKER in first.text:
            first.text = strip_search_preamble(first.text)

    captured: Dict[str, List[str]] = {}
    for query in queries:
        for fragment in query.fragments:
            if isinstance(fragment, FileCapture):
                document.full_context.append(ContextFile(file_name=fragment.full_path, text=fragment.content))
                captured[fragment.full_path] = fragment.content.split("\n")

    seen: Set[Tuple[str, str]] = set()
    for ref in references:
        if ref.is_degenerate:
            continue
        path = resolve_reference_path(ref.file_path)
        reference_range = f"{ref.range_start}-{ref.range_end}"
        if (path, reference_range) in seen:
            continue
        seen.add((path, reference_range))

        lines = captured.get(path)
        if lines is None:
            logger.debug("No captured content for cited file %s", path)
        material = slice_reference(lines, ref.range_start, ref.range_end) if lines is not None else ""
        document.referenced_files.setdefault(path, []).append(
            ReferencedFile(reference_range=reference_range, reference_material=material)
        )

    return document


def latest_turn_only(document: NormalizedDocument) -> NormalizedDocument:
    """Return a copy holding only the most recent conversation turn."""
    if len(document.conversation) <= 1:
        return document
    return document.model_copy(update={"conversation": [document.conversation[-1]]})
