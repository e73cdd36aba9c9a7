"""Response transformation: raw query payloads to normalized documents to markdown."""

from deepwiki_mcp.core.transform.assembler import (
    CollectedResult,
    assemble_document,
    collect_result,
    format_reference_key,
    latest_turn_only,
)
from deepwiki_mcp.core.transform.models import (
    AnswerSegment,
    ContextFile,
    ConversationTurn,
    NormalizedDocument,
    ReferencedFile,
)
from deepwiki_mcp.core.transform.renderer import MarkdownRenderer, RenderOptions, render_markdown

__all__ = [
    "AnswerSegment",
    "CollectedResult",
    "ContextFile",
    "ConversationTurn",
    "MarkdownRenderer",
    "NormalizedDocument",
    "ReferencedFile",
    "RenderOptions",
    "assemble_document",
    "collect_result",
    "format_reference_key",
    "latest_turn_only",
    "render_markdown",
]
