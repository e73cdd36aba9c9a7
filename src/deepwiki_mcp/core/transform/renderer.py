"""Render a NormalizedDocument as markdown."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from deepwiki_mcp.core.transform.models import NormalizedDocument

_BACKTICK_RUN = re.compile(r"`+")


@dataclass
class RenderOptions:
    """Which sections of a document to render.

    Attributes:
        include_answer: Render the answer prose with inline citation markers
        include_references_list: Render the numbered reference list
        references_all: Expand every cited snippet
        references_numbers: Expand only these 1-based reference numbers
        context_all: Render every captured file in full
        context_files: Render only these captured files
        context_ranges: Per-file (start, end) line window, 0-based inclusive
    """

    include_answer: bool = True
    include_references_list: bool = True
    references_all: bool = False
    references_numbers: Optional[List[int]] = None
    context_all: bool = False
    context_files: Optional[List[str]] = None
    context_ranges: Dict[str, Tuple[int, int]] = field(default_factory=dict)


def code_fence(content: str) -> str:
    """Return a backtick fence longer than any backtick run in ``content``."""
    longest = max((len(run) for run in _BACKTICK_RUN.findall(content)), default=0)
    return "`" * max(3, longest + 1)


def _fenced(content: str) -> str:
    fence = code_fence(content)
    body = content if content.endswith("\n") else content + "\n"
    return f"{fence}\n{body}{fence}\n\n"


def _split_reference_key(key: str) -> Optional[Tuple[str, str]]:
    """Split ``owner/name: path:s-e`` into (``owner/name/path``, ``s-e``)."""
    first_colon = key.find(":")
    if first_colon == -1:
        return None
    repo = key[:first_colon].strip()
    rest = key[first_colon + 1 :].strip()
    last_colon = rest.rfind(":")
    if last_colon == -1:
        return None
    return f"{repo}/{rest[:last_colon].strip()}", rest[last_colon + 1 :].strip()


class MarkdownRenderer:
    """Projects a normalized document into markdown under RenderOptions."""

    def __init__(self, document: NormalizedDocument):
        self.document = document
        self._keys = document.reference_keys()

    def render(self, options: Optional[RenderOptions] = None) -> str:
        options = options or RenderOptions()
        sections = [self.format_query_id()]
        if options.include_answer:
            sections.append(self.format_answer())
        sections.append(self.format_repo_context_ids())
        if options.include_references_list:
            sections.append(self.format_references())
        if options.references_all or options.references_numbers:
            sections.append(self.format_referenced_files(options.references_all, options.references_numbers))

        markdown = "\n".join(sections) + "\n"
        if options.include_answer and options.include_references_list:
            markdown += self.format_full_context_names()
        elif options.context_all or options.context_files:
            markdown += self.format_full_context(options.context_all, options.context_files, options.context_ranges)
        return markdown.strip()

    def format_query_id(self) -> str:
        return f"# Query ID\n\n{self.document.query_id}\n"

    def format_answer(self) -> str:
        numbers = {key: index for index, key in enumerate(self._keys, start=1)}
        parts = ["# Answer\n\n"]
        for index, turn in enumerate(self.document.conversation):
            if index > 0:
                parts.append(f"\n---\n\n**Follow-up:** {turn.user_query}\n\n")
            for segment in turn.answer_segments:
                parts.append(segment.text)
                if segment.reference:
                    parts.append(f" [{numbers[segment.reference]}]")
        return "".join(parts) + "\n"

    def format_repo_context_ids(self) -> str:
        lines = "".join(f"- {repo_id}\n" for repo_id in self.document.repo_context_ids)
        return f"# Repo Context IDs\n\n{lines}"

    def format_references(self) -> str:
        lines = "".join(f"[{index}]: {key} \n" for index, key in enumerate(self._keys, start=1))
        return f"# References\n\n{lines}"

    def selected_reference_keys(self, include_all: bool, numbers: Optional[Sequence[int]]) -> List[str]:
        """Keys chosen for expansion; out-of-range numbers are ignored."""
        if include_all:
            return list(self._keys)
        chosen: Set[int] = {n for n in numbers or () if 1 <= n <= len(self._keys)}
        return [key for index, key in enumerate(self._keys, start=1) if index in chosen]

    def format_referenced_files(self, include_all: bool, numbers: Optional[Sequence[int]]) -> str:
        wanted: Dict[str, Set[str]] = {}
        for key in self.selected_reference_keys(include_all, numbers):
            parsed = _split_reference_key(key)
            if parsed is not None:
                wanted.setdefault(parsed[0], set()).add(parsed[1])

        parts = ["# Referenced Files\n\n"]
        for file_name, entries in self.document.referenced_files.items():
            ranges = wanted.get(file_name)
            if ranges is None:
                continue
            parts.append(f"## {file_name}\n\n")
            for entry in entries:
                if entry.reference_range not in ranges:
                    continue
                parts.append(f"**[{entry.reference_range}]:**\n\n")
                parts.append(_fenced(entry.reference_material))
        return "".join(parts)

    def format_full_context_names(self) -> str:
        parts = ["# Full Context Files\n\n"]
        for context in self.document.full_context:
            parts.append(f"## {context.file_name} [0-{len(context.lines) - 1}]\n\n")
        return "".join(parts)

    def format_full_context(
        self,
        include_all: bool,
        files: Optional[Sequence[str]],
        ranges: Optional[Dict[str, Tuple[int, int]]] = None,
    ) -> str:
        ranges = ranges or {}
        parts = ["# Full Context Files\n\n"]
        for context in self.document.full_context:
            if not include_all and context.file_name not in (files or ()):
                continue
            lines = context.lines
            start, end = 0, len(lines) - 1
            if context.file_name in ranges:
                start, requested_end = ranges[context.file_name]
                end = min(requested_end, len(lines) - 1)
            parts.append(f"## {context.file_name} [{start}-{end}]\n\n")
            parts.append(_fenced("\n".join(lines[start : end + 1])))
        return "".join(parts)


def render_markdown(document: NormalizedDocument, options: Optional[RenderOptions] = None) -> str:
    """Convenience wrapper around ``MarkdownRenderer.render``."""
    return MarkdownRenderer(document).render(options)
