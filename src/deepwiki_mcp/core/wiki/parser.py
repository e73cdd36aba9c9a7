"""Parse the DeepWiki React Server Component stream into chapters and sections.

A wiki page arrives as one RSC text stream.  Chapters are introduced by
``,# <title>`` markers; the chapter list itself is usually also embedded as
a loosely-quoted ``"wiki": {... "pages": [...]}`` object.  Sections are the
``##`` to ``####`` markdown headers inside a chapter and are addressed as
``Chapter##Section``.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from deepwiki_mcp.core.errors.wiki import WikiParseError

logger = logging.getLogger(__name__)

CHAPTER_MARKER = ",# "
_PAGES_BLOCK = re.compile(r'"wiki":\s*\{.*?"pages":\s*\[(.*?)\]\s*\}', re.DOTALL)
_CHAPTER_TITLE = re.compile(r",# ([^\n]+)")
_HEADER_LINE = re.compile(r"^(#{2,4})\s+(.+)$", re.MULTILINE)
_HEADER_BLOCK = re.compile(r"^(#{2,4}\s+[^\n]+)$", re.MULTILINE)
_RSC_ROW_MARKER = re.compile(r"[0-9]+[a-z]:T[a-zA-Z0-9]+")
_HEADER_IN_REQUEST = re.compile(r"(?<=[^#])#{2,4}")
_REQUESTED_HEADER = re.compile(r"#{2,4}\s*[^#\s][^#\n]*")

_DETAILS_END = "</details>"
_EXCLUDED_CHAPTERS = "---------------------------------------\nExcluded chapters"
_TRAILING_PAYLOAD = '16:["$","$L17"'

MAX_DEPTH = 4


@dataclass(frozen=True)
class ChapterInfo:
    id: str
    title: str

    @property
    def full_title(self) -> str:
        return f"# {self.title}"

    def matches(self, requested: str) -> bool:
        """Match by title, id, ``"id: title"`` or ``"Chapter <id>"``."""
        return requested in (self.title, self.id, f"{self.id}: {self.title}", f"Chapter {self.id}")


@dataclass(frozen=True)
class Chapter:
    id: str
    title: str
    content: str


@dataclass(frozen=True)
class HeaderInfo:
    level: int
    title: str
    path: str


def header_level(header: str) -> int:
    return len(header) - len(header.lstrip("#"))


def normalize_header(header: str) -> str:
    """``"## Install "`` and ``"##Install"`` both become ``"##Install"``."""
    return re.sub(r"^(#{2,4})\s*", r"\1", header.strip())


def parse_chapter_string(chapter: str) -> Tuple[str, List[str]]:
    """Split ``"Setup ##Install ##Configure"`` into a title and header requests.

    Strings that begin with ``##`` are standalone section requests and are
    returned whole with no headers.

    Examples:
        >>> parse_chapter_string("Getting Started")
        ('Getting Started', [])
        >>> parse_chapter_string("Setup##Installation")
        ('Setup', ['##Installation'])
    """
    stripped = chapter.strip()
    if stripped.startswith("##"):
        return stripped, []
    match = _HEADER_IN_REQUEST.search(stripped)
    if match is None:
        return stripped, []
    title = stripped[: match.start()].strip()
    headers = [h.strip() for h in _REQUESTED_HEADER.findall(stripped[match.start() :])]
    return title, headers


def _clean_chapter(content: str) -> str:
    details_end = content.find(_DETAILS_END)
    if details_end != -1:
        content = content[details_end + len(_DETAILS_END) :].strip()

    excluded = content.find(_EXCLUDED_CHAPTERS)
    if excluded != -1:
        content = content[:excluded].strip()

    content = _RSC_ROW_MARKER.sub("", content)

    trailing = content.find(_TRAILING_PAYLOAD)
    if trailing != -1:
        content = content[:trailing].strip()
    return content


class WikiParser:
    """Navigate the chapters and sections of one downloaded wiki."""

    def __init__(self, content: str):
        self.content = content

    def chapter_structure(self) -> List[ChapterInfo]:
        """List chapters, preferring the embedded page plan over marker scanning."""
        match = _PAGES_BLOCK.search(self.content)
        if match:
            pages_json = f"[{match.group(1)}]"
            fixed = re.sub(r"\{\s*page_plan\s*:", '{"page_plan":', pages_json)
            fixed = re.sub(r"\{\s*id\s*:", '{"id":', fixed)
            fixed = re.sub(r"\s*title\s*:", '"title":', fixed)
            fixed = re.sub(r"\}\s*,\s*content\s*:", '},"content":', fixed)
            try:
                pages = json.loads(fixed)
                return [ChapterInfo(id=str(p["page_plan"]["id"]), title=p["page_plan"]["title"]) for p in pages]
            except (ValueError, KeyError, TypeError) as e:
                logger.debug("Failed to parse wiki page plan, falling back to chapter markers: %s", e)

        return [
            ChapterInfo(id=str(index), title=m.group(1))
            for index, m in enumerate(_CHAPTER_TITLE.finditer(self.content), start=1)
        ]

    def chapter_titles(self) -> List[str]:
        return [info.title for info in self.chapter_structure()]

    def parse(self, chapters: Optional[Sequence[str]] = None) -> List[Chapter]:
        """Return chapter bodies, optionally limited to the requested chapters."""
        structure = self.chapter_structure()
        if chapters is not None:
            structure = [info for info in structure if any(info.matches(r) for r in chapters)]

        parsed: List[Chapter] = []
        for info in structure:
            marker = f"{CHAPTER_MARKER}{info.title}"
            index = self.content.find(marker)
            if index == -1:
                continue
            start = index + len(marker)
            end = self.content.find(CHAPTER_MARKER, start)
            body = self.content[start : end if end != -1 else len(self.content)]
            parsed.append(Chapter(id=info.id, title=info.title, content=_clean_chapter(body)))
        return parsed

    def extract_headers(self, content: str, chapter_title: str) -> List[HeaderInfo]:
        headers: List[HeaderInfo] = []
        parents: Dict[int, str] = {}
        for match in _HEADER_LINE.finditer(content):
            level = len(match.group(1))
            title = match.group(2).strip()
            parents[level] = title
            for deeper in range(level + 1, MAX_DEPTH + 1):
                parents.pop(deeper, None)

            path = chapter_title
            for lvl in range(2, level + 1):
                if lvl in parents:
                    path += f" {'#' * lvl} {parents[lvl]}"
            headers.append(HeaderInfo(level=level, title=title, path=path))
        return headers

    def full_structure(self) -> Dict[str, List[HeaderInfo]]:
        return {chapter.title: self.extract_headers(chapter.content, chapter.title) for chapter in self.parse()}

    def structure_with_depth(
        self,
        depth: Optional[int] = None,
        chapter_depths: Optional[Dict[str, int]] = None,
    ) -> str:
        """Render the table of contents down to ``depth`` header levels.

        Depth 1 lists chapter titles only; 2 to 4 include ``##`` to ``####``
        headers.  ``chapter_depths`` overrides the depth per chapter title.
        """
        default_depth = depth or 1
        chapter_depths = chapter_depths or {}
        entries: List[str] = []

        for chapter in self.parse():
            chapter_depth = chapter_depths.get(chapter.title) or default_depth
            entry = f"{chapter.id}: {chapter.title}"
            if chapter_depth > 1:
                headers = self.extract_headers(chapter.content, chapter.title)
                shown = [h for h in headers if h.level <= chapter_depth]
                if shown:
                    entry += "\n" + "\n".join(
                        f"{'  ' * (h.level - 1)}{'#' * h.level} {h.title}" for h in shown
                    )
                elif not headers:
                    entry += "\n  (No headers)"
            entries.append(entry)
        return "\n\n".join(entries)

    def _chapter_for_header(self, header: str, chapters: Sequence[Chapter]) -> str:
        level = header_level(header.strip())
        title = header.strip()[level:].strip()
        pattern = re.compile(rf"^#{{{level}}}\s*{re.escape(title)}\s*$", re.MULTILINE)
        found = [chapter.title for chapter in chapters if pattern.search(chapter.content)]
        if not found:
            raise WikiParseError(f'Header "{header}" not found in any chapter')
        if len(found) > 1:
            raise WikiParseError(
                f'Conflicting subchapter name: "{header}" found in chapters: {", ".join(found)}. '
                f'Format request like: "Chapter Title{header}"',
                candidates=found,
            )
        return found[0]

    @staticmethod
    def _extract_section(content: str, header: str) -> Optional[str]:
        """Return a header and everything nested under it, or None."""
        wanted = normalize_header(header)
        level = header_level(wanted)
        matches = list(_HEADER_BLOCK.finditer(content))
        for i, match in enumerate(matches):
            if normalize_header(match.group(0)) != wanted:
                continue
            end = len(content)
            for following in matches[i + 1 :]:
                if header_level(following.group(0).strip()) <= level:
                    end = following.start()
                    break
            return content[match.start() : end].strip()
        return None

    def extract_content(
        self,
        chapters: Optional[Sequence[str]] = None,
        headers: Optional[Dict[str, List[str]]] = None,
    ) -> str:
        """Extract whole chapters or selected sections as markdown.

        Args:
            chapters: Chapter identifiers (title, id, ``"id: title"``,
                ``"Chapter <id>"``) or standalone ``##Section`` requests;
                None extracts every chapter
            headers: Sections to keep per requested chapter

        Raises:
            WikiParseError: A chapter or section cannot be found, or a
                standalone section name is ambiguous
        """
        headers = headers or {}
        all_chapters = self.parse()
        structure = self.chapter_structure()
        wanted: Dict[str, List[str]] = {}

        if chapters is None:
            wanted = {chapter.title: [] for chapter in all_chapters}
        else:
            missing: List[str] = []
            for requested in chapters:
                if requested.strip().startswith("##"):
                    title = self._chapter_for_header(requested, all_chapters)
                    wanted.setdefault(title, []).append(requested.strip())
                    continue
                info = next((i for i in structure if i.matches(requested)), None)
                if info is None:
                    missing.append(requested)
                    continue
                sections = headers.get(requested) or headers.get(info.title) or []
                wanted.setdefault(info.title, []).extend(sections)
            if missing:
                available = ", ".join(f"{i.id}: {i.title}" for i in structure) or "none"
                raise WikiParseError(
                    f"Chapter not found: {', '.join(missing)}. Available chapters: {available}",
                    candidates=[i.title for i in structure],
                )

        blocks: List[str] = []
        for chapter in all_chapters:
            if chapter.title not in wanted:
                continue
            block = f"# {chapter.title}\n\n"
            sections = wanted[chapter.title]
            if sections:
                for section in sections:
                    extracted = self._extract_section(chapter.content, section)
                    if extracted is None:
                        raise WikiParseError(f'Header "{section}" not found in chapter "{chapter.title}"')
                    block += f"{extracted}\n\n"
            else:
                block += chapter.content
            blocks.append(block)
        return "\n\n---\n\n".join(blocks)
