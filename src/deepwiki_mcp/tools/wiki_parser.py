"""The ``wiki_parser`` MCP tool: browse and extract DeepWiki documentation."""

from __future__ import annotations

import logging
import re
from typing import Awaitable, Callable, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import CallToolResult

from deepwiki_mcp.config import AutomationConfig, ServerConfig
from deepwiki_mcp.core.cache import ResponseCache
from deepwiki_mcp.core.observability import mcp_tool
from deepwiki_mcp.core.output import (
    ensure_output_structure,
    save_markdown,
    timestamped_filename,
    validate_save_location,
)
from deepwiki_mcp.core.validation import (
    validate_action,
    validate_chapter_depths,
    validate_chapters,
    validate_depth,
    validate_repo,
    validate_save_to_file,
)
from deepwiki_mcp.core.wiki import WikiParser, fetch_wiki_content, parse_chapter_string
from deepwiki_mcp.tools.common import error_result, saved_output_text, text_result

logger = logging.getLogger(__name__)

TOOL_NAME = "wiki_parser"

WikiFetcher = Callable[[str, AutomationConfig], Awaitable[str]]

TOOL_DESCRIPTION = """Parse and extract content from DeepWiki's AI-generated documentation for a GitHub repository.

When to use this tool:
- Getting a table of contents or structure overview of a repository's documentation
- Extracting specific chapters or sections from the documentation
- Pulling detailed explanations of specific components or features

Usage examples:
1. Documentation structure: action="structure", depth=2
2. A complete chapter: action="extract", chapters=["Introduction"]
3. Sections from several chapters: action="extract", chapters=["Setup##Installation", "API##Core Methods"]
4. Per-chapter depth: action="structure", chapter_depths={"API": 4, "Examples": 2}
5. Save for offline use: action="extract", chapters=["Introduction"], save_to_file="save-and-show"
"""

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")


def wiki_description(action: str, chapters: Optional[List[str]] = None) -> str:
    """Filename fragment describing what was extracted."""
    if action == "structure":
        return "structure"
    if chapters:
        if len(chapters) == 1:
            return f"{_NON_ALNUM.sub('-', chapters[0].lower())}-extract"
        return f"{len(chapters)}-chapters"
    return "wiki-content"


def split_chapter_requests(chapters: List[str]) -> tuple[List[str], Dict[str, List[str]]]:
    """Turn ``"Chapter##Section"`` strings into chapter titles and header requests."""
    titles: List[str] = []
    headers: Dict[str, List[str]] = {}
    for requested in chapters:
        title, sections = parse_chapter_string(requested)
        titles.append(title)
        if sections:
            headers.setdefault(title, []).extend(sections)
    return titles, headers


async def load_wiki_content(
    repo: str,
    config: ServerConfig,
    cache: ResponseCache,
    fetcher: WikiFetcher = fetch_wiki_content,
) -> str:
    """Return the wiki stream for ``repo``, downloading it on a cache miss."""
    cache_key = f"wiki_{repo}"
    content = cache.get("wiki", cache_key, repo)
    if content is not None:
        logger.info("Using cached wiki content for %s", repo)
        return content

    content = await fetcher(repo, config.automation)
    cache.set("wiki", cache_key, content, repo)
    logger.info("Wiki content cached for %s", repo)
    return content


async def wiki_parser(
    config: ServerConfig,
    repo: str,
    action: str,
    chapters: Optional[List[str]] = None,
    depth: Optional[int] = None,
    chapter_depths: Optional[Dict[str, int]] = None,
    save_to_file: Optional[str] = None,
    save_location: Optional[str] = None,
    *,
    cache: Optional[ResponseCache] = None,
    fetcher: WikiFetcher = fetch_wiki_content,
) -> str:
    """Run one ``wiki_parser`` request and return markdown.

    Raises:
        ValidationError: On malformed arguments
        WikiFetchError: When the wiki cannot be downloaded
        WikiParseError: When a requested chapter or section does not exist
        PathValidationError: When ``save_location`` is not allowed
    """
    repo = validate_repo(repo)
    action = validate_action(action)
    if chapters is not None:
        chapters = validate_chapters(chapters)
    if depth is not None:
        depth = validate_depth(depth)
    if chapter_depths:
        chapter_depths = validate_chapter_depths(chapter_depths)
    save_mode = validate_save_to_file(save_to_file) if save_to_file else None

    cache = cache or ResponseCache(config.storage.cache_dir)
    parser = WikiParser(await load_wiki_content(repo, config, cache, fetcher))

    if action == "structure":
        result = parser.structure_with_depth(depth, chapter_depths)
    elif chapters:
        titles, headers = split_chapter_requests(chapters)
        result = parser.extract_content(titles, headers)
    else:
        result = parser.extract_content()

    if save_mode is None:
        return result

    if save_location:
        file_path = validate_save_location(config.storage, save_location)
    else:
        output_dir = ensure_output_structure(config.storage, repo, "wiki")
        file_path = output_dir / timestamped_filename(wiki_description(action, chapters))
    save_markdown(file_path, result)
    return saved_output_text(str(file_path), result, show=save_mode == "save-and-show")


def register_wiki_parser_tools(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the ``wiki_parser`` tool with the FastMCP server."""

    @mcp.tool(name=TOOL_NAME, description=TOOL_DESCRIPTION)
    @mcp_tool(tool_name=TOOL_NAME)
    async def wiki_parser_tool(
        repo: str,
        action: str,
        chapters: Optional[List[str]] = None,
        depth: Optional[int] = None,
        chapter_depths: Optional[Dict[str, int]] = None,
        save_to_file: Optional[str] = None,
        save_location: Optional[str] = None,
    ) -> CallToolResult:
        """
        Args:
            repo: GitHub repository in 'owner/repo' format (e.g. 'facebook/react')
            action: 'structure' for the table of contents, 'extract' for chapter content
            chapters: Chapter names to extract, optionally with sections like 'Setup##Installation'
            depth: Header levels to show in the structure view (1-4)
            chapter_depths: Per-chapter depth overrides, e.g. {'API': 3}
            save_to_file: 'save-only' returns the file path, 'save-and-show' also returns content
            save_location: Custom file path (must be inside an allowed directory)
        """
        try:
            text = await wiki_parser(
                config,
                repo,
                action,
                chapters=chapters,
                depth=depth,
                chapter_depths=chapter_depths,
                save_to_file=save_to_file,
                save_location=save_location,
            )
        except Exception as e:
            return error_result(e, TOOL_NAME)
        return text_result(text)
