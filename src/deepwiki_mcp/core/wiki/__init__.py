"""DeepWiki generated-wiki retrieval and navigation."""

from deepwiki_mcp.core.wiki.fetch import fetch_wiki_content
from deepwiki_mcp.core.wiki.parser import WikiParser, parse_chapter_string

__all__ = ["WikiParser", "fetch_wiki_content", "parse_chapter_string"]
