"""MCP tool and resource registration for deepwiki-mcp."""

from deepwiki_mcp.tools.resources import register_resources
from deepwiki_mcp.tools.wiki_parser import register_wiki_parser_tools
from deepwiki_mcp.tools.wiki_question import register_wiki_question_tools

__all__ = [
    "register_resources",
    "register_wiki_parser_tools",
    "register_wiki_question_tools",
]
