"""DeepWiki MCP server: repository wikis and AI answers as MCP tools."""

from deepwiki_mcp.config import _PACKAGE_VERSION as __version__  # noqa: F401
