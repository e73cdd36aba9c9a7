"""FastMCP server assembly and stdio entry point."""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from deepwiki_mcp.config import ServerConfig, get_config
from deepwiki_mcp.tools import (
    register_resources,
    register_wiki_parser_tools,
    register_wiki_question_tools,
)

logger = logging.getLogger(__name__)

SERVER_INSTRUCTIONS = (
    "Tools for DeepWiki.com: wiki_parser browses a repository's generated "
    "documentation; wiki_question asks questions about its code. Reuse the "
    "query ID from a previous answer to fetch references or file contents. "
    "See deepwiki://commands for usage."
)


def create_server(config: Optional[ServerConfig] = None) -> FastMCP:
    """Create the FastMCP server with every tool and resource registered.

    Args:
        config: Server configuration (defaults to the global config)
    """
    config = config or get_config()
    mcp = FastMCP(name=config.server_name, instructions=SERVER_INSTRUCTIONS)

    register_wiki_parser_tools(mcp, config)
    register_wiki_question_tools(mcp, config)
    register_resources(mcp, config)

    logger.debug("Registered DeepWiki tools and resources on %s", config.server_name)
    return mcp


def main(config: Optional[ServerConfig] = None) -> None:
    """Run the server over stdio."""
    config = config or get_config()
    config.setup_logging()
    logger.info("Starting %s v%s", config.server_name, config.server_version)
    create_server(config).run(transport="stdio")


if __name__ == "__main__":
    main()
