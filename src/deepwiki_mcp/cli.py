"""Command-line interface for deepwiki-mcp.

``deepwiki-mcp`` with no subcommand runs the stdio MCP server. ``ask`` and
``wiki`` drive the same code paths from a terminal, which is handy for
checking a browser install or a config file without an MCP host.
"""

import asyncio
import json
import sys
from dataclasses import asdict
from typing import Optional, Tuple

import click

from deepwiki_mcp.config import ServerConfig, _PACKAGE_VERSION, set_config
from deepwiki_mcp.core.automation.engine import DeepwikiAutomator
from deepwiki_mcp.core.errors import error_to_response
from deepwiki_mcp.core.responses import ErrorCode, ErrorType, ToolResponse, error_response, success_response
from deepwiki_mcp.core.transform import RenderOptions, assemble_document, render_markdown
from deepwiki_mcp.tools.common import format_error
from deepwiki_mcp.tools.wiki_parser import wiki_parser


def _emit(response: ToolResponse, as_json: bool, text: Optional[str] = None) -> None:
    if as_json:
        click.echo(json.dumps(asdict(response), indent=2, default=str))
    elif response.success:
        click.echo(text if text is not None else json.dumps(response.data, indent=2, default=str))
    else:
        click.echo(f"Error: {response.error}", err=True)
        if remediation := response.data.get("remediation"):
            click.echo(remediation, err=True)
    if not response.success:
        sys.exit(1)


def _error_envelope(exc: Exception) -> ToolResponse:
    mapped = error_to_response(exc)
    if mapped is not None:
        return ToolResponse(**mapped)
    return error_response(
        format_error(exc).removeprefix("Error: "),
        error_code=ErrorCode.INTERNAL_ERROR,
        error_type=ErrorType.INTERNAL,
    )


def _config(ctx: click.Context) -> ServerConfig:
    return ctx.obj["config"]


@click.group(invoke_without_command=True)
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to a TOML config file.",
)
@click.version_option(_PACKAGE_VERSION, prog_name="deepwiki-mcp")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[str]) -> None:
    """DeepWiki MCP server and command-line client."""
    config = ServerConfig.from_env(config_file)
    set_config(config)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    if ctx.invoked_subcommand is None:
        ctx.invoke(serve)


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Run the MCP server over stdio (the default)."""
    from deepwiki_mcp.server import main

    main(_config(ctx))


@cli.command()
@click.argument("repo")
@click.argument("question")
@click.option("--deep", is_flag=True, help="Use deep research mode (3-15 minutes).")
@click.option("--debug", is_flag=True, help="Show the browser and leave it open.")
@click.option("--json", "as_json", is_flag=True, help="Print a JSON response envelope.")
@click.pass_context
def ask(ctx: click.Context, repo: str, question: str, deep: bool, debug: bool, as_json: bool) -> None:
    """Ask QUESTION about REPO and print the answer."""
    config = _config(ctx)
    config.setup_logging()
    automator = DeepwikiAutomator(config.automation, config.polling, debug=debug)

    try:
        result = asyncio.run(automator.submit(repo, question, deep))
    except Exception as e:
        _emit(_error_envelope(e), as_json)
        return

    if not result.success:
        _emit(
            error_response(
                f"Failed to get answer: {result.error}",
                error_code=ErrorCode.QUERY_FAILED,
                error_type=ErrorType.REMOTE,
            ),
            as_json,
        )
        return

    document = assemble_document(result.query_id or "", result.queries, result.references)
    markdown = render_markdown(document, RenderOptions())
    _emit(
        success_response(
            query_id=result.query_id,
            answer=result.answer,
            references=[ref.to_dict() for ref in result.references],
            stats=result.stats,
            markdown=markdown,
        ),
        as_json,
        text=markdown,
    )


@cli.command()
@click.argument("repo")
@click.option(
    "--action",
    type=click.Choice(["structure", "extract"]),
    default="structure",
    show_default=True,
    help="Table of contents or chapter content.",
)
@click.option("--chapter", "chapters", multiple=True, help='Chapter to extract, e.g. "Setup##Installation".')
@click.option("--depth", type=click.IntRange(1, 4), default=None, help="Header levels in the structure view.")
@click.option("--json", "as_json", is_flag=True, help="Print a JSON response envelope.")
@click.pass_context
def wiki(
    ctx: click.Context,
    repo: str,
    action: str,
    chapters: Tuple[str, ...],
    depth: Optional[int],
    as_json: bool,
) -> None:
    """Show the generated wiki for REPO."""
    config = _config(ctx)
    config.setup_logging()

    try:
        text = asyncio.run(wiki_parser(config, repo, action, chapters=list(chapters) or None, depth=depth))
    except Exception as e:
        _emit(_error_envelope(e), as_json)
        return
    _emit(success_response(repo=repo, action=action, content=text), as_json, text=text)


if __name__ == "__main__":
    cli()
