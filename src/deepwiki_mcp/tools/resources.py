"""The ``deepwiki://commands`` usage guide resource."""

from mcp.server.fastmcp import FastMCP

from deepwiki_mcp.config import ServerConfig

COMMANDS_URI = "deepwiki://commands"

COMMANDS_GUIDE = """# DeepWiki MCP Server

DeepWiki.com generates documentation for GitHub repositories and answers
questions about their code. This server exposes two tools for it.

## wiki_parser

Browse and extract the generated documentation.

### Parameters
- repo: Repository as 'owner/repo' (required)
- action: 'structure' (table of contents) or 'extract' (chapter content)
- chapters: Chapters to extract, as "Chapter Title" or "Chapter Title##Section Name"
- depth: Header levels to show in the structure view (1-4)
- chapter_depths: Per-chapter depth overrides
- save_to_file / save_location: Save the result as markdown

### Examples
- Table of contents: action="structure", depth=2
- Whole chapter: action="extract", chapters=["Introduction"]
- One section: action="extract", chapters=["Setup##Installation"]
- Several: action="extract", chapters=["Introduction", "Configuration##Environment Variables"]

## wiki_question

### When to use query_id instead of a new question

Use query_id (the cached response) when the user asks for:
- References from the previous answer: "show me reference 1"
- Content from files already listed: "show me lines 1-10 of that file"
- Deeper analysis: go_deeper=true (creates a new query id)
- A follow-up: follow_up_question="..." (keeps the same query id)

Ask a new question only when the topic is unrelated or no query id exists.

### Parameters

Basic:
- repo: Repository as 'owner/repo' (required)
- question: Question text (new questions only)
- query_id: Query ID from a previous response
- use_deep_research: Deep research mode (3-15 minutes, use sparingly)
- go_deeper: Deeper analysis of an existing query (requires query_id)
- follow_up_question: Follow-up on an existing query (requires query_id)
- include_full_conversation: For follow-ups, show every turn (default: false)

Output control:
- include_answer: Show the answer text (default: true)
- include_references_list: Show the numbered reference list (default: true)

Code content:
- references_all / references_numbers: The EXACT snippets DeepWiki cited
- context_all / context_files: COMPLETE contents of captured files
- context_ranges: {"owner/repo/file.ts": {"start": 0, "end": 49}} line windows,
  0-based and inclusive, matching the [start-end] shown next to each file

Saving:
- save_to_file: "save-only" returns the query ID and file path;
  "save-and-show" also returns the content
- save_location: Custom path inside an allowed directory
  (default: ~/.deepwiki-mcp/output/<owner-repo>/questions/)

### Examples

Specific references from a cached response:
    repo="owner/repo", query_id="<id>", include_answer=false,
    include_references_list=false, references_numbers=[1, 2]

A line window of one file:
    repo="owner/repo", query_id="<id>", include_answer=false,
    include_references_list=false, context_files=["owner/repo/src/app.ts"],
    context_ranges={"owner/repo/src/app.ts": {"start": 0, "end": 9}}

Follow-up with deep research and the full conversation:
    repo="owner/repo", query_id="<id>", follow_up_question="What are the security implications?",
    use_deep_research=true, include_full_conversation=true
"""


def register_resources(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the usage guide resource."""

    @mcp.resource(
        COMMANDS_URI,
        name="available-commands",
        description="Usage guide for the DeepWiki tools",
        mime_type="text/markdown",
    )
    def available_commands() -> str:
        return COMMANDS_GUIDE
