"""The ``wiki_question`` MCP tool: ask DeepWiki about a repository.

Requests are routed to one of four paths: go deeper, follow-up, cached
re-render by query id, or a new question. Every completed conversation is
cached as a ``NormalizedDocument`` so later calls can pull references and
file contents without touching the browser.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, NamedTuple, Optional

from mcp.server.fastmcp import FastMCP
from mcp.types import CallToolResult

from deepwiki_mcp.config import ServerConfig
from deepwiki_mcp.core.automation.engine import DeepwikiAutomator
from deepwiki_mcp.core.automation.models import AutomationResult
from deepwiki_mcp.core.cache import ResponseCache
from deepwiki_mcp.core.errors import AutomationError, CacheMissError, ValidationError
from deepwiki_mcp.core.observability import mcp_tool
from deepwiki_mcp.core.output import (
    ensure_output_structure,
    generate_descriptive_name,
    save_markdown,
    timestamped_filename,
    validate_save_location,
)
from deepwiki_mcp.core.transform import (
    NormalizedDocument,
    RenderOptions,
    assemble_document,
    latest_turn_only,
    render_markdown,
)
from deepwiki_mcp.core.validation import (
    validate_context_files,
    validate_context_ranges,
    validate_query_id,
    validate_question,
    validate_references_numbers,
    validate_repo,
    validate_save_to_file,
)
from deepwiki_mcp.tools.common import error_result, saved_output_text, text_result

logger = logging.getLogger(__name__)

TOOL_NAME = "wiki_question"

DEEP_RESEARCH_BANNER = "**Deep Research Mode Used**\n\n"

AutomatorFactory = Callable[[ServerConfig], DeepwikiAutomator]

TOOL_DESCRIPTION = """Ask questions about a GitHub repository using DeepWiki's AI codebase analysis.

Answers come with numbered code references; cached results can be re-rendered
by query_id to pull exact snippets or complete files without asking again.

Use query_id (not a new question) when:
- Getting references or files from a previous response
- Going deeper on a previous answer (go_deeper=true returns a NEW query id)
- Continuing the conversation (follow_up_question keeps the same query id)
Ask a new question only for an unrelated topic. Do not ask for specific files
in new questions; ask conceptually and then use query_id to retrieve files.

Usage examples:
1. New question: question="How does the authentication system work?"
2. Specific references: query_id="...", references_numbers=[1, 2], include_answer=false
3. Full file content: query_id="...", context_files=["owner/repo/src/auth/login.ts"], include_answer=false
4. Line window: query_id="...", context_files=["owner/repo/src/index.ts"],
   context_ranges={"owner/repo/src/index.ts": {"start": 100, "end": 150}}, include_answer=false
5. Deep research with saving: question="Explain the data flow", use_deep_research=true, save_to_file="save-and-show"
6. Go deeper: query_id="...", go_deeper=true
7. Follow-up (new response only): query_id="...", follow_up_question="How are errors handled?"
8. All snippets, no prose: query_id="...", references_all=true, include_answer=false, include_references_list=false

Notes:
- references_numbers returns the EXACT snippets DeepWiki cited, not whole files
- context_files returns COMPLETE file contents; context_ranges are 0-based and inclusive
- Deep research takes 3-15 minutes; use it sparingly
"""


class AnsweredQuery(NamedTuple):
    document: NormalizedDocument
    query_id: str


def default_automator(config: ServerConfig) -> DeepwikiAutomator:
    return DeepwikiAutomator(config.automation, config.polling)


def new_question_cache_key(repo: str, question: str, deep: bool) -> str:
    return f"question_{repo}_{question}_{'deep' if deep else 'regular'}"


def document_from_result(result: AutomationResult, failure_prefix: str) -> NormalizedDocument:
    """Assemble a successful automation result, or raise with its error."""
    if not result.success:
        raise AutomationError(f"{failure_prefix}: {result.error}")
    return assemble_document(result.query_id or "", result.queries, result.references)


def _check_routing(
    question: Optional[str],
    query_id: Optional[str],
    go_deeper: bool,
    follow_up_question: Optional[str],
) -> None:
    if not question and not query_id:
        raise ValidationError("Either 'question' or 'query_id' must be provided", field="question")
    if go_deeper and not query_id:
        raise ValidationError("'query_id' is required when using 'go_deeper'", field="query_id")
    if follow_up_question and not query_id:
        raise ValidationError("'query_id' is required when using 'follow_up_question'", field="query_id")
    if len([action for action in (question, go_deeper, follow_up_question) if action]) > 1:
        raise ValidationError(
            "Cannot use 'question', 'go_deeper', and 'follow_up_question' together. Choose one action."
        )


class QuestionRouter:
    """Resolves a request to a normalized document via the cache or the automator."""

    def __init__(self, config: ServerConfig, cache: ResponseCache, automator_factory: AutomatorFactory):
        self.config = config
        self.cache = cache
        self._automator_factory = automator_factory

    def _store(self, query_id: str, document: NormalizedDocument, repo: str) -> None:
        self.cache.set_json("question", query_id, document.model_dump(mode="json"), repo)
        logger.info("Response cached with query ID: %s", query_id)

    def _load(self, query_id: str, repo: str) -> Optional[NormalizedDocument]:
        cached = self.cache.get_json("question", query_id, repo)
        if cached is None:
            return None
        return NormalizedDocument.model_validate(cached)

    async def go_deeper(self, query_id: str, repo: str) -> AnsweredQuery:
        logger.info("Initiating Go Deeper for query ID: %s", query_id)
        result = await self._automator_factory(self.config).go_deeper(query_id)
        document = document_from_result(result, "Failed to execute Go Deeper")
        if document.query_id:
            self._store(document.query_id, document, repo)
        return AnsweredQuery(document, document.query_id)

    async def follow_up(self, query_id: str, text: str, deep: bool, repo: str) -> AnsweredQuery:
        logger.info("Sending follow-up question to query ID: %s", query_id)
        result = await self._automator_factory(self.config).follow_up(query_id, text, deep)
        document = document_from_result(result, "Failed to send follow-up")
        # The conversation keeps its id, so the cached entry grows with it.
        self._store(query_id, document, repo)
        return AnsweredQuery(document, query_id)

    def cached(self, query_id: str, repo: str) -> AnsweredQuery:
        document = self._load(query_id, repo)
        if document is None:
            raise CacheMissError(query_id)
        logger.info("Using cached response for query ID: %s", query_id)
        return AnsweredQuery(document, query_id)

    async def ask(self, question: str, deep: bool, repo: str) -> AnsweredQuery:
        temp_key = new_question_cache_key(repo, question, deep)
        document = self._load(temp_key, repo)
        if document is not None:
            return AnsweredQuery(document, temp_key)

        logger.info("Asking DeepWiki about %s (%s mode)", repo, "deep research" if deep else "regular")
        result = await self._automator_factory(self.config).submit(repo, question, deep)
        document = document_from_result(result, "Failed to get answer")
        if document.query_id:
            self._store(document.query_id, document, repo)
            return AnsweredQuery(document, document.query_id)

        logger.warning("No query ID received, caching with temporary key")
        self._store(temp_key, document, repo)
        return AnsweredQuery(document, temp_key)


def _output_description(question: Optional[str], go_deeper: bool, follow_up_question: Optional[str]) -> str:
    if go_deeper:
        return "go-deeper"
    if follow_up_question:
        return f"follow-up-{generate_descriptive_name(follow_up_question)}"
    return generate_descriptive_name(question)


async def wiki_question(
    config: ServerConfig,
    repo: str,
    question: Optional[str] = None,
    query_id: Optional[str] = None,
    use_deep_research: bool = False,
    go_deeper: bool = False,
    follow_up_question: Optional[str] = None,
    include_full_conversation: bool = False,
    include_answer: bool = True,
    include_references_list: bool = True,
    references_all: bool = False,
    references_numbers: Optional[List[int]] = None,
    context_all: bool = False,
    context_files: Optional[List[str]] = None,
    context_ranges: Optional[Dict[str, Dict[str, int]]] = None,
    save_to_file: Optional[str] = None,
    save_location: Optional[str] = None,
    *,
    cache: Optional[ResponseCache] = None,
    automator_factory: AutomatorFactory = default_automator,
) -> str:
    """Run one ``wiki_question`` request and return markdown.

    Raises:
        ValidationError: On malformed or conflicting arguments
        CacheMissError: When ``query_id`` has no cached response
        BrowserNotFoundError: When no Chromium build can be located
        AutomationError: When DeepWiki could not answer
        PathValidationError: When ``save_location`` is not allowed
    """
    repo = validate_repo(repo)
    if question:
        validate_question(question)
    if query_id:
        query_id = validate_query_id(query_id)
    if follow_up_question:
        validate_question(follow_up_question, field="follow_up_question")
    if references_numbers:
        references_numbers = validate_references_numbers(references_numbers)
    if context_files:
        context_files = validate_context_files(context_files)
    ranges = validate_context_ranges(context_ranges) if context_ranges else {}
    save_mode = validate_save_to_file(save_to_file) if save_to_file else None
    _check_routing(question, query_id, go_deeper, follow_up_question)

    router = QuestionRouter(config, cache or ResponseCache(config.storage.cache_dir), automator_factory)
    if go_deeper:
        answered = await router.go_deeper(query_id, repo)
    elif follow_up_question:
        answered = await router.follow_up(query_id, follow_up_question, use_deep_research, repo)
    elif query_id:
        answered = router.cached(query_id, repo)
    else:
        answered = await router.ask(question, use_deep_research, repo)

    document = answered.document
    if follow_up_question and not include_full_conversation:
        document = latest_turn_only(document)

    options = RenderOptions(
        include_answer=include_answer,
        include_references_list=include_references_list,
        references_all=references_all,
        references_numbers=references_numbers,
        context_all=context_all,
        context_files=context_files,
        context_ranges=ranges,
    )
    markdown = render_markdown(document, options)
    if use_deep_research and (follow_up_question or question):
        markdown = DEEP_RESEARCH_BANNER + markdown

    if save_mode is None:
        return markdown

    effective_id = answered.query_id or document.query_id or "unknown"
    if save_location:
        file_path = validate_save_location(config.storage, save_location)
    else:
        output_dir = ensure_output_structure(config.storage, repo, "question")
        description = _output_description(question, go_deeper, follow_up_question)
        file_path = output_dir / timestamped_filename(description, f"_query-{effective_id}")
    save_markdown(file_path, markdown)
    return saved_output_text(str(file_path), markdown, show=save_mode == "save-and-show", query_id=effective_id)


def register_wiki_question_tools(mcp: FastMCP, config: ServerConfig) -> None:
    """Register the ``wiki_question`` tool with the FastMCP server."""

    @mcp.tool(name=TOOL_NAME, description=TOOL_DESCRIPTION)
    @mcp_tool(tool_name=TOOL_NAME)
    async def wiki_question_tool(
        repo: str,
        question: Optional[str] = None,
        query_id: Optional[str] = None,
        use_deep_research: bool = False,
        go_deeper: bool = False,
        follow_up_question: Optional[str] = None,
        include_full_conversation: bool = False,
        include_answer: bool = True,
        include_references_list: bool = True,
        references_all: bool = False,
        references_numbers: Optional[List[int]] = None,
        context_all: bool = False,
        context_files: Optional[List[str]] = None,
        context_ranges: Optional[Dict[str, Dict[str, int]]] = None,
        save_to_file: Optional[str] = None,
        save_location: Optional[str] = None,
    ) -> CallToolResult:
        """
        Args:
            repo: GitHub repository in 'owner/repo' format
            question: Question about the repository (new queries only)
            query_id: ID from a previous response (cached data, go deeper, follow-ups)
            use_deep_research: Deep analysis mode (3-15 minutes, use sparingly)
            go_deeper: Deeper analysis of an existing query; returns a new query id
            follow_up_question: Continue an existing conversation (requires query_id)
            include_full_conversation: For follow-ups, show every turn instead of the newest
            include_answer: Show the answer text
            include_references_list: Show the numbered reference list
            references_all: Show every cited snippet
            references_numbers: Show the cited snippets with these numbers
            context_all: Show every captured file in full
            context_files: Show these captured files in full
            context_ranges: Per-file {'start': n, 'end': m} line window (0-based, inclusive)
            save_to_file: 'save-only' or 'save-and-show'
            save_location: Custom file path (must be inside an allowed directory)
        """
        try:
            text = await wiki_question(
                config,
                repo,
                question=question,
                query_id=query_id,
                use_deep_research=use_deep_research,
                go_deeper=go_deeper,
                follow_up_question=follow_up_question,
                include_full_conversation=include_full_conversation,
                include_answer=include_answer,
                include_references_list=include_references_list,
                references_all=references_all,
                references_numbers=references_numbers,
                context_all=context_all,
                context_files=context_files,
                context_ranges=context_ranges,
                save_to_file=save_to_file,
                save_location=save_location,
            )
        except Exception as e:
            return error_result(e, TOOL_NAME)
        return text_result(text)
