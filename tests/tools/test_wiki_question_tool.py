"""Tests for the wiki_question tool.

Tests cover:
1. New questions: render, cache under the query id, deep research banner
2. Cached re-render by query_id without touching the automator
3. Go deeper and follow-up routing, latest-turn filtering
4. Routing and argument validation errors
5. Saving with default and custom locations
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from deepwiki_mcp.core.automation.models import AutomationResult, dump_queries
from deepwiki_mcp.core.cache import ResponseCache
from deepwiki_mcp.core.errors import (
    AutomationError,
    CacheMissError,
    PathValidationError,
    ValidationError,
)
from deepwiki_mcp.core.transform.assembler import collect_result
from deepwiki_mcp.tools.wiki_question import DEEP_RESEARCH_BANNER, new_question_cache_key, wiki_question
from factories import api_queries, capture, chunk, citation, make_query

QUERY_ID = "5b1f0d2e-8a3c-4f6b-9e7d-0c1a2b3c4d5e"
DEEPER_ID = "9e8d7c6b-5a4f-4e3d-8c2b-1a0f9e8d7c6b"
REPO = "owner/name"


def _result(query_id, *raw):
    queries = api_queries(*raw)
    collected = collect_result(queries)
    return AutomationResult(
        success=True,
        query_id=query_id,
        answer=collected.answer,
        references=collected.references,
        stats=collected.stats,
        raw_queries=dump_queries(queries),
    )


def _first_turn(numbered_file):
    return make_query(
        [
            chunk("Auth starts in "),
            citation("owner/name/src/auth.py", 2, 3),
            chunk("."),
            capture("owner/name", "src/auth.py", numbered_file),
        ],
        user_query="How does auth work?",
    )


@pytest.fixture
def cache(server_config):
    return ResponseCache(server_config.storage.cache_dir)


@pytest.fixture
def automator(numbered_file):
    fake = MagicMock()
    fake.submit = AsyncMock(return_value=_result(QUERY_ID, _first_turn(numbered_file)))
    fake.go_deeper = AsyncMock()
    fake.follow_up = AsyncMock()
    return fake


def _unreachable(config):
    raise AssertionError("automator should not be used")


async def _ask(server_config, cache, automator, **kwargs):
    return await wiki_question(server_config, REPO, cache=cache, automator_factory=lambda c: automator, **kwargs)


class TestNewQuestion:
    @pytest.mark.asyncio
    async def test_renders_and_caches_by_query_id(self, server_config, cache, automator):
        markdown = await _ask(server_config, cache, automator, question="How does auth work?")

        assert markdown.startswith(f"# Query ID\n\n{QUERY_ID}")
        assert "Auth starts in  [1]" in markdown
        assert "[1]: owner/name: src/auth.py:2-3" in markdown
        automator.submit.assert_awaited_once_with(REPO, "How does auth work?", False)
        assert cache.path_for("question", QUERY_ID, REPO).exists()

    @pytest.mark.asyncio
    async def test_deep_research_banner(self, server_config, cache, automator):
        markdown = await _ask(server_config, cache, automator, question="How?", use_deep_research=True)
        assert markdown.startswith(DEEP_RESEARCH_BANNER)
        automator.submit.assert_awaited_once_with(REPO, "How?", True)

    @pytest.mark.asyncio
    async def test_missing_query_id_uses_temporary_key(self, server_config, cache, automator, numbered_file):
        automator.submit.return_value = _result(None, _first_turn(numbered_file))
        await _ask(server_config, cache, automator, question="How?")
        assert cache.get_json("question", new_question_cache_key(REPO, "How?", False), REPO) is not None

        # the same question now comes straight from the cache
        again = await wiki_question(server_config, REPO, question="How?", cache=cache, automator_factory=_unreachable)
        assert "Auth starts in" in again

    @pytest.mark.asyncio
    async def test_failed_automation(self, server_config, cache, automator):
        automator.submit.return_value = AutomationResult.failure("Query failed: not indexed")
        with pytest.raises(AutomationError, match="Failed to get answer: Query failed: not indexed"):
            await _ask(server_config, cache, automator, question="How?")


class TestCachedQuery:
    @pytest.mark.asyncio
    async def test_references_by_number_without_automation(self, server_config, cache, automator):
        await _ask(server_config, cache, automator, question="How does auth work?")

        markdown = await wiki_question(
            server_config,
            REPO,
            query_id=QUERY_ID,
            include_answer=False,
            include_references_list=False,
            references_numbers=[1],
            cache=cache,
            automator_factory=_unreachable,
        )

        assert "# Answer" not in markdown
        assert "## owner/name/src/auth.py" in markdown
        assert "line 2\nline 3" in markdown

    @pytest.mark.asyncio
    async def test_context_range(self, server_config, cache, automator):
        await _ask(server_config, cache, automator, question="How does auth work?")

        markdown = await wiki_question(
            server_config,
            REPO,
            query_id=QUERY_ID,
            include_answer=False,
            context_files=["owner/name/src/auth.py"],
            context_ranges={"owner/name/src/auth.py": {"start": 0, "end": 1}},
            cache=cache,
            automator_factory=_unreachable,
        )

        assert "## owner/name/src/auth.py [0-1]\n\n```\nline 1\nline 2\n```" in markdown

    @pytest.mark.asyncio
    async def test_cache_miss(self, server_config, cache):
        with pytest.raises(CacheMissError):
            await wiki_question(server_config, REPO, query_id=QUERY_ID, cache=cache, automator_factory=_unreachable)

    @pytest.mark.asyncio
    async def test_deep_flag_alone_adds_no_banner(self, server_config, cache, automator):
        await _ask(server_config, cache, automator, question="How?")
        markdown = await wiki_question(
            server_config, REPO, query_id=QUERY_ID, use_deep_research=True, cache=cache, automator_factory=_unreachable
        )
        assert not markdown.startswith(DEEP_RESEARCH_BANNER)


class TestGoDeeperAndFollowUp:
    @pytest.mark.asyncio
    async def test_go_deeper_caches_new_id(self, server_config, cache, automator):
        automator.go_deeper.return_value = _result(DEEPER_ID, make_query([chunk("Deeper answer")]))

        markdown = await _ask(server_config, cache, automator, query_id=QUERY_ID, go_deeper=True)

        assert f"# Query ID\n\n{DEEPER_ID}" in markdown
        automator.go_deeper.assert_awaited_once_with(QUERY_ID)
        assert cache.path_for("question", DEEPER_ID, REPO).exists()

    @pytest.mark.asyncio
    async def test_follow_up_shows_latest_turn(self, server_config, cache, automator, numbered_file):
        automator.follow_up.return_value = _result(
            QUERY_ID,
            _first_turn(numbered_file),
            make_query([chunk("Errors bubble up.")], user_query="And errors?"),
        )

        markdown = await _ask(server_config, cache, automator, query_id=QUERY_ID, follow_up_question="And errors?")

        assert "Errors bubble up." in markdown
        assert "Auth starts in" not in markdown
        automator.follow_up.assert_awaited_once_with(QUERY_ID, "And errors?", False)
        assert len(cache.get_json("question", QUERY_ID, REPO)["conversation"]) == 2

    @pytest.mark.asyncio
    async def test_follow_up_full_conversation(self, server_config, cache, automator, numbered_file):
        automator.follow_up.return_value = _result(
            QUERY_ID,
            _first_turn(numbered_file),
            make_query([chunk("Errors bubble up.")], user_query="And errors?"),
        )

        markdown = await _ask(
            server_config,
            cache,
            automator,
            query_id=QUERY_ID,
            follow_up_question="And errors?",
            include_full_conversation=True,
        )

        assert markdown.index("Auth starts in") < markdown.index("**Follow-up:** And errors?")

    @pytest.mark.asyncio
    async def test_failed_follow_up(self, server_config, cache, automator):
        automator.follow_up.return_value = AutomationResult.failure("boom")
        with pytest.raises(AutomationError, match="Failed to send follow-up: boom"):
            await _ask(server_config, cache, automator, query_id=QUERY_ID, follow_up_question="More?")


class TestRouting:
    @pytest.mark.parametrize(
        "kwargs,fragment",
        [
            ({}, "Either 'question' or 'query_id'"),
            ({"go_deeper": True}, "'query_id' is required when using 'go_deeper'"),
            ({"follow_up_question": "More?"}, "Either 'question' or 'query_id'"),
            ({"question": "How?", "query_id": QUERY_ID, "go_deeper": True}, "Choose one action"),
            ({"query_id": QUERY_ID, "go_deeper": True, "follow_up_question": "More?"}, "Choose one action"),
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_combinations(self, server_config, cache, kwargs, fragment):
        with pytest.raises(ValidationError, match=fragment):
            await wiki_question(server_config, REPO, cache=cache, automator_factory=_unreachable, **kwargs)

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"question": "How?", "references_numbers": [0]},
            {"question": "How?", "context_ranges": {"a/b/x.py": {"start": 3, "end": 1}}},
            {"question": "How?", "save_to_file": "later"},
            {"query_id": "bad id"},
        ],
    )
    @pytest.mark.asyncio
    async def test_invalid_arguments(self, server_config, cache, kwargs):
        with pytest.raises(ValidationError):
            await wiki_question(server_config, REPO, cache=cache, automator_factory=_unreachable, **kwargs)

    @pytest.mark.asyncio
    async def test_invalid_repo(self, server_config, cache):
        with pytest.raises(ValidationError, match="owner/repo"):
            await wiki_question(server_config, "react", question="How?", cache=cache, automator_factory=_unreachable)


class TestSaving:
    @pytest.mark.asyncio
    async def test_save_only_default_location(self, server_config, cache, automator):
        text = await _ask(server_config, cache, automator, question="How does auth work?", save_to_file="save-only")

        header, _, path_line = text.partition("\n")
        assert header == f"Query ID: {QUERY_ID}"
        saved = list((server_config.storage.output_dir / "owner-name" / "questions").glob("*.md"))
        assert len(saved) == 1
        assert saved[0].name.endswith(f"_does-auth-work_query-{QUERY_ID}.md")
        assert path_line == f"Output saved to: {saved[0]}"
        assert "# Answer" in saved[0].read_text()

    @pytest.mark.asyncio
    async def test_save_and_show_custom_location(self, server_config, cache, automator, tmp_path):
        target = tmp_path / "notes" / "auth.md"
        text = await _ask(
            server_config,
            cache,
            automator,
            question="How?",
            save_to_file="Save-And-Show",
            save_location=str(target),
        )

        assert text.startswith(f"Query ID: {QUERY_ID}\nOutput saved to: {target.resolve()}\n\n---\n\n# Query ID")
        assert target.read_text().startswith("# Query ID")

    @pytest.mark.asyncio
    async def test_save_location_outside_allowed(self, server_config, cache, automator):
        with pytest.raises(PathValidationError):
            await _ask(
                server_config,
                cache,
                automator,
                question="How?",
                save_to_file="save-only",
                save_location="/etc/deepwiki/out.md",
            )
