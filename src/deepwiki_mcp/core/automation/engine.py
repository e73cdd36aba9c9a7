"""DeepWiki automation engine: submit, go deeper and follow up.

Each public operation owns one ``BrowserSession`` for its whole lifetime,
drives the site's question form, discovers the query id from the page the
site opens, then hands off to ``QueryPoller``.  Automation faults become a
failed ``AutomationResult``; a missing browser is a setup fault and is
raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Awaitable, Callable, Optional
from urllib.parse import urlsplit

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from deepwiki_mcp.config.domains import AutomationConfig, PollingConfig
from deepwiki_mcp.core.automation.browser import BrowserSession, resolve_browser_executable
from deepwiki_mcp.core.automation.models import AutomationResult, dump_queries
from deepwiki_mcp.core.automation.polling import QueryPoller, mode_label
from deepwiki_mcp.core.errors.automation import (
    AutomationError,
    BrowserNotFoundError,
    GoDeeperError,
    SubmissionError,
)
from deepwiki_mcp.core.transform.assembler import CollectedResult

logger = logging.getLogger(__name__)

QUESTION_INPUT = "form textarea"
DEEP_TOGGLE = "#useDeep"
GO_DEEPER_BUTTON = 'button:has-text("Go deeper")'
HISTORY_KEY = "user_query_history"

_DEEP_ENABLED_JS = "el => el.querySelector('[data-state]')?.getAttribute('data-state') === 'checked'"

SessionFactory = Callable[[Path], BrowserSession]
Sleeper = Callable[[float], Awaitable[None]]


def extract_repo_path(repository: str) -> str:
    """Reduce a repository URL or ``owner/repo`` string to ``owner/repo``."""
    repo = repository.strip()
    for marker in ("deepwiki.com/", "github.com/"):
        if marker in repo:
            repo = repo.split(marker, 1)[1]
            break
    return repo.strip("/")


def extract_query_id(url: str) -> Optional[str]:
    """Return the id from a ``.../search/<id>`` URL, or None.

    The query string, fragment and a trailing slash are ignored.
    """
    segments = [part for part in urlsplit(url).path.split("/") if part]
    if len(segments) >= 2 and segments[-2] == "search":
        return segments[-1]
    return None


def history_script(query_id: str) -> str:
    """JavaScript that records ``query_id`` as the browser's query history."""
    entry = [{"id": query_id, "timestamp": datetime.now(timezone.utc).isoformat()}]
    return f"globalThis.localStorage.setItem({json.dumps(HISTORY_KEY)}, {json.dumps(json.dumps(entry))})"


class DeepwikiAutomator:
    """Drives deepwiki.com in a headless Chromium.

    Args:
        automation: Site URLs, timeouts and browser settings
        polling: Status polling schedules
        debug: Show the browser window and leave it open afterwards
        session_factory: Builds a session for an executable path
        poller: Status poller (defaults to a ``QueryPoller``)
        sleep: Coroutine used for pacing waits
    """

    def __init__(
        self,
        automation: AutomationConfig,
        polling: PollingConfig,
        *,
        debug: bool = False,
        executable_resolver: Optional[Callable[[AutomationConfig], Path]] = None,
        session_factory: Optional[SessionFactory] = None,
        poller: Optional[QueryPoller] = None,
        sleep: Sleeper = asyncio.sleep,
    ):
        self.automation = automation
        self.polling = polling
        self.debug = debug
        self._resolve_executable = executable_resolver or resolve_browser_executable
        self._session_factory = session_factory or self._default_session
        self._poller = poller or QueryPoller(automation, polling)
        self._sleep = sleep

    def _default_session(self, executable_path: Path) -> BrowserSession:
        return BrowserSession(
            self.automation,
            executable_path,
            headless=self.automation.headless and not self.debug,
            keep_open=self.debug,
        )

    def query_url(self, query_id: str) -> str:
        return f"{self.automation.site_url.rstrip('/')}/search/{query_id}"

    def repository_url(self, repository: str) -> str:
        return f"{self.automation.site_url.rstrip('/')}/{extract_repo_path(repository)}"

    @property
    def _selector_timeout_ms(self) -> float:
        return self.automation.selector_timeout * 1000

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def submit(self, repository: str, question: str, deep_mode: bool = False) -> AutomationResult:
        """Ask a new question about ``repository``."""

        async def run(session: BrowserSession) -> AutomationResult:
            page = session.page
            await page.goto(self.repository_url(repository), wait_until="networkidle")
            textarea = await self._fill_question(session, question, deep_mode)

            result_page = await session.open_result_page(
                lambda: textarea.press("Enter"), self.automation.page_load_timeout
            )
            query_id = extract_query_id(result_page.url)
            if not query_id:
                raise SubmissionError(f"Failed to extract query ID from URL: {result_page.url}", url=result_page.url)
            logger.info("Query submitted. ID: %s", query_id)

            await result_page.evaluate(history_script(query_id))
            await self._release_result_page(session, result_page)

            logger.info("Waiting for query to be initialized (%s mode)", mode_label(deep_mode))
            await self._sleep(self.automation.initial_api_delay)
            return self._success(query_id, await self._poller.poll(query_id, deep_mode))

        return await self._run("submit", run)

    async def go_deeper(self, query_id: str) -> AutomationResult:
        """Request a deeper analysis of an existing query; always deep mode."""

        async def run(session: BrowserSession) -> AutomationResult:
            page = session.page
            await page.goto(self.query_url(query_id), wait_until="networkidle")
            try:
                await page.wait_for_selector(GO_DEEPER_BUTTON, timeout=self._selector_timeout_ms)
            except PlaywrightTimeoutError as e:
                raise GoDeeperError(
                    f'"Go deeper" button not found on query {query_id} '
                    f"within {self.automation.selector_timeout:g}s"
                ) from e
            await self._sleep(self.automation.page_ready_delay)

            result_page = await session.open_result_page(
                lambda: page.click(GO_DEEPER_BUTTON), self.automation.page_load_timeout
            )
            new_query_id = extract_query_id(result_page.url)
            if not new_query_id:
                raise GoDeeperError(
                    f"Failed to extract new query ID from Go Deeper URL: {result_page.url}", url=result_page.url
                )
            logger.info("Go Deeper initiated. New query ID: %s", new_query_id)
            await self._release_result_page(session, result_page)

            await self._sleep(self.automation.initial_api_delay)
            return self._success(new_query_id, await self._poller.poll(new_query_id, True))

        return await self._run("go_deeper", run)

    async def follow_up(self, query_id: str, text: str, deep_mode: bool = False) -> AutomationResult:
        """Add a follow-up question to an existing conversation."""

        async def run(session: BrowserSession) -> AutomationResult:
            page = session.page
            # The follow-up form only renders when the browser has this query in its history
            await page.add_init_script(script=history_script(query_id))
            await page.goto(self.query_url(query_id), wait_until="networkidle")
            textarea = await self._fill_question(session, text, deep_mode)
            await textarea.press("Enter")
            logger.info("Follow-up submitted for query %s (%s mode)", query_id, mode_label(deep_mode))

            await self._sleep(self.automation.initial_api_delay)
            return self._success(query_id, await self._poller.poll(query_id, deep_mode))

        return await self._run("follow_up", run)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _run(
        self,
        operation: str,
        body: Callable[[BrowserSession], Awaitable[AutomationResult]],
    ) -> AutomationResult:
        executable = self._resolve_executable(self.automation)
        try:
            async with self._session_factory(executable) as session:
                return await body(session)
        except BrowserNotFoundError:
            raise
        except (AutomationError, PlaywrightError) as e:
            logger.warning("%s failed: %s", operation, e)
            return AutomationResult.failure(str(e))

    async def _fill_question(self, session: BrowserSession, text: str, deep_mode: bool):
        page = session.page
        await page.wait_for_selector(QUESTION_INPUT, timeout=self._selector_timeout_ms)
        await self._sleep(self.automation.page_ready_delay)
        textarea = page.locator(QUESTION_INPUT)
        await textarea.fill(text)
        if deep_mode:
            await self._enable_deep_research(session)
        return textarea

    async def _enable_deep_research(self, session: BrowserSession) -> None:
        toggle = await session.page.wait_for_selector(DEEP_TOGGLE, timeout=self._selector_timeout_ms)
        if toggle is None:
            raise SubmissionError("Deep research toggle not found")
        if await toggle.evaluate(_DEEP_ENABLED_JS):
            return
        await toggle.click()
        await self._sleep(self.automation.form_ready_delay)
        if not await toggle.evaluate(_DEEP_ENABLED_JS):
            raise SubmissionError("Deep research toggle did not report enabled")

    async def _release_result_page(self, session: BrowserSession, result_page) -> None:
        if self.debug:
            session.hold_result_page(result_page)
        else:
            await result_page.close()

    @staticmethod
    def _success(query_id: str, collected: CollectedResult) -> AutomationResult:
        return AutomationResult(
            success=True,
            query_id=query_id,
            answer=collected.answer,
            references=collected.references,
            stats=collected.stats,
            raw_queries=dump_queries(collected.queries),
        )
