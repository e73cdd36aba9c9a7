"""Chromium discovery and Playwright browser session lifecycle.

Only a Chromium build already present in the Playwright browser cache is
used; nothing is downloaded at runtime.  The resolved executable is cached
for the life of the process since it cannot change underneath us.
"""

from __future__ import annotations

import logging
import os
import platform
import re
from pathlib import Path
from types import TracebackType
from typing import Any, Awaitable, Callable, List, Optional, Tuple, Type

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

from deepwiki_mcp.config.domains import AutomationConfig
from deepwiki_mcp.core.errors.automation import BrowserNotFoundError

logger = logging.getLogger(__name__)

LAUNCH_ARGS = ["--no-sandbox", "--disable-setuid-sandbox"]

_CHROMIUM_DIR = re.compile(r"^chromium-(\d+)$")

_cached_executable: Optional[Path] = None


def playwright_cache_dir(system: Optional[str] = None, home: Optional[Path] = None) -> Path:
    """Return the default Playwright browser cache for the platform."""
    system = system or platform.system()
    home = home or Path.home()
    if system == "Darwin":
        return home / "Library" / "Caches" / "ms-playwright"
    if system == "Windows":
        return home / "AppData" / "Local" / "ms-playwright"
    return home / ".cache" / "ms-playwright"


def chromium_executable(build_dir: Path, system: Optional[str] = None) -> Path:
    """Return the expected executable inside one ``chromium-<n>`` build."""
    system = system or platform.system()
    if system == "Darwin":
        return build_dir / "chrome-mac" / "Chromium.app" / "Contents" / "MacOS" / "Chromium"
    if system == "Windows":
        return build_dir / "chrome-win" / "chrome.exe"
    return build_dir / "chrome-linux" / "chrome"


def find_chromium_in_cache(cache_dir: Path, system: Optional[str] = None) -> Optional[Path]:
    """Locate the newest full Chromium build in a Playwright cache.

    Headless-shell builds are ignored.  Returns None when the cache is
    missing or the newest build has no executable.
    """
    try:
        entries = list(cache_dir.iterdir())
    except OSError as e:
        logger.debug("Cannot read Playwright cache %s: %s", cache_dir, e)
        return None

    builds: List[Tuple[int, Path]] = []
    for entry in entries:
        match = _CHROMIUM_DIR.match(entry.name)
        if match and entry.is_dir():
            builds.append((int(match.group(1)), entry))
    if not builds:
        return None

    _, newest = max(builds)
    executable = chromium_executable(newest, system)
    if executable.exists():
        logger.info("Using Playwright Chromium: %s", newest.name)
        return executable
    logger.debug("Newest Chromium build %s has no executable at %s", newest.name, executable)
    return None


def resolve_browser_executable(config: AutomationConfig, *, system: Optional[str] = None) -> Path:
    """Resolve the Chromium executable to launch.

    Order: the path cached by an earlier call, an explicitly configured
    ``executable_path``, then a scan of the Playwright cache.

    Raises:
        BrowserNotFoundError: If no executable is found
    """
    global _cached_executable
    if _cached_executable is not None:
        return _cached_executable

    if config.executable_path is not None:
        explicit = Path(config.executable_path).expanduser()
        if not explicit.exists():
            raise BrowserNotFoundError(f"configured executable_path {explicit} does not exist")
        _cached_executable = explicit
        return explicit

    override = config.browsers_path or os.environ.get("PLAYWRIGHT_BROWSERS_PATH")
    cache_dir = Path(override).expanduser() if override else playwright_cache_dir(system)
    found = find_chromium_in_cache(cache_dir, system)
    if found is None:
        raise BrowserNotFoundError(f"searched {cache_dir}")

    _cached_executable = found
    return found


class BrowserSession:
    """One Chromium process with a single context and form page.

    Use as an async context manager; everything is closed on exit unless
    ``keep_open`` is set, which leaves the window up for debugging.
    """

    def __init__(
        self,
        config: AutomationConfig,
        executable_path: Path,
        *,
        headless: bool = True,
        keep_open: bool = False,
        playwright_factory: Callable[[], Any] = async_playwright,
    ):
        self.config = config
        self.executable_path = executable_path
        self.headless = headless
        self.keep_open = keep_open
        self._playwright_factory = playwright_factory
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._result_page: Optional[Page] = None

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session is not open")
        return self._page

    @property
    def context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("Browser session is not open")
        return self._context

    async def __aenter__(self) -> "BrowserSession":
        try:
            await self.open()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if self.keep_open:
            logger.info("Debug mode: browser left open, close it manually when done")
            return
        await self.close()

    async def open(self) -> None:
        self._playwright = await self._playwright_factory().start()
        logger.debug("Launching Chromium %s (headless=%s)", self.executable_path, self.headless)
        self._browser = await self._playwright.chromium.launch(
            headless=self.headless,
            executable_path=str(self.executable_path),
            args=LAUNCH_ARGS,
        )
        self._context = await self._browser.new_context(user_agent=self.config.user_agent)
        self._page = await self._context.new_page()

    async def open_result_page(self, trigger: Callable[[], Awaitable[None]], timeout: float) -> Page:
        """Run ``trigger`` and return the page it opens once its DOM has loaded.

        Args:
            trigger: Coroutine function performing the action that opens a tab
            timeout: Seconds to wait for the new page
        """
        async with self.context.expect_page(timeout=timeout * 1000) as page_info:
            await trigger()
        page = await page_info.value
        await page.wait_for_load_state("domcontentloaded")
        return page

    def hold_result_page(self, page: Page) -> None:
        """Keep a results page referenced so it is closed with the session."""
        self._result_page = page

    async def close(self) -> None:
        """Close pages, browser and driver; safe to call more than once."""
        for page in (self._result_page, self._page):
            if page is not None:
                try:
                    await page.close()
                except Exception as e:
                    logger.debug("Page close error (may be already closed): %s", e)
        self._result_page = None
        self._page = None

        if self._context is not None:
            try:
                await self._context.close()
            except Exception as e:
                logger.debug("Context close error: %s", e)
            self._context = None
        if self._browser is not None:
            try:
                await self._browser.close()
            except Exception as e:
                logger.debug("Browser close error: %s", e)
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None
