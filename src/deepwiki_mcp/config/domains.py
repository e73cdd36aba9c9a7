"""Domain-specific configuration dataclasses.

Contains small, focused configuration classes for the browser automation,
status polling and on-disk storage domains.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from deepwiki_mcp.config.parsing import _parse_bool, _parse_path_list, parse_poll_schedule

DEFAULT_REGULAR_SCHEDULE = (10, 15, 20, 30, 45, 75, 120, 180, 300)
DEFAULT_DEEP_SCHEDULE = (180, 240, 300, 420, 540, 720, 900)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_DEFAULT_HOME = Path.home() / ".deepwiki-mcp"


@dataclass
class AutomationConfig:
    """Configuration for the DeepWiki browser automation.

    Timeouts and delays are in seconds.

    Attributes:
        site_url: Base URL of the DeepWiki site
        api_base_url: Base URL of the query status API
        executable_path: Explicit Chromium executable (skips cache scan)
        browsers_path: Playwright browser cache directory override
        headless: Run the browser without a window
        selector_timeout: Wait limit for form controls and buttons
        page_ready_delay: Pause after the form appears
        initial_api_delay: Pause between submission and the first poll
        page_load_timeout: Wait limit for the results tab to open
        form_ready_delay: Pause after toggling deep research
        user_agent: User agent for the browser context and API requests
    """

    site_url: str = "https://deepwiki.com"
    api_base_url: str = "https://api.devin.ai"
    executable_path: Optional[Path] = None
    browsers_path: Optional[Path] = None
    headless: bool = True
    selector_timeout: float = 10.0
    page_ready_delay: float = 1.0
    initial_api_delay: float = 3.0
    page_load_timeout: float = 10.0
    form_ready_delay: float = 0.5
    user_agent: str = DEFAULT_USER_AGENT

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "AutomationConfig":
        """Create config from TOML dict (typically [automation] section).

        Args:
            data: Dict from TOML parsing

        Returns:
            AutomationConfig instance
        """
        executable = data.get("executable_path")
        browsers = data.get("browsers_path")
        return cls(
            site_url=str(data.get("site_url", "https://deepwiki.com")).rstrip("/"),
            api_base_url=str(data.get("api_base_url", "https://api.devin.ai")).rstrip("/"),
            executable_path=Path(executable).expanduser() if executable else None,
            browsers_path=Path(browsers).expanduser() if browsers else None,
            headless=_parse_bool(data.get("headless", True)),
            selector_timeout=float(data.get("selector_timeout", 10.0)),
            page_ready_delay=float(data.get("page_ready_delay", 1.0)),
            initial_api_delay=float(data.get("initial_api_delay", 3.0)),
            page_load_timeout=float(data.get("page_load_timeout", 10.0)),
            form_ready_delay=float(data.get("form_ready_delay", 0.5)),
            user_agent=str(data.get("user_agent", DEFAULT_USER_AGENT)),
        )


@dataclass
class PollingConfig:
    """Configuration for the query status polling loop.

    Attributes:
        regular_schedule: Check offsets (seconds from start) for regular queries
        deep_schedule: Check offsets (seconds from start) for deep research
        stall_threshold_regular: Seconds without progress before warning (regular)
        stall_threshold_deep: Seconds without progress before warning (deep)
        request_timeout: HTTP timeout for a single status fetch
    """

    regular_schedule: List[int] = field(default_factory=lambda: list(DEFAULT_REGULAR_SCHEDULE))
    deep_schedule: List[int] = field(default_factory=lambda: list(DEFAULT_DEEP_SCHEDULE))
    stall_threshold_regular: float = 60.0
    stall_threshold_deep: float = 120.0
    request_timeout: float = 30.0

    def schedule_for(self, deep: bool) -> List[int]:
        """Return the schedule for the given mode."""
        return list(self.deep_schedule if deep else self.regular_schedule)

    def stall_threshold_for(self, deep: bool) -> float:
        """Return the stall threshold for the given mode."""
        return self.stall_threshold_deep if deep else self.stall_threshold_regular

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "PollingConfig":
        """Create config from TOML dict (typically [polling] section)."""
        return cls(
            regular_schedule=parse_poll_schedule(data.get("regular_schedule"), DEFAULT_REGULAR_SCHEDULE),
            deep_schedule=parse_poll_schedule(data.get("deep_schedule"), DEFAULT_DEEP_SCHEDULE),
            stall_threshold_regular=float(data.get("stall_threshold_regular", 60.0)),
            stall_threshold_deep=float(data.get("stall_threshold_deep", 120.0)),
            request_timeout=float(data.get("request_timeout", 30.0)),
        )


@dataclass
class StorageConfig:
    """Configuration for the response cache and saved output files.

    Attributes:
        cache_dir: Root of the response cache
        output_dir: Default directory for saved markdown
        allowed_directories: Directories a caller-supplied save location may
            point into (defaults to the tool home and the output directory)
    """

    cache_dir: Path = field(default_factory=lambda: _DEFAULT_HOME / "cache")
    output_dir: Path = field(default_factory=lambda: _DEFAULT_HOME / "output")
    allowed_directories: List[Path] = field(default_factory=list)

    def get_allowed_directories(self) -> List[Path]:
        """Resolve the allowed save directories."""
        if self.allowed_directories:
            return [Path(p).expanduser().resolve() for p in self.allowed_directories]
        return [_DEFAULT_HOME.resolve(), Path(self.output_dir).expanduser().resolve()]

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "StorageConfig":
        """Create config from TOML dict (typically [storage] section)."""
        config = cls()
        if "cache_dir" in data:
            config.cache_dir = Path(data["cache_dir"]).expanduser()
        if "output_dir" in data:
            config.output_dir = Path(data["output_dir"]).expanduser()
        if "allowed_directories" in data:
            config.allowed_directories = _parse_path_list(data["allowed_directories"])
        return config
