"""ServerConfig loading and validation logic.

Provides ``_ServerConfigLoader``, a mixin class whose methods are inherited by
``ServerConfig`` (defined in ``server.py``).  Splitting loading logic into its
own module keeps ``server.py`` focused on field definitions and simple
accessor methods.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Any, List, Optional, cast

if TYPE_CHECKING:
    from deepwiki_mcp.config.server import ServerConfig

from deepwiki_mcp.config.domains import (
    DEFAULT_DEEP_SCHEDULE,
    DEFAULT_REGULAR_SCHEDULE,
    AutomationConfig,
    PollingConfig,
    StorageConfig,
)
from deepwiki_mcp.config.parsing import (
    _parse_path_list,
    _try_parse_bool,
    parse_poll_schedule,
)

logger = logging.getLogger(__name__)


class _ServerConfigLoader:
    """Mixin providing config-loading methods for ``ServerConfig``.

    These methods are inherited by the ``ServerConfig`` dataclass defined in
    ``server.py``.  At runtime ``self`` is always a ``ServerConfig`` instance.
    """

    if TYPE_CHECKING:
        log_level: str
        structured_logging: bool
        server_name: str
        server_version: str
        automation: AutomationConfig
        polling: PollingConfig
        storage: StorageConfig
        startup_warnings: List[str]

        def _add_startup_warning(self, message: str) -> None: ...

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. Project TOML config (./deepwiki-mcp.toml or ./.deepwiki-mcp.toml)
        3. User TOML config (~/.deepwiki-mcp.toml)
        4. XDG config (~/.config/deepwiki-mcp/config.toml)
        5. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("DEEPWIKI_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
            xdg_config = Path(xdg_config_home) / "deepwiki-mcp" / "config.toml"
            if xdg_config.exists():
                config._load_toml(xdg_config)
                logger.debug(f"Loaded XDG config from {xdg_config}")

            home_config = Path.home() / ".deepwiki-mcp.toml"
            if home_config.exists():
                config._load_toml(home_config)
                logger.debug(f"Loaded user config from {home_config}")

            project_config = Path("deepwiki-mcp.toml")
            if project_config.exists():
                config._load_toml(project_config)
                logger.debug(f"Loaded project config from {project_config}")
            else:
                hidden_config = Path(".deepwiki-mcp.toml")
                if hidden_config.exists():
                    config._load_toml(hidden_config)
                    logger.debug(f"Loaded project config from {hidden_config}")

        config._load_env()

        return cast("ServerConfig", config)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            self._add_startup_warning(f"Ignoring unreadable config file {path}: {e}")
            return

        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = str(log["level"]).upper()
            if "structured" in log:
                self.structured_logging = bool(log["structured"])

        if "server" in data:
            srv = data["server"]
            if "name" in srv:
                self.server_name = srv["name"]
            if "version" in srv:
                self.server_version = srv["version"]

        for section, loader in (
            ("automation", AutomationConfig.from_toml_dict),
            ("polling", PollingConfig.from_toml_dict),
            ("storage", StorageConfig.from_toml_dict),
        ):
            if section not in data:
                continue
            section_data: Any = data[section]
            if not isinstance(section_data, dict):
                self._add_startup_warning(
                    f"Ignoring [{section}] in {path}: expected table/dict, got {type(section_data).__name__}"
                )
                continue
            try:
                setattr(self, section, loader(section_data))
            except (TypeError, ValueError) as e:
                self._add_startup_warning(f"Ignoring invalid [{section}] in {path}: {e}")

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if level := os.environ.get("DEEPWIKI_MCP_LOG_LEVEL"):
            self.log_level = level.upper()

        if structured := os.environ.get("DEEPWIKI_MCP_STRUCTURED_LOGGING"):
            parsed = _try_parse_bool(structured)
            if parsed is not None:
                self.structured_logging = parsed

        # Automation settings
        if headless := os.environ.get("DEEPWIKI_MCP_HEADLESS"):
            parsed = _try_parse_bool(headless)
            if parsed is None:
                self._add_startup_warning(f"Ignoring DEEPWIKI_MCP_HEADLESS={headless!r}: expected boolean")
            else:
                self.automation.headless = parsed
        if executable := os.environ.get("DEEPWIKI_MCP_EXECUTABLE_PATH"):
            self.automation.executable_path = Path(executable).expanduser()
        if browsers := os.environ.get("DEEPWIKI_MCP_BROWSERS_PATH"):
            self.automation.browsers_path = Path(browsers).expanduser()

        # Polling schedules
        if regular := os.environ.get("DEEPWIKI_POLL_INTERVALS_REGULAR"):
            self.polling.regular_schedule = parse_poll_schedule(regular, DEFAULT_REGULAR_SCHEDULE)
        if deep := os.environ.get("DEEPWIKI_POLL_INTERVALS_DEEP"):
            self.polling.deep_schedule = parse_poll_schedule(deep, DEFAULT_DEEP_SCHEDULE)

        # Storage settings (legacy lowercase names are still honoured)
        if cache_dir := os.environ.get("DEEPWIKI_MCP_CACHE_DIR"):
            self.storage.cache_dir = Path(cache_dir).expanduser()
        output_dir = os.environ.get("DEEPWIKI_MCP_OUTPUT_DIR") or os.environ.get("default_directory")
        if output_dir:
            self.storage.output_dir = Path(output_dir).expanduser()
        allowed = os.environ.get("DEEPWIKI_MCP_ALLOWED_DIRECTORIES") or os.environ.get("allowed_directories")
        if allowed:
            dirs = _parse_path_list(allowed)
            if dirs:
                self.storage.allowed_directories = dirs
            else:
                self._add_startup_warning("allowed_directories is empty, using defaults")
