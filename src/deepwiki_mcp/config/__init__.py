"""Configuration package for deepwiki-mcp.

Re-exports all public symbols. Callers can use
``from deepwiki_mcp.config import ServerConfig`` etc.

Sub-modules:
    parsing    – Boolean, schedule and path-list parsing helpers
    domains    – AutomationConfig, PollingConfig, StorageConfig
    server     – ServerConfig dataclass, get_config/set_config globals
    loader     – ServerConfig loading mixin (_ServerConfigLoader)
"""

from deepwiki_mcp.config.parsing import (  # noqa: F401
    _parse_bool,
    _try_parse_bool,
    parse_poll_schedule,
)
from deepwiki_mcp.config.domains import (  # noqa: F401
    DEFAULT_DEEP_SCHEDULE,
    DEFAULT_REGULAR_SCHEDULE,
    AutomationConfig,
    PollingConfig,
    StorageConfig,
)
from deepwiki_mcp.config.server import (  # noqa: F401
    _PACKAGE_VERSION,
    ServerConfig,
    get_config,
    set_config,
)
