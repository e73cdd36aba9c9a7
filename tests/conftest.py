"""Shared fixtures for deepwiki-mcp tests."""

import logging
from pathlib import Path

import pytest

from deepwiki_mcp.config import AutomationConfig, PollingConfig, ServerConfig, StorageConfig


@pytest.fixture
def numbered_file():
    """Twenty lines reading ``line 1`` .. ``line 20``."""
    return "\n".join(f"line {n}" for n in range(1, 21))


@pytest.fixture
def storage_config(tmp_path: Path) -> StorageConfig:
    return StorageConfig(
        cache_dir=tmp_path / "cache",
        output_dir=tmp_path / "output",
        allowed_directories=[tmp_path],
    )


@pytest.fixture
def server_config(storage_config: StorageConfig) -> ServerConfig:
    """A config with no pacing delays and cache/output under tmp_path."""
    return ServerConfig(
        automation=AutomationConfig(
            page_ready_delay=0,
            initial_api_delay=0,
            form_ready_delay=0,
            selector_timeout=10.0,
        ),
        polling=PollingConfig(regular_schedule=[10, 15, 20], deep_schedule=[180, 240]),
        storage=storage_config,
    )


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """Undo ``ServerConfig.setup_logging`` so caplog keeps seeing records."""
    logger = logging.getLogger("deepwiki_mcp")
    saved = (logger.handlers[:], logger.level, logger.propagate)
    yield
    logger.handlers, logger.level, logger.propagate = saved[0], saved[1], saved[2]


@pytest.fixture(autouse=True)
def _fresh_executable_cache(monkeypatch):
    """Clear the module-level Chromium path cache between tests."""
    monkeypatch.setattr("deepwiki_mcp.core.automation.browser._cached_executable", None)
