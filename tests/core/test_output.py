"""Tests for saved-output naming, layout and location checks."""

from datetime import datetime
from pathlib import Path

import pytest

from deepwiki_mcp.core.errors import PathValidationError
from deepwiki_mcp.core.output import (
    ensure_output_structure,
    generate_descriptive_name,
    save_markdown,
    timestamped_filename,
    validate_save_location,
)


class TestDescriptiveName:
    @pytest.mark.parametrize(
        "question,expected",
        [
            ("How does the authentication work?", "does-authentication-work"),
            ("What is the role of the scheduler in React?", "role-scheduler-react"),
            ("Why?", "query"),
            ("", "query"),
            (None, "query"),
            ("Explain hooks", "explain-hooks"),
        ],
    )
    def test_names(self, question, expected):
        assert generate_descriptive_name(question) == expected


class TestLayout:
    def test_output_structure(self, storage_config):
        path = ensure_output_structure(storage_config, "owner/name", "question")
        assert path == storage_config.output_dir / "owner-name" / "questions"
        assert path.is_dir()
        assert ensure_output_structure(storage_config, "owner/name", "wiki").name == "wiki"

    def test_timestamped_filename(self):
        now = datetime(2024, 3, 5, 7, 8, 9)
        assert timestamped_filename("hooks", "_query-q1", now=now) == "2024-03-05_07-08-09_hooks_query-q1.md"

    def test_save_markdown_creates_parents(self, tmp_path):
        target = tmp_path / "deep" / "er" / "out.md"
        assert save_markdown(target, "# Title") == target
        assert target.read_text() == "# Title"


class TestSaveLocation:
    def test_inside_allowed_directory(self, storage_config, tmp_path):
        assert validate_save_location(storage_config, str(tmp_path / "notes" / "a.md")) == (tmp_path / "notes" / "a.md").resolve()

    def test_allowed_directory_itself(self, storage_config, tmp_path):
        assert validate_save_location(storage_config, str(tmp_path)) == tmp_path.resolve()

    def test_traversal_rejected(self, storage_config, tmp_path):
        with pytest.raises(PathValidationError, match="path traversal"):
            validate_save_location(storage_config, str(tmp_path / ".." / "escape.md"))

    def test_outside_rejected(self, storage_config):
        with pytest.raises(PathValidationError) as exc_info:
            validate_save_location(storage_config, str(Path("/") / "etc" / "deepwiki.md"))
        assert exc_info.value.reason == "outside allowed directories"
        assert "must be within one of" in str(exc_info.value)

    def test_empty_rejected(self, storage_config):
        with pytest.raises(PathValidationError, match="non-empty string"):
            validate_save_location(storage_config, "")
