"""Argument validation for the wiki tools.

Every validator raises ``ValidationError`` with a caller-facing message.
Validators that normalize their input return the normalized value.
"""

import re
from typing import Any, Dict, List, Mapping, Sequence, Tuple

from deepwiki_mcp.core.errors import ValidationError

MAX_QUESTION_LENGTH = 10_000
MIN_DEPTH = 1
MAX_DEPTH = 4

SAVE_MODES = ("save-only", "save-and-show")
WIKI_ACTIONS = ("structure", "extract")

_REPO_SEGMENT = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?$")
_QUERY_ID = re.compile(r"^[a-zA-Z0-9_-]+$")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_repo(repo: Any) -> str:
    """Validate an ``owner/repo`` string and return it trimmed."""
    if not repo or not isinstance(repo, str):
        raise ValidationError("Repository is required and must be a string", field="repo")

    trimmed = repo.strip()
    if not trimmed:
        raise ValidationError("Repository cannot be empty", field="repo")

    parts = trimmed.split("/")
    if len(parts) != 2:
        raise ValidationError(f'Invalid repository format. Expected "owner/repo", got "{repo}"', field="repo")

    owner, name = parts
    if not owner or not name:
        raise ValidationError(
            f'Invalid repository format. Both owner and repo name are required, got "{repo}"',
            field="repo",
        )

    rule = "Must contain only alphanumeric characters and hyphens, and cannot start or end with a hyphen."
    if not _REPO_SEGMENT.match(owner):
        raise ValidationError(f'Invalid repository owner "{owner}". {rule}', field="repo")
    if not _REPO_SEGMENT.match(name):
        raise ValidationError(f'Invalid repository name "{name}". {rule}', field="repo")
    return trimmed


def validate_question(question: Any, field: str = "question") -> str:
    if not question or not isinstance(question, str):
        raise ValidationError("Question is required and must be a string", field=field)

    trimmed = question.strip()
    if not trimmed:
        raise ValidationError("Question cannot be empty", field=field)
    if len(trimmed) > MAX_QUESTION_LENGTH:
        raise ValidationError(
            f"Question is too long ({len(trimmed)} characters). Maximum length is 10,000 characters.",
            field=field,
        )
    return question


def validate_query_id(query_id: Any) -> str:
    if not query_id or not isinstance(query_id, str):
        raise ValidationError("Query ID is required and must be a string", field="query_id")

    trimmed = query_id.strip()
    if not trimmed:
        raise ValidationError("Query ID cannot be empty", field="query_id")
    if not _QUERY_ID.match(trimmed):
        raise ValidationError(
            f'Invalid query ID format "{query_id}". '
            "Must contain only alphanumeric characters, hyphens, and underscores.",
            field="query_id",
        )
    return trimmed


def _validate_string_list(values: Any, label: str, field: str) -> List[str]:
    if not isinstance(values, (list, tuple)):
        raise ValidationError(f"{label}s must be an array", field=field)
    if not values:
        raise ValidationError(f"{label}s array cannot be empty", field=field)

    for index, value in enumerate(values):
        if not isinstance(value, str):
            raise ValidationError(
                f"{label} at index {index} must be a string, got {type(value).__name__}",
                field=field,
            )
        if not value.strip():
            raise ValidationError(f"{label} at index {index} cannot be empty", field=field)
    return list(values)


def validate_chapters(chapters: Any) -> List[str]:
    return _validate_string_list(chapters, "Chapter", "chapters")


def validate_context_files(context_files: Any) -> List[str]:
    return _validate_string_list(context_files, "Context file", "context_files")


def validate_depth(depth: Any, field: str = "depth") -> int:
    if not _is_int(depth):
        raise ValidationError(f"Depth must be an integer, got {depth!r}", field=field)
    if depth < MIN_DEPTH or depth > MAX_DEPTH:
        raise ValidationError(f"Depth must be between {MIN_DEPTH} and {MAX_DEPTH}, got {depth}", field=field)
    return depth


def validate_chapter_depths(chapter_depths: Any) -> Dict[str, int]:
    if not isinstance(chapter_depths, Mapping):
        raise ValidationError("Chapter depths must be an object", field="chapter_depths")
    if not chapter_depths:
        raise ValidationError("Chapter depths object cannot be empty", field="chapter_depths")

    for chapter, depth in chapter_depths.items():
        if not str(chapter).strip():
            raise ValidationError("Chapter name in chapter_depths cannot be empty", field="chapter_depths")
        validate_depth(depth, field="chapter_depths")
    return dict(chapter_depths)


def validate_references_numbers(numbers: Any) -> List[int]:
    if not isinstance(numbers, (list, tuple)):
        raise ValidationError("References numbers must be an array", field="references_numbers")
    if not numbers:
        raise ValidationError("References numbers array cannot be empty", field="references_numbers")

    for index, number in enumerate(numbers):
        if not _is_int(number):
            raise ValidationError(
                f"Reference number at index {index} must be an integer, got {number!r}",
                field="references_numbers",
            )
        if number < 1:
            raise ValidationError(
                f"Reference number at index {index} must be positive, got {number}",
                field="references_numbers",
            )
    return list(numbers)


def _range_bounds(file_name: str, value: Any) -> Tuple[Any, Any]:
    if isinstance(value, Mapping):
        return value.get("start"), value.get("end")
    if isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
        return value[0], value[1]
    raise ValidationError(
        f'Range for file "{file_name}" must be an object with "start" and "end"',
        field="context_ranges",
    )


def validate_context_ranges(context_ranges: Any) -> Dict[str, Tuple[int, int]]:
    """Validate per-file line windows and return them as (start, end) tuples.

    Lines are 0-based and inclusive, matching the ``## name [s-e]``
    headings of the full-context listing.
    """
    if not isinstance(context_ranges, Mapping):
        raise ValidationError("Context ranges must be an object", field="context_ranges")
    if not context_ranges:
        raise ValidationError("Context ranges object cannot be empty", field="context_ranges")

    ranges: Dict[str, Tuple[int, int]] = {}
    for file_name, value in context_ranges.items():
        if not str(file_name).strip():
            raise ValidationError("File path in context_ranges cannot be empty", field="context_ranges")

        start, end = _range_bounds(file_name, value)
        if not _is_int(start):
            raise ValidationError(
                f'Start line for file "{file_name}" must be an integer, got {start!r}',
                field="context_ranges",
            )
        if not _is_int(end):
            raise ValidationError(
                f'End line for file "{file_name}" must be an integer, got {end!r}',
                field="context_ranges",
            )
        if start < 0:
            raise ValidationError(
                f'Start line for file "{file_name}" must be zero or greater, got {start}',
                field="context_ranges",
            )
        if end < start:
            raise ValidationError(
                f'End line ({end}) for file "{file_name}" must be greater than or equal to start line ({start})',
                field="context_ranges",
            )
        ranges[file_name] = (start, end)
    return ranges


def validate_save_to_file(save_to_file: Any) -> str:
    """Return the normalized (lowercase) save mode."""
    if not isinstance(save_to_file, str):
        raise ValidationError(
            f"save_to_file must be a string, got {type(save_to_file).__name__}",
            field="save_to_file",
        )
    normalized = save_to_file.lower()
    if normalized not in SAVE_MODES:
        raise ValidationError(
            f'save_to_file must be either "save-only" or "save-and-show", got "{save_to_file}"',
            field="save_to_file",
        )
    return normalized


def validate_action(action: Any) -> str:
    """Return the normalized (lowercase) wiki parser action."""
    if not isinstance(action, str):
        raise ValidationError(f"Action must be a string, got {type(action).__name__}", field="action")
    normalized = action.lower()
    if normalized not in WIKI_ACTIONS:
        raise ValidationError(f'Action must be either "structure" or "extract", got "{action}"', field="action")
    return normalized
