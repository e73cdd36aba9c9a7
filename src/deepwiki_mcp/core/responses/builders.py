"""Constructors for the ``ToolResponse`` envelope printed by ``--json``."""

from enum import Enum
from typing import Any, Dict, Optional, Union

from deepwiki_mcp.core.responses.types import (
    ErrorCode,
    ErrorType,
    ToolResponse,
    _build_meta,
)


def _code_value(value: Union[Enum, str]) -> str:
    return value.value if isinstance(value, Enum) else value


def success_response(**fields: Any) -> ToolResponse:
    """Create a success response whose payload is ``fields``."""
    return ToolResponse(success=True, data=dict(fields), error=None, meta=_build_meta())


def error_response(
    message: str,
    *,
    error_code: Union[ErrorCode, str] = ErrorCode.INTERNAL_ERROR,
    error_type: Union[ErrorType, str] = ErrorType.INTERNAL,
    remediation: Optional[str] = None,
) -> ToolResponse:
    """Create an error response.

    Example:
        >>> error_response(
        ...     "Invalid repository format: foo",
        ...     error_code=ErrorCode.VALIDATION_ERROR,
        ...     error_type=ErrorType.VALIDATION,
        ...     remediation="Use owner/repo, e.g. facebook/react",
        ... ).data["error_code"]
        'VALIDATION_ERROR'
    """
    payload: Dict[str, Any] = {
        "error_code": _code_value(error_code),
        "error_type": _code_value(error_type),
    }
    if remediation is not None:
        payload["remediation"] = remediation
    return ToolResponse(success=False, data=payload, error=message, meta=_build_meta())
