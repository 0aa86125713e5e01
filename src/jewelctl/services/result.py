"""ServiceResult and ServiceError: the universal service contract.

Every session action and collaborator call returns a ServiceResult.
Failures never raise to the caller; they come back as ``ok=False`` with a
structured, categorised error the caller can display or retry on.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ErrorKind(StrEnum):
    """Error categories surfaced to callers."""

    NETWORK = "network"
    VALIDATION = "validation"
    STATE = "state"
    ASSET = "asset"
    UNKNOWN = "unknown"


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    kind: ErrorKind = ErrorKind.UNKNOWN
    detail: dict[str, Any] = Field(default_factory=dict)


class ServiceResult(BaseModel):
    """Universal return type for all service operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"add_component"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
        meta: Optional metadata (attempt counts, timing, etc.).
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None
    meta: dict[str, Any] | None = None


def failure(
    op: str,
    code: str,
    message: str,
    *,
    kind: ErrorKind,
    detail: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> ServiceResult:
    """Shorthand for an ``ok=False`` result."""
    return ServiceResult(
        ok=False,
        op=op,
        error=ServiceError(code=code, message=message, kind=kind, detail=detail or {}),
        warnings=warnings or [],
    )
