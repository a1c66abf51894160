"""ServiceResult and ServiceError — the CLI-facing result contract.

Reporting operations (``order``, ``check``) return ServiceResult so the CLI
formatter can render them for humans or as JSON. Library consumers use the
raising API of :class:`~closuredeps.services.graph.GraphService` directly.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from closuredeps.domain.errors import GraphError


class ServiceError(BaseModel):
    """Structured error payload within a ServiceResult."""

    model_config = {"frozen": True}

    code: str
    message: str
    detail: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_exception(cls, exc: GraphError) -> ServiceError:
        return cls(code=exc.code, message=exc.message, detail=exc.detail)


class ServiceResult(BaseModel):
    """Universal return type for reporting operations.

    Attributes:
        ok: Whether the operation succeeded.
        op: Name of the operation (e.g. ``"order"``).
        data: Operation-specific payload on success.
        warnings: Non-fatal issues encountered during the operation.
        error: Structured error if ``ok`` is False.
    """

    model_config = {"frozen": True}

    ok: bool
    op: str
    data: dict[str, Any] = Field(default_factory=dict)
    warnings: list[str] = Field(default_factory=list)
    error: ServiceError | None = None

    @classmethod
    def failure(cls, op: str, exc: GraphError, **data: Any) -> ServiceResult:
        """Build a failed result from a graph error."""
        return cls(ok=False, op=op, data=data, error=ServiceError.from_exception(exc))
