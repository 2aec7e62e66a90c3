"""Payroll errors and their RFC 7807 Problem Detail rendering.

Every error a service raises is an ``AppException``. The handlers turn it
into ``application/problem+json``; extension members (``entity``,
``errors``) ride along in the body.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)

BASE_ERROR_URI = "https://hr-payroll.local/errors"
PROBLEM_JSON = "application/problem+json"


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for payroll errors; ``error_type`` names the problem type URI."""

    def __init__(
        self,
        status_code: int,
        error_type: str,
        title: str,
        detail: str,
        errors: Optional[dict[str, list[str]]] = None,
        extensions: Optional[dict[str, Any]] = None,
    ) -> None:
        self.status_code = status_code
        self.error_type = error_type
        self.title = title
        self.detail = detail
        self.errors = errors
        self.extensions = extensions or {}
        super().__init__(detail)


class NotFoundException(AppException):
    """404 — an employee, shift, salary row or hold that does not exist."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            status_code=404,
            error_type="not-found",
            title=f"{entity_type} Not Found",
            detail=f"{entity_type} '{entity_id}' does not exist.",
            extensions={"entity": entity_type, "entity_id": str(entity_id)},
        )


class ConflictError(AppException):
    """409 — active hold, finalized salary, duplicate row."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=409,
            error_type="conflict",
            title="Conflict",
            detail=detail,
        )


class ForbiddenException(AppException):
    """403 — wrong role, or a payslip that is on hold."""

    def __init__(
        self,
        detail: str = "You do not have permission to perform this action.",
    ) -> None:
        super().__init__(
            status_code=403,
            error_type="forbidden",
            title="Forbidden",
            detail=detail,
        )


class ValidationException(AppException):
    """422 — field errors keyed by field name (``entries.3`` for batch items)."""

    def __init__(
        self,
        errors: dict[str, list[str]],
        detail: str = "One or more fields failed validation.",
    ) -> None:
        super().__init__(
            status_code=422,
            error_type="validation-error",
            title="Validation Error",
            detail=detail,
            errors=errors,
        )

    @classmethod
    def on(cls, field: str, message: str) -> "ValidationException":
        return cls({field: [message]})


class ComputationError(AppException):
    """500 — shift or salary configuration that cannot be computed with."""

    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=500,
            error_type="computation-error",
            title="Computation Error",
            detail=detail,
        )


# ── FastAPI handlers ────────────────────────────────────────────────

def problem_detail(exc: AppException, instance: str) -> dict[str, Any]:
    body: dict[str, Any] = {
        "type": f"{BASE_ERROR_URI}/{exc.error_type}",
        "title": exc.title,
        "status": exc.status_code,
        "detail": exc.detail,
        "instance": instance,
    }
    body.update(exc.extensions)
    if exc.errors:
        body["errors"] = exc.errors
    return body


async def _handle_app_exception(request: Request, exc: AppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s on %s: %s", exc.error_type, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=problem_detail(exc, request.url.path),
        media_type=PROBLEM_JSON,
    )


async def _handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    field_errors: dict[str, list[str]] = {}
    for err in exc.errors():
        # Drop the leading "body"/"path"/"query" segment
        loc = err.get("loc", ())
        name = ".".join(str(p) for p in loc[1:]) if len(loc) > 1 else str(loc[0]) if loc else "unknown"
        field_errors.setdefault(name, []).append(err.get("msg", "Invalid value"))
    return await _handle_app_exception(
        request, ValidationException(field_errors, detail="Request validation failed."),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, _handle_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _handle_validation_error)  # type: ignore[arg-type]
