"""Exception handling for automation web endpoints.

Maps the domain exception hierarchy onto HTTP responses:

- ValidationError, CompileError: 400 with the violation list
- GovernanceError, InvalidTransitionError, StaleDefinitionError: 409
- WorkflowNotFoundError, RunNotFoundError, TemplateNotFoundError: 404
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from litestar import Response
from litestar.status_codes import HTTP_400_BAD_REQUEST, HTTP_404_NOT_FOUND, HTTP_409_CONFLICT

from litestar_automations.exceptions import (
    CompileError,
    GovernanceError,
    InvalidTransitionError,
    RunNotFoundError,
    StaleDefinitionError,
    TemplateNotFoundError,
    ValidationError,
    WorkflowNotFoundError,
)

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request

    from litestar_automations.exceptions import AutomationsError

__all__ = [
    "compile_error_handler",
    "conflict_handler",
    "exception_handlers",
    "not_found_handler",
    "validation_error_handler",
]


def _error_response(error: str, exc: Exception, status_code: int, **extra: Any) -> Response:
    return Response(
        content={"error": error, "message": str(exc), **extra},
        status_code=status_code,
        media_type="application/json",
    )


def validation_error_handler(_request: Request, exc: ValidationError) -> Response:
    """Return a 400 response listing every violation."""
    return _error_response("validation_failed", exc, HTTP_400_BAD_REQUEST, violations=exc.violations)


def compile_error_handler(_request: Request, exc: CompileError) -> Response:
    """Return a 400 response naming the malformed element."""
    return _error_response(
        "compile_failed", exc, HTTP_400_BAD_REQUEST, element_id=exc.element_id, violations=[str(exc)]
    )


def conflict_handler(_request: Request, exc: AutomationsError) -> Response:
    """Return a 409 response for governance, transition and version conflicts."""
    if isinstance(exc, GovernanceError):
        return _error_response("governance", exc, HTTP_409_CONFLICT, reason=exc.reason)
    if isinstance(exc, StaleDefinitionError):
        return _error_response(
            "stale_definition",
            exc,
            HTTP_409_CONFLICT,
            expected_version=exc.expected_version,
            actual_version=exc.actual_version,
        )
    return _error_response("invalid_transition", exc, HTTP_409_CONFLICT)


def not_found_handler(_request: Request, exc: AutomationsError) -> Response:
    """Return a 404 response."""
    return _error_response("not_found", exc, HTTP_404_NOT_FOUND)


exception_handlers: dict[type[Exception], Any] = {
    ValidationError: validation_error_handler,
    CompileError: compile_error_handler,
    GovernanceError: conflict_handler,
    InvalidTransitionError: conflict_handler,
    StaleDefinitionError: conflict_handler,
    WorkflowNotFoundError: not_found_handler,
    RunNotFoundError: not_found_handler,
    TemplateNotFoundError: not_found_handler,
}
"""Handlers registered by the automation plugin."""
