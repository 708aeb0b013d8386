from __future__ import annotations

import uuid

from fastapi import Request
from fastapi.responses import JSONResponse

from app.container import AppContainer
from app.errors import ApiError
from app.schemas import error_envelope


def trace_id_from_request(request: Request) -> str:
    trace_id = getattr(request.state, "trace_id", None)
    if trace_id:
        return trace_id
    return uuid.uuid4().hex


def tenant_id_from_request(request: Request) -> str | None:
    tenant_id = getattr(request.state, "tenant_id", None)
    if tenant_id:
        return tenant_id
    return None


def request_id_from_request(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    return f"req_{uuid.uuid4().hex[:12]}"


def container_from_request(request: Request) -> AppContainer:
    return request.app.state.container


def session_id_from_request(request: Request) -> str:
    session_id = request.headers.get("x-session-id", "").strip()
    if not session_id:
        raise ApiError(
            code="SESSION_ID_REQUIRED",
            message="x-session-id header is required",
            error_class="validation",
            retryable=False,
            http_status=400,
        )
    return session_id


def require_session(request: Request) -> tuple[str, str | None]:
    """Return the caller's session id and the raw principal record stored for it."""
    session_id = session_id_from_request(request)
    lifecycle = container_from_request(request).lifecycle
    if not lifecycle.exists(session_id):
        raise ApiError(
            code="SESSION_NOT_FOUND",
            message="session not found",
            error_class="validation",
            retryable=False,
            http_status=404,
        )
    return session_id, lifecycle.raw_principal(session_id)


def ensure_tenant_scope(request: Request, tenant_code: str) -> None:
    tenant_id = tenant_id_from_request(request)
    if tenant_id and tenant_id != tenant_code:
        raise ApiError(
            code="TENANT_SCOPE_VIOLATION",
            message="tenant mismatch",
            error_class="security_sensitive",
            retryable=False,
            http_status=403,
        )


def error_response(
    request: Request,
    *,
    code: str,
    message: str,
    error_class: str,
    retryable: bool,
    status_code: int,
    details: dict | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_envelope(
            code=code,
            message=message,
            error_class=error_class,
            retryable=retryable,
            trace_id=trace_id_from_request(request),
            details=details,
        ),
    )
