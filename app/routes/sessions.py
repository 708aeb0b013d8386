from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.errors import ApiError
from app.mutation_gate import guard
from app.routes._deps import container_from_request, require_session, trace_id_from_request
from app.schemas import GuardRequest, SessionStartRequest, success_envelope
from app.session_classifier import PrincipalParseError

router = APIRouter(prefix="/api/v1", tags=["sessions"])


def _session_not_found() -> ApiError:
    return ApiError(
        code="SESSION_NOT_FOUND",
        message="session not found",
        error_class="validation",
        retryable=False,
        http_status=404,
    )


@router.post("/sessions")
def start_session(payload: SessionStartRequest, request: Request):
    lifecycle = container_from_request(request).lifecycle
    try:
        started = lifecycle.start(payload.principal.model_dump())
    except PrincipalParseError as exc:
        raise ApiError(
            code="REQ_VALIDATION_FAILED",
            message=str(exc),
            error_class="validation",
            retryable=False,
            http_status=400,
        ) from None
    return JSONResponse(status_code=201, content=success_envelope(started.to_dict(), trace_id_from_request(request)))


@router.get("/sessions/{session_id}")
def get_session(session_id: str, request: Request):
    lifecycle = container_from_request(request).lifecycle
    if not lifecycle.exists(session_id):
        raise _session_not_found()
    principal = lifecycle.principal(session_id)
    data = {
        "session_id": session_id,
        "principal": principal.to_record() if principal is not None else None,
        "classification": lifecycle.classification(session_id).to_dict(),
        "pending_snapshot_keys": lifecycle.snapshot_store(session_id).pending_snapshot_keys(),
    }
    return success_envelope(data, trace_id_from_request(request))


@router.delete("/sessions/{session_id}")
def logout(session_id: str, request: Request):
    ended = container_from_request(request).lifecycle.end(session_id, reason="logout")
    if ended is None:
        raise _session_not_found()
    return success_envelope(ended.to_dict(), trace_id_from_request(request))


@router.post("/sessions/{session_id}/teardown")
def teardown(session_id: str, request: Request):
    # Best-effort hook: the host may fire it for sessions that already ended.
    ended = container_from_request(request).lifecycle.end(session_id, reason="teardown")
    data = ended.to_dict() if ended is not None else {"session_id": session_id, "restored_keys": []}
    data["ended"] = ended is not None
    return success_envelope(data, trace_id_from_request(request))


@router.post("/guard")
def check_guard(payload: GuardRequest, request: Request):
    _, raw_principal = require_session(request)
    decision = guard(payload.operation, raw_principal, container_from_request(request).config)
    return success_envelope(decision.to_dict(), trace_id_from_request(request))
