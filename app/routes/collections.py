from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter, Request

from app.collection_schemas import validate_collection_payload
from app.errors import ApiError
from app.mutation_gate import enforce
from app.routes._deps import container_from_request, require_session, trace_id_from_request
from app.schemas import CollectionWriteRequest, success_envelope

router = APIRouter(prefix="/api/v1", tags=["collections"])


def _collection_not_found(key: str) -> ApiError:
    return ApiError(
        code="COLLECTION_NOT_FOUND",
        message=f"collection not found: {key}",
        error_class="validation",
        retryable=False,
        http_status=404,
    )


@router.get("/collections/{key}")
def read_collection(key: str, request: Request):
    value = container_from_request(request).collections.get_raw(key)
    if value is None:
        raise _collection_not_found(key)
    return success_envelope({"key": key, "value": value}, trace_id_from_request(request))


@router.put("/collections/{key}")
def write_collection(key: str, payload: CollectionWriteRequest, request: Request):
    container_from_request(request).collections.put_raw(key, payload.value)
    return success_envelope({"key": key, "written": True}, trace_id_from_request(request))


@router.delete("/collections/{key}")
def delete_collection(key: str, request: Request):
    _, raw_principal = require_session(request)
    container = container_from_request(request)
    enforce("delete", raw_principal, container.config)
    deleted = container.collections.delete(key)
    return success_envelope({"key": key, "deleted": deleted}, trace_id_from_request(request))


@router.get("/collections/{key}/export")
def export_collection(key: str, request: Request):
    _, raw_principal = require_session(request)
    container = container_from_request(request)
    enforce("export", raw_principal, container.config)
    value = container.collections.get_raw(key)
    if value is None:
        raise _collection_not_found(key)
    data = {
        "key": key,
        "value": value,
        "exported_at": datetime.now(UTC).isoformat(),
    }
    return success_envelope(data, trace_id_from_request(request))


@router.post("/collections/{key}/import")
def import_collection(key: str, payload: CollectionWriteRequest, request: Request):
    _, raw_principal = require_session(request)
    container = container_from_request(request)
    enforce("import", raw_principal, container.config)
    data = validate_collection_payload(key, payload.value)
    container.collections.put_raw(key, payload.value)
    size = len(data) if isinstance(data, list) else None
    return success_envelope({"key": key, "imported": True, "size": size}, trace_id_from_request(request))
