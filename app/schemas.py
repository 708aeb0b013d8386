from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class PrincipalPayload(BaseModel):
    tenant_code: str = Field(min_length=1)
    role: str = ""
    sandbox_flag: bool = False
    user_id: str = ""
    office_code: str = ""
    partner_id: str = ""


class SessionStartRequest(BaseModel):
    principal: PrincipalPayload


class GuardRequest(BaseModel):
    operation: str = Field(min_length=1)


class CollectionWriteRequest(BaseModel):
    value: str


class AssignableEntityPayload(BaseModel):
    id: str = Field(min_length=1)
    tenant_code: str = Field(min_length=1)
    category: str
    office_code: str = ""
    preassigned_partner_id: str | None = None
    preassigned_partner_name: str = ""
    kind: Literal["item", "report"] = "item"


class ResolveRequest(BaseModel):
    entity: AssignableEntityPayload


class FixtureSeedRequest(BaseModel):
    force: bool = False


def success_envelope(data: Any, trace_id: str, message: str = "ok") -> dict[str, Any]:
    return {
        "success": True,
        "data": data,
        "message": message,
        "meta": {
            "trace_id": trace_id,
        },
    }


def error_envelope(
    *,
    code: str,
    message: str,
    error_class: str,
    retryable: bool,
    trace_id: str,
    details: dict[str, Any] | None = None,
) -> dict[str, Any]:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "retryable": retryable,
        "class": error_class,
    }
    if details is not None:
        error["details"] = details
    return {
        "success": False,
        "error": error,
        "meta": {
            "trace_id": trace_id,
        },
    }
