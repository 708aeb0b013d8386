from __future__ import annotations

from fastapi import APIRouter, Request

from app.assignment_resolver import AssignableEntity, partner_tenants, resolve
from app.routes._deps import container_from_request, ensure_tenant_scope, trace_id_from_request
from app.schemas import ResolveRequest, success_envelope

router = APIRouter(prefix="/api/v1", tags=["assignments"])


@router.post("/assignments/resolve")
def resolve_assignment(payload: ResolveRequest, request: Request):
    ensure_tenant_scope(request, payload.entity.tenant_code)
    container = container_from_request(request)
    entity = AssignableEntity(**payload.entity.model_dump())
    assignment = resolve(
        entity,
        container.collections.list_contracts(),
        container.collections.list_partners(),
        container.resolver_context,
    )
    data = {"entity_id": entity.id, "kind": entity.kind, **assignment.to_dict()}
    return success_envelope(data, trace_id_from_request(request))


@router.get("/assignments/counters")
def resolver_counters(request: Request):
    counters = container_from_request(request).resolver_context.snapshot()
    return success_envelope({"counters": counters}, trace_id_from_request(request))


@router.get("/partners/{partner_id}/tenants")
def list_partner_tenants(partner_id: str, request: Request):
    tenants = partner_tenants(partner_id, container_from_request(request).collections.list_contracts())
    return success_envelope({"partner_id": partner_id, "tenants": tenants}, trace_id_from_request(request))
