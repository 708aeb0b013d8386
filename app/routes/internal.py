from __future__ import annotations

from fastapi import APIRouter, Request

from app.fixtures import seed_sample_data
from app.routes._deps import container_from_request, trace_id_from_request
from app.schemas import FixtureSeedRequest, success_envelope

router = APIRouter(prefix="/api/v1/internal", tags=["internal"])


@router.post("/fixtures/seed")
def seed_fixtures(payload: FixtureSeedRequest, request: Request):
    data = seed_sample_data(container_from_request(request).collections, force=payload.force)
    return success_envelope(data, trace_id_from_request(request))
