from __future__ import annotations

import json

import pytest

from app.assignment_resolver import AssignableEntity, Assignment, ResolverContext, partner_tenants, resolve
from app.collection_schemas import validate_collection_payload
from app.errors import ApiError
from app.kv_backend import InMemoryKeyValueBackend
from app.repositories.collections import (
    CONTRACTS_KEY,
    ITEMS_KEY,
    PARTNERS_KEY,
    KeyValueCollectionsRepository,
)


@pytest.fixture
def repo() -> KeyValueCollectionsRepository:
    return KeyValueCollectionsRepository(InMemoryKeyValueBackend())


def test_missing_or_unreadable_collection_loads_as_empty(repo):
    assert repo.load_list(PARTNERS_KEY) == []
    repo.put_raw(PARTNERS_KEY, "{not json")
    assert repo.load_list(PARTNERS_KEY) == []
    repo.put_raw(PARTNERS_KEY, json.dumps({"id": "PN001"}))
    assert repo.load_list(PARTNERS_KEY) == []


def test_load_list_drops_non_object_rows(repo):
    repo.put_raw(PARTNERS_KEY, json.dumps([{"id": "PN001", "name": "A"}, "PN002", None, 7]))
    assert repo.load_list(PARTNERS_KEY) == [{"id": "PN001", "name": "A"}]


def test_list_contracts_skips_incomplete_rows_and_filters_tenant(repo):
    repo.save_list(
        CONTRACTS_KEY,
        [
            {"id": "CNT-T01", "partnerId": "PN001", "companyCode": "TAMJ", "categories": ["building"], "status": "active"},
            {"id": "CNT-BAD", "companyCode": "TAMJ"},
            {"id": "CNT-J01", "partnerId": "PN001", "companyCode": "JMAT", "categories": ["kitchen"], "status": "active"},
        ],
    )
    assert [c.id for c in repo.list_contracts()] == ["CNT-T01", "CNT-J01"]
    assert [c.id for c in repo.list_contracts(tenant_code="JMAT")] == ["CNT-J01"]


def test_contract_without_status_leaves_entity_unassigned(repo):
    repo.save_list(CONTRACTS_KEY, [{"id": "C1", "partnerId": "P1", "companyCode": "T", "categories": ["CAT"]}])
    entity = AssignableEntity(id="E1", tenant_code="T", category="CAT")

    result = resolve(entity, repo.list_contracts(), repo.list_partners(), ResolverContext())

    assert result == Assignment(partner_id=None, partner_name="")
    assert partner_tenants("P1", repo.list_contracts()) == []


def test_list_entities_reads_items_and_reports(repo):
    repo.save_list(ITEMS_KEY, [{"itemId": "ITEM-1", "companyCode": "TAMJ", "category": "building"}, {"name": "orphan"}])
    entities = repo.list_entities("item")
    assert [(e.id, e.kind) for e in entities] == [("ITEM-1", "item")]
    assert repo.list_entities("report") == []


def test_seed_marker_tracks_version(repo):
    assert repo.is_seeded("v12") is False
    repo.mark_seeded("v11")
    assert repo.is_seeded("v12") is False
    repo.mark_seeded("v12")
    assert repo.is_seeded("v12") is True


def test_validate_payload_rejects_invalid_json():
    with pytest.raises(ApiError) as exc_info:
        validate_collection_payload(PARTNERS_KEY, "[{")
    assert exc_info.value.code == "COLLECTION_PAYLOAD_INVALID"
    assert exc_info.value.http_status == 400


def test_validate_payload_reports_schema_violation_path():
    payload = json.dumps(
        [{"id": "CNT-T01", "partnerId": "PN001", "companyCode": "TAMJ", "categories": [], "status": "paused"}]
    )
    with pytest.raises(ApiError) as exc_info:
        validate_collection_payload(CONTRACTS_KEY, payload)
    exc = exc_info.value
    assert exc.code == "COLLECTION_SCHEMA_INVALID"
    assert exc.details["key"] == CONTRACTS_KEY
    assert exc.details["path"] == ["0", "status"]


def test_validate_payload_returns_decoded_data():
    assert validate_collection_payload("officeCounter", "10") == 10
    assert validate_collection_payload("custom.notes", '{"free": "form"}') == {"free": "form"}
    with pytest.raises(ApiError):
        validate_collection_payload("officeCounter", "-1")
