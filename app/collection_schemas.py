from __future__ import annotations

import json
from typing import Any

from jsonschema import ValidationError, validate

from app.errors import ApiError
from app.repositories.collections import (
    ACCOUNTS_KEY,
    COMPANIES_KEY,
    CONTRACTS_KEY,
    ITEMS_KEY,
    OFFICE_COUNTER_KEY,
    OFFICES_KEY,
    PARTNERS_KEY,
    REPORTS_KEY,
)

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

COLLECTION_SCHEMAS: dict[str, dict[str, Any]] = {
    COMPANIES_KEY: {
        "type": "array",
        "items": {
            "type": "object",
            "required": ["code", "name"],
            "properties": {"code": {"type": "string", "minLength": 1}, "name": {"type": "string"}},
        },
    },
    OFFICES_KEY: {
        "type": "array",
        "items": {
            "type": "object",
            "required": ["companyCode", "code"],
            "properties": {
                "companyCode": {"type": "string", "minLength": 1},
                "code": {"type": "string", "minLength": 1},
            },
        },
    },
    ACCOUNTS_KEY: {
        "type": "array",
        "items": {
            "type": "object",
            "required": ["id", "role", "companyCode"],
            "properties": {
                "id": {"type": "string", "minLength": 1},
                "role": {"type": "string"},
                "companyCode": {"type": "string"},
            },
        },
    },
    PARTNERS_KEY: {
        "type": "array",
        "items": {
            "type": "object",
            "required": ["id", "name"],
            "properties": {
                "id": {"type": "string", "minLength": 1},
                "name": {"type": "string"},
                "categories": _STRING_LIST,
                "status": {"type": "string"},
            },
        },
    },
    CONTRACTS_KEY: {
        "type": "array",
        "items": {
            "type": "object",
            "required": ["id", "partnerId", "companyCode", "categories", "status"],
            "properties": {
                "id": {"type": "string", "minLength": 1},
                "partnerId": {"type": "string", "minLength": 1},
                "companyCode": {"type": "string", "minLength": 1},
                "officeCode": {"type": "string"},
                "categories": _STRING_LIST,
                "status": {"enum": ["active", "inactive"]},
            },
        },
    },
    ITEMS_KEY: {
        "type": "array",
        "items": {
            "type": "object",
            "required": ["itemId", "companyCode", "category"],
            "properties": {
                "itemId": {"type": "string", "minLength": 1},
                "companyCode": {"type": "string", "minLength": 1},
                "category": {"type": "string"},
                "assignedPartnerId": {"type": ["string", "null"]},
            },
        },
    },
    REPORTS_KEY: {
        "type": "array",
        "items": {
            "type": "object",
            "required": ["id", "companyCode", "category"],
            "properties": {
                "id": {"type": "string", "minLength": 1},
                "companyCode": {"type": "string", "minLength": 1},
                "category": {"type": "string"},
                "assignedPartnerId": {"type": ["string", "null"]},
            },
        },
    },
    OFFICE_COUNTER_KEY: {"type": "integer", "minimum": 0},
}


def validate_collection_payload(key: str, raw: str) -> Any:
    """Decode an imported collection value and check it against its schema.

    Keys without a registered schema only need to be valid JSON.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ApiError(
            code="COLLECTION_PAYLOAD_INVALID",
            message=f"collection {key} is not valid json",
            error_class="validation",
            retryable=False,
            http_status=400,
            details={"key": key, "error": exc.msg},
        ) from None
    schema = COLLECTION_SCHEMAS.get(key)
    if schema is None:
        return data
    try:
        validate(instance=data, schema=schema)
    except ValidationError as exc:
        raise ApiError(
            code="COLLECTION_SCHEMA_INVALID",
            message=f"collection {key} does not match its schema",
            error_class="validation",
            retryable=False,
            http_status=400,
            details={"key": key, "error": exc.message, "path": [str(p) for p in exc.absolute_path]},
        ) from None
    return data
