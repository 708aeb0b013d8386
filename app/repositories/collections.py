from __future__ import annotations

import json
import logging
from typing import Any

from app.assignment_resolver import AssignableEntity, Contract, EntityKind, Partner
from app.kv_backend import KeyValueBackend

logger = logging.getLogger(__name__)

COMPANIES_KEY = "companies"
OFFICES_KEY = "offices"
ACCOUNTS_KEY = "accounts"
PARTNERS_KEY = "partners"
CONTRACTS_KEY = "onetouch.contracts"
ITEMS_KEY = "onetouch.items"
REPORTS_KEY = "onetouch.reports"
OFFICE_COUNTER_KEY = "officeCounter"
SEED_MARKER_KEY = "demo_initialized"


class KeyValueCollectionsRepository:
    """JSON collections stored as text values on the shared persistent store."""

    def __init__(self, backend: KeyValueBackend) -> None:
        self._backend = backend

    @property
    def backend(self) -> KeyValueBackend:
        return self._backend

    def get_raw(self, key: str) -> str | None:
        return self._backend.get(key)

    def put_raw(self, key: str, value: str) -> None:
        self._backend.set(key, value)

    def delete(self, key: str) -> bool:
        return self._backend.delete(key)

    def load_list(self, key: str) -> list[dict[str, Any]]:
        raw = self._backend.get(key)
        if raw is None:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("collection_unreadable key=%s", key)
            return []
        if not isinstance(data, list):
            logger.warning("collection_not_a_list key=%s type=%s", key, type(data).__name__)
            return []
        return [row for row in data if isinstance(row, dict)]

    def save_list(self, key: str, rows: list[dict[str, Any]]) -> None:
        self._backend.set(key, json.dumps(rows, ensure_ascii=False, separators=(",", ":")))

    def list_contracts(self, *, tenant_code: str | None = None) -> list[Contract]:
        contracts: list[Contract] = []
        for row in self.load_list(CONTRACTS_KEY):
            try:
                contract = Contract.from_record(row)
            except ValueError as exc:
                logger.warning("contract_record_skipped reason=%s", exc)
                continue
            if tenant_code is None or contract.tenant_code == tenant_code:
                contracts.append(contract)
        return contracts

    def list_partners(self) -> list[Partner]:
        partners: list[Partner] = []
        for row in self.load_list(PARTNERS_KEY):
            try:
                partners.append(Partner.from_record(row))
            except ValueError as exc:
                logger.warning("partner_record_skipped reason=%s", exc)
        return partners

    def list_entities(self, kind: EntityKind) -> list[AssignableEntity]:
        key = ITEMS_KEY if kind == "item" else REPORTS_KEY
        entities: list[AssignableEntity] = []
        for row in self.load_list(key):
            try:
                entities.append(AssignableEntity.from_record(row, kind=kind))
            except ValueError as exc:
                logger.warning("entity_record_skipped kind=%s reason=%s", kind, exc)
        return entities

    def is_seeded(self, version: str) -> bool:
        return self._backend.get(SEED_MARKER_KEY) == version

    def mark_seeded(self, version: str) -> None:
        self._backend.set(SEED_MARKER_KEY, version)
