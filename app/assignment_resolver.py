from __future__ import annotations

import threading
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

EntityKind = Literal["item", "report"]


def _text(record: Mapping[str, Any], *names: str) -> str:
    for name in names:
        value = record.get(name)
        if value is None:
            continue
        return str(value).strip()
    return ""


def _categories(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple, set, frozenset)):
        return ()
    names = (str(x).strip() for x in value if x is not None)
    return tuple(name for name in names if name)


@dataclass(frozen=True)
class Contract:
    id: str
    partner_id: str
    tenant_code: str
    categories: tuple[str, ...]
    status: str = "active"
    office_scope: str = ""
    created_at: str = ""

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    def matches(self, entity: "AssignableEntity") -> bool:
        if not self.is_active or self.tenant_code != entity.tenant_code:
            return False
        if entity.category not in self.categories:
            return False
        return not self.office_scope or self.office_scope == entity.office_code

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Contract":
        contract_id = _text(record, "id", "contract_id")
        partner_id = _text(record, "partner_id", "partnerId")
        tenant_code = _text(record, "tenant_code", "tenantCode", "companyCode")
        if not contract_id or not partner_id or not tenant_code:
            raise ValueError("contract record requires id, partner id and tenant code")
        return cls(
            id=contract_id,
            partner_id=partner_id,
            tenant_code=tenant_code,
            categories=_categories(record.get("categories")),
            # A record without a status never counts as active.
            status=_text(record, "status"),
            office_scope=_text(record, "office_scope", "officeScope", "officeCode"),
            created_at=_text(record, "created_at", "createdAt"),
        )


@dataclass(frozen=True)
class Partner:
    id: str
    name: str
    categories: tuple[str, ...] = ()
    status: str = "active"
    partner_code: str = ""

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Partner":
        partner_id = _text(record, "id", "partner_id")
        if not partner_id:
            raise ValueError("partner record requires id")
        return cls(
            id=partner_id,
            name=_text(record, "name"),
            categories=_categories(record.get("categories")),
            status=_text(record, "status") or "active",
            partner_code=_text(record, "partner_code", "partnerCode"),
        )


@dataclass(frozen=True)
class AssignableEntity:
    """Shared shape of inventory items and incident reports."""

    id: str
    tenant_code: str
    category: str
    office_code: str = ""
    preassigned_partner_id: str | None = None
    preassigned_partner_name: str = ""
    kind: EntityKind = "item"

    @classmethod
    def from_record(cls, record: Mapping[str, Any], *, kind: EntityKind = "item") -> "AssignableEntity":
        entity_id = _text(record, "id", "itemId", "item_id")
        tenant_code = _text(record, "tenant_code", "tenantCode", "companyCode")
        if not entity_id or not tenant_code:
            raise ValueError(f"{kind} record requires id and tenant code")
        preassigned = _text(record, "preassigned_partner_id", "assignedPartnerId", "assigned_partner_id")
        return cls(
            id=entity_id,
            tenant_code=tenant_code,
            category=_text(record, "category"),
            office_code=_text(record, "office_code", "officeCode"),
            preassigned_partner_id=preassigned or None,
            preassigned_partner_name=_text(
                record, "preassigned_partner_name", "assignedPartnerName", "assigned_partner_name"
            ),
            kind=kind,
        )


@dataclass(frozen=True)
class Assignment:
    partner_id: str | None
    partner_name: str

    @property
    def assigned(self) -> bool:
        return self.partner_id is not None

    def to_dict(self) -> dict[str, Any]:
        return {"partner_id": self.partner_id, "partner_name": self.partner_name}


UNASSIGNED = Assignment(partner_id=None, partner_name="")


@dataclass
class ResolverContext:
    """Round-robin counters keyed by (tenant_code, category).

    Owned by whoever runs a resolution batch. Counters are never persisted;
    a fresh context starts every key at zero.
    """

    counters: dict[tuple[str, str], int] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def take(self, key: tuple[str, str], size: int) -> int:
        with self._lock:
            current = self.counters.get(key, 0)
            self.counters[key] = current + 1
        return current % size

    def reset(self) -> None:
        with self._lock:
            self.counters.clear()

    def snapshot(self) -> dict[str, int]:
        with self._lock:
            return {f"{tenant}:{category}": value for (tenant, category), value in self.counters.items()}


def find_partner(partner_id: str, partners: Iterable[Partner]) -> Partner | None:
    for partner in partners:
        if partner.id == partner_id or (partner.partner_code and partner.partner_code == partner_id):
            return partner
    return None


def matching_contracts(entity: AssignableEntity, contracts: Iterable[Contract]) -> list[Contract]:
    return [contract for contract in contracts if contract.matches(entity)]


def resolve(
    entity: AssignableEntity,
    contracts: Sequence[Contract],
    partners: Sequence[Partner],
    context: ResolverContext,
) -> Assignment:
    if entity.preassigned_partner_id:
        name = entity.preassigned_partner_name
        if not name:
            partner = find_partner(entity.preassigned_partner_id, partners)
            name = partner.name if partner is not None else ""
        return Assignment(partner_id=entity.preassigned_partner_id, partner_name=name)

    candidates = matching_contracts(entity, contracts)
    if not candidates:
        return UNASSIGNED

    idx = context.take((entity.tenant_code, entity.category), len(candidates))
    chosen = candidates[idx]
    partner = find_partner(chosen.partner_id, partners)
    return Assignment(partner_id=chosen.partner_id, partner_name=partner.name if partner is not None else "")


def assign_all(
    records: Iterable[dict[str, Any]],
    contracts: Sequence[Contract],
    partners: Sequence[Partner],
    context: ResolverContext,
    *,
    kind: EntityKind = "item",
) -> list[dict[str, Any]]:
    """Resolve a batch in order and write the result onto copies of the records.

    Unassigned records are copied unchanged.
    """
    out: list[dict[str, Any]] = []
    for record in records:
        updated = dict(record)
        entity = AssignableEntity.from_record(record, kind=kind)
        assignment = resolve(entity, contracts, partners, context)
        if assignment.assigned:
            updated["assignedPartnerId"] = assignment.partner_id
            updated["assignedPartnerName"] = assignment.partner_name
        out.append(updated)
    return out


def partner_tenants(partner_id: str, contracts: Iterable[Contract]) -> list[str]:
    tenants: list[str] = []
    for contract in contracts:
        if contract.partner_id == partner_id and contract.is_active and contract.tenant_code not in tenants:
            tenants.append(contract.tenant_code)
    return tenants
