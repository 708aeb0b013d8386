from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from app.assignment_resolver import ResolverContext, assign_all
from app.repositories.collections import (
    ACCOUNTS_KEY,
    COMPANIES_KEY,
    CONTRACTS_KEY,
    ITEMS_KEY,
    OFFICE_COUNTER_KEY,
    OFFICES_KEY,
    PARTNERS_KEY,
    REPORTS_KEY,
    KeyValueCollectionsRepository,
)

logger = logging.getLogger(__name__)

SEED_VERSION = "v12"

CATEGORIES: tuple[str, ...] = ("building", "room_common", "care_equipment", "kitchen", "network")

_TENANTS: dict[str, dict[str, Any]] = {
    "TAMJ": {
        "name": "Tamj Corporation",
        "offices": [("TAMJ-J0001", "Sakura House"), ("TAMJ-J0002", "Himawari Lodge"), ("TAMJ-J0003", "Aozora Home")],
    },
    "JMAT": {
        "name": "JMAT Japan LLC",
        "offices": [("JMAT-J0001", "Green Hill"), ("JMAT-J0002", "Cosmos Garden"), ("JMAT-J0003", "Yasuragi Hill")],
    },
}

_PARTNERS: list[dict[str, Any]] = [
    {"id": "PN001", "name": "Tamj Construction", "categories": list(CATEGORIES)},
    {"id": "PN002", "name": "AC Tamj", "categories": ["building"]},
    {"id": "PN003", "name": "EV Tamj", "categories": ["building"]},
    {"id": "PN004", "name": "Tamtam Furniture", "categories": ["room_common", "care_equipment", "kitchen", "network"]},
    {"id": "PN005", "name": "Linen Tamj", "categories": ["room_common"]},
    {"id": "PN006", "name": "Kitchen Tamj", "categories": ["kitchen"]},
    {"id": "PN007", "name": "Tam Net", "categories": ["network"]},
]

_ITEM_TEMPLATES: dict[str, list[str]] = {
    "building": ["Air conditioner", "Water heater", "Automatic door", "Distribution board"],
    "room_common": ["Electric bed", "Television", "Washing machine"],
    "care_equipment": ["Wheelchair", "Suction unit", "AED"],
    "kitchen": ["Refrigerator", "Dishwasher", "Ice maker"],
    "network": ["Wi-Fi access point", "Nurse call unit", "Security camera"],
}

_REPORTS: list[tuple[str, str, str]] = [
    ("Air conditioner on 2F is not cooling", "building", "completed"),
    ("Corridor light is out", "building", "completed"),
    ("Wheelchair brake is weak", "care_equipment", "pending"),
    ("Kitchen refrigerator makes noise", "kitchen", "completed"),
    ("Nurse call responds slowly", "network", "in_progress"),
    ("Shared-space TV shows no picture", "room_common", "completed"),
    ("Dishwasher shows an error", "kitchen", "in_progress"),
    ("Wi-Fi keeps dropping", "network", "completed"),
]

ITEMS_PER_CATEGORY = 6


def _ts(day_offset: int) -> str:
    base = datetime(2025, 1, 10, 9, 0, tzinfo=UTC)
    return (base + timedelta(days=day_offset % 20)).isoformat().replace("+00:00", "Z")


def build_companies() -> list[dict[str, Any]]:
    companies = [{"code": code, "name": meta["name"], "status": "active"} for code, meta in _TENANTS.items()]
    companies.append({"code": "SYSTEM", "name": "Platform Operations", "status": "active"})
    return companies


def build_offices() -> list[dict[str, Any]]:
    return [
        {
            "companyCode": code,
            "companyName": meta["name"],
            "code": office_code,
            "name": office_name,
            "status": "active",
            "createdAt": "2025-01-10",
        }
        for code, meta in _TENANTS.items()
        for office_code, office_name in meta["offices"]
    ]


def build_accounts() -> list[dict[str, Any]]:
    accounts: list[dict[str, Any]] = [
        {"id": "sysadmin", "name": "System Administrator", "role": "system_admin", "companyCode": "SYSTEM"},
    ]
    for code, meta in _TENANTS.items():
        accounts.append({"id": f"{code}-H001", "name": f"{code} head office", "role": "company_admin", "companyCode": code})
        for office_code, office_name in meta["offices"]:
            suffix = office_code.rsplit("-", 1)[-1].lower()
            accounts.append(
                {
                    "id": f"{code.lower()}-{suffix}-admin",
                    "name": f"{office_name} administrator",
                    "role": "office_admin",
                    "companyCode": code,
                    "officeCode": office_code,
                }
            )
            accounts.append(
                {
                    "id": f"{code.lower()}-{suffix}-staff1",
                    "name": f"{office_name} staff",
                    "role": "staff",
                    "companyCode": code,
                    "officeCode": office_code,
                }
            )
    for row in accounts:
        row["status"] = "active"
    return accounts


def build_partners() -> list[dict[str, Any]]:
    return [{**row, "partnerCode": row["id"], "status": "active"} for row in _PARTNERS]


def build_contracts() -> list[dict[str, Any]]:
    contracts: list[dict[str, Any]] = []
    for code in _TENANTS:
        for idx, partner in enumerate(_PARTNERS, start=1):
            contracts.append(
                {
                    "id": f"CNT-{code[0]}{idx:02d}",
                    "partnerId": partner["id"],
                    "companyCode": code,
                    "officeCode": "",
                    "categories": list(partner["categories"]),
                    "status": "active",
                    "createdAt": "2025-01-15T00:00:00Z",
                }
            )
    return contracts


def build_items() -> list[dict[str, Any]]:
    items: list[dict[str, Any]] = []
    for code, meta in _TENANTS.items():
        counter = 1
        for office_code, office_name in meta["offices"]:
            for category in CATEGORIES:
                names = _ITEM_TEMPLATES[category]
                for r in range(ITEMS_PER_CATEGORY):
                    name = names[r % len(names)]
                    if r >= len(names):
                        name = f"{name} #{r + 1}"
                    items.append(
                        {
                            "itemId": f"ITEM-{code}-{counter:04d}",
                            "companyCode": code,
                            "officeCode": office_code,
                            "officeName": office_name,
                            "name": name,
                            "category": category,
                            "stock": 1,
                            "assignedPartnerId": None,
                            "assignedPartnerName": "",
                            "status": "active",
                            "createdAt": _ts(counter),
                            "updatedAt": _ts(counter),
                        }
                    )
                    counter += 1
    return items


def build_reports() -> list[dict[str, Any]]:
    reports: list[dict[str, Any]] = []
    for code, meta in _TENANTS.items():
        offices = meta["offices"]
        for i, (title, category, status) in enumerate(_REPORTS):
            office_code, office_name = offices[i % len(offices)]
            reports.append(
                {
                    "id": f"RPT-{code}-{i + 1:04d}",
                    "companyCode": code,
                    "officeCode": office_code,
                    "officeName": office_name,
                    "title": title,
                    "category": category,
                    "type": "report",
                    "status": status,
                    "assignedPartnerId": None,
                    "assignedPartnerName": "",
                    "createdAt": _ts(i),
                }
            )
    return reports


def seed_sample_data(repo: KeyValueCollectionsRepository, *, force: bool = False) -> dict[str, Any]:
    """Write the sample tenants and their maintenance data to the persistent store.

    Skipped when the seed marker already holds the current version, unless
    ``force`` is set. Items and reports are assigned to partners with
    independent round-robin contexts, in collection order.
    """
    if not force and repo.is_seeded(SEED_VERSION):
        return {"seeded": False, "version": SEED_VERSION}

    repo.save_list(COMPANIES_KEY, build_companies())
    offices = build_offices()
    repo.save_list(OFFICES_KEY, offices)
    repo.put_raw(OFFICE_COUNTER_KEY, str(len(offices) + 4))
    repo.save_list(ACCOUNTS_KEY, build_accounts())
    repo.save_list(PARTNERS_KEY, build_partners())
    repo.save_list(CONTRACTS_KEY, build_contracts())

    contracts = repo.list_contracts()
    partners = repo.list_partners()
    items = assign_all(build_items(), contracts, partners, ResolverContext(), kind="item")
    repo.save_list(ITEMS_KEY, items)
    reports = assign_all(build_reports(), contracts, partners, ResolverContext(), kind="report")
    repo.save_list(REPORTS_KEY, reports)

    repo.mark_seeded(SEED_VERSION)
    logger.info("sample_data_seeded version=%s items=%d reports=%d", SEED_VERSION, len(items), len(reports))
    return {
        "seeded": True,
        "version": SEED_VERSION,
        "counts": {
            COMPANIES_KEY: len(_TENANTS) + 1,
            OFFICES_KEY: len(offices),
            PARTNERS_KEY: len(partners),
            CONTRACTS_KEY: len(contracts),
            ITEMS_KEY: len(items),
            REPORTS_KEY: len(reports),
        },
    }
