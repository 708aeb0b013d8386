from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from app.runtime_profile import env_bool, split_csv

DEFAULT_TRACKED_KEYS: tuple[str, ...] = (
    "companies",
    "offices",
    "accounts",
    "partners",
    "onetouch.contracts",
    "onetouch.items",
    "onetouch.reports",
    "officeCounter",
)

DEFAULT_SANDBOX_TENANTS: frozenset[str] = frozenset({"TAMJ", "JMAT", "SYSTEM"})

DEFAULT_REFUSAL_MESSAGES: dict[str, str] = {
    "delete": "Data cannot be deleted in demo mode.",
    "export": "Data cannot be exported in demo mode.",
    "import": (
        "Data cannot be imported in demo mode.\n"
        "Imports are restricted because OCR/AI processing incurs costs."
    ),
    "default": "This operation is not available in demo mode.",
}


@dataclass(frozen=True)
class SandboxConfig:
    sandbox_tenants: frozenset[str] = DEFAULT_SANDBOX_TENANTS
    override_role: str = "system_admin"
    tracked_keys: tuple[str, ...] = DEFAULT_TRACKED_KEYS
    snapshot_prefix: str = "demo_snapshot_"
    principal_key: str = "currentUser"
    refusal_messages: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_REFUSAL_MESSAGES))
    fail_closed: bool = False

    def __post_init__(self) -> None:
        if not self.tracked_keys:
            raise ValueError("tracked_keys must not be empty")
        if len(set(self.tracked_keys)) != len(self.tracked_keys):
            raise ValueError("tracked_keys must be unique")
        if not self.snapshot_prefix:
            raise ValueError("snapshot_prefix must not be empty")
        if "default" not in self.refusal_messages:
            raise ValueError("refusal_messages must define a default message")

    def snapshot_key(self, key: str) -> str:
        return f"{self.snapshot_prefix}{key}"

    def refusal_message(self, operation_kind: str) -> str:
        return self.refusal_messages.get(operation_kind) or self.refusal_messages["default"]

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "SandboxConfig":
        env = os.environ if environ is None else environ
        tenants = split_csv(env.get("SANDBOX_TENANT_CODES", ""))
        tracked = split_csv(env.get("SANDBOX_TRACKED_KEYS", ""))
        messages = dict(DEFAULT_REFUSAL_MESSAGES)
        for kind in ("delete", "export", "import", "default"):
            override = env.get(f"SANDBOX_MESSAGE_{kind.upper()}", "").strip()
            if override:
                messages[kind] = override
        return cls(
            sandbox_tenants=frozenset(tenants) if tenants else DEFAULT_SANDBOX_TENANTS,
            override_role=env.get("SANDBOX_OVERRIDE_ROLE", "system_admin").strip() or "system_admin",
            tracked_keys=tuple(tracked) if tracked else DEFAULT_TRACKED_KEYS,
            snapshot_prefix=env.get("SANDBOX_SNAPSHOT_PREFIX", "demo_snapshot_").strip() or "demo_snapshot_",
            principal_key=env.get("SANDBOX_PRINCIPAL_KEY", "currentUser").strip() or "currentUser",
            refusal_messages=messages,
            fail_closed=env_bool(env, "SANDBOX_CLASSIFY_FAIL_CLOSED", False),
        )
