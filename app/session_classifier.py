from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass
from typing import Any

from app.sandbox_config import SandboxConfig

logger = logging.getLogger(__name__)

_TENANT_FIELDS = ("tenant_code", "tenantCode", "companyCode")
_SANDBOX_FIELDS = ("sandbox_flag", "sandboxFlag", "isDemoMode")
_OFFICE_FIELDS = ("office_code", "officeCode")
_PARTNER_FIELDS = ("partner_id", "partnerId")
_USER_FIELDS = ("user_id", "userId", "id")


class PrincipalParseError(ValueError):
    pass


@dataclass(frozen=True)
class Principal:
    tenant_code: str
    role: str
    sandbox_flag: bool = False
    user_id: str = ""
    office_code: str = ""
    partner_id: str = ""

    def to_record(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self) -> str:
        return json.dumps(self.to_record(), ensure_ascii=False, sort_keys=True)


@dataclass(frozen=True)
class SessionClassification:
    is_sandbox: bool
    has_override: bool

    @property
    def should_restore(self) -> bool:
        return self.is_sandbox and not self.has_override

    def to_dict(self) -> dict[str, bool]:
        return {
            "is_sandbox": self.is_sandbox,
            "has_override": self.has_override,
            "should_restore": self.should_restore,
        }


def _first(record: Mapping[str, Any], names: tuple[str, ...]) -> Any:
    for name in names:
        if name in record and record[name] is not None:
            return record[name]
    return None


def _as_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return False


def parse_principal(raw: Principal | Mapping[str, Any] | str | bytes | None) -> Principal:
    """Build a Principal from a session record.

    Accepts the stored JSON text, an already decoded mapping, or a Principal.
    Raises PrincipalParseError when the record is missing or malformed.
    """
    if isinstance(raw, Principal):
        return raw
    if raw is None:
        raise PrincipalParseError("principal record is missing")
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise PrincipalParseError(f"principal record is not valid json: {exc}") from None
    if not isinstance(raw, Mapping):
        raise PrincipalParseError(f"principal record must be an object, got {type(raw).__name__}")

    tenant_code = _first(raw, _TENANT_FIELDS)
    role = raw.get("role")
    if not isinstance(tenant_code, str) or not tenant_code.strip():
        raise PrincipalParseError("principal record has no tenant code")
    if role is not None and not isinstance(role, str):
        raise PrincipalParseError("principal role must be a string")
    return Principal(
        tenant_code=tenant_code.strip(),
        role=(role or "").strip(),
        sandbox_flag=_as_flag(_first(raw, _SANDBOX_FIELDS)),
        user_id=str(_first(raw, _USER_FIELDS) or ""),
        office_code=str(_first(raw, _OFFICE_FIELDS) or ""),
        partner_id=str(_first(raw, _PARTNER_FIELDS) or ""),
    )


def classify_principal(principal: Principal, config: SandboxConfig) -> SessionClassification:
    is_sandbox = principal.tenant_code in config.sandbox_tenants or principal.sandbox_flag
    has_override = principal.role == config.override_role
    return SessionClassification(is_sandbox=is_sandbox, has_override=has_override)


def classify(
    principal: Principal | Mapping[str, Any] | str | bytes | None,
    config: SandboxConfig,
) -> SessionClassification:
    try:
        parsed = parse_principal(principal)
    except PrincipalParseError as exc:
        # Unreadable session state: the configured policy decides which way to fail.
        logger.warning("principal_unreadable fail_closed=%s reason=%s", config.fail_closed, exc)
        return SessionClassification(is_sandbox=config.fail_closed, has_override=False)
    return classify_principal(parsed, config)
