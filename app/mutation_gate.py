from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from app.errors import ApiError
from app.sandbox_config import SandboxConfig
from app.session_classifier import Principal, classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GuardDecision:
    allowed: bool
    operation: str
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"allowed": self.allowed, "operation": self.operation, "reason": self.reason}


def guard(
    operation_kind: str,
    principal: Principal | Mapping[str, Any] | str | None,
    config: SandboxConfig,
) -> GuardDecision:
    classification = classify(principal, config)
    if classification.is_sandbox and not classification.has_override:
        return GuardDecision(
            allowed=False,
            operation=operation_kind,
            reason=config.refusal_message(operation_kind),
        )
    return GuardDecision(allowed=True, operation=operation_kind)


def enforce(
    operation_kind: str,
    principal: Principal | Mapping[str, Any] | str | None,
    config: SandboxConfig,
) -> GuardDecision:
    decision = guard(operation_kind, principal, config)
    if decision.allowed:
        return decision
    logger.info("sandbox_operation_denied operation=%s", operation_kind)
    raise ApiError(
        code="SANDBOX_OPERATION_DENIED",
        message=decision.reason,
        error_class="business_rule",
        retryable=False,
        http_status=403,
        details={"operation": operation_kind},
    )
