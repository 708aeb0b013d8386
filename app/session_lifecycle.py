from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from app.kv_backend import KeyValueBackend, NamespacedKeyValue
from app.overlay_snapshot import OverlaySnapshotStore
from app.sandbox_config import SandboxConfig
from app.session_classifier import (
    Principal,
    PrincipalParseError,
    SessionClassification,
    classify,
    parse_principal,
)

logger = logging.getLogger(__name__)

EndReason = Literal["logout", "teardown"]


@dataclass(frozen=True)
class SessionStart:
    session_id: str
    principal: Principal
    classification: SessionClassification
    captured_keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "principal": self.principal.to_record(),
            "classification": self.classification.to_dict(),
            "captured_keys": list(self.captured_keys),
        }


@dataclass(frozen=True)
class SessionEnd:
    session_id: str
    reason: EndReason
    classification: SessionClassification
    restored_keys: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "reason": self.reason,
            "classification": self.classification.to_dict(),
            "restored_keys": list(self.restored_keys),
        }


class SessionLifecycle:
    """Host wiring for the session start and session end hooks.

    Each session owns a namespace on the session backend holding the principal
    record and, for sandbox sessions without override, the overlay snapshot.
    """

    def __init__(
        self,
        *,
        persistent: KeyValueBackend,
        sessions: KeyValueBackend,
        config: SandboxConfig,
    ) -> None:
        self._persistent = persistent
        self._sessions = sessions
        self._config = config

    @property
    def config(self) -> SandboxConfig:
        return self._config

    def _namespace(self, session_id: str) -> NamespacedKeyValue:
        return NamespacedKeyValue(self._sessions, namespace=f"session:{session_id}")

    def snapshot_store(self, session_id: str) -> OverlaySnapshotStore:
        return OverlaySnapshotStore(
            persistent=self._persistent,
            session=self._namespace(session_id),
            config=self._config,
        )

    def exists(self, session_id: str) -> bool:
        return bool(self._namespace(session_id).keys())

    def raw_principal(self, session_id: str) -> str | None:
        return self._namespace(session_id).get(self._config.principal_key)

    def principal(self, session_id: str) -> Principal | None:
        try:
            return parse_principal(self.raw_principal(session_id))
        except PrincipalParseError:
            return None

    def classification(self, session_id: str) -> SessionClassification:
        return classify(self.raw_principal(session_id), self._config)

    def start(self, principal: Principal | Mapping[str, Any] | str) -> SessionStart:
        parsed = parse_principal(principal)
        session_id = f"sess_{uuid.uuid4().hex[:16]}"
        namespace = self._namespace(session_id)
        namespace.set(self._config.principal_key, parsed.to_json())
        classification = classify(parsed, self._config)
        captured: list[str] = []
        if classification.should_restore:
            captured = self.snapshot_store(session_id).capture_on_session_start()
        logger.info(
            "session_started session_id=%s tenant=%s sandbox=%s override=%s",
            session_id,
            parsed.tenant_code,
            classification.is_sandbox,
            classification.has_override,
        )
        return SessionStart(
            session_id=session_id,
            principal=parsed,
            classification=classification,
            captured_keys=captured,
        )

    def end(self, session_id: str, *, reason: EndReason = "logout") -> SessionEnd | None:
        namespace = self._namespace(session_id)
        if not namespace.keys():
            return None
        classification = classify(namespace.get(self._config.principal_key), self._config)
        restored: list[str] = []
        if classification.should_restore:
            restored = self.snapshot_store(session_id).restore_on_session_end()
        namespace.reset()
        logger.info(
            "session_ended session_id=%s reason=%s restored=%d",
            session_id,
            reason,
            len(restored),
        )
        return SessionEnd(
            session_id=session_id,
            reason=reason,
            classification=classification,
            restored_keys=restored,
        )
