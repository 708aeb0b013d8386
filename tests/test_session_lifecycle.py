from __future__ import annotations

import json

import pytest

from app.kv_backend import InMemoryKeyValueBackend
from app.sandbox_config import SandboxConfig
from app.session_lifecycle import SessionLifecycle


def _lifecycle(config: SandboxConfig | None = None):
    persistent = InMemoryKeyValueBackend()
    sessions = InMemoryKeyValueBackend()
    persistent.set("companies", json.dumps([{"code": "TAMJ", "name": "Tamj"}]))
    persistent.set("officeCounter", "10")
    lifecycle = SessionLifecycle(persistent=persistent, sessions=sessions, config=config or SandboxConfig())
    return persistent, sessions, lifecycle


def test_sandbox_session_is_rolled_back_on_logout(sandbox_principal):
    persistent, sessions, lifecycle = _lifecycle()
    started = lifecycle.start(sandbox_principal)

    assert started.session_id.startswith("sess_")
    assert started.classification.should_restore is True
    assert started.captured_keys == ["companies", "officeCounter"]
    assert lifecycle.exists(started.session_id)

    persistent.set("companies", "[]")
    persistent.set("officeCounter", "11")

    ended = lifecycle.end(started.session_id, reason="logout")
    assert ended is not None
    assert ended.restored_keys == ["companies", "officeCounter"]
    assert persistent.get("officeCounter") == "10"
    assert lifecycle.exists(started.session_id) is False
    assert sessions.keys() == []


def test_override_session_keeps_changes(override_principal):
    persistent, _, lifecycle = _lifecycle()
    started = lifecycle.start(override_principal)
    assert started.captured_keys == []

    persistent.set("officeCounter", "99")
    ended = lifecycle.end(started.session_id, reason="teardown")

    assert ended.reason == "teardown"
    assert ended.restored_keys == []
    assert persistent.get("officeCounter") == "99"


def test_regular_session_keeps_changes(regular_principal):
    persistent, _, lifecycle = _lifecycle()
    started = lifecycle.start(regular_principal)
    assert started.classification.is_sandbox is False

    persistent.set("companies", "[]")
    lifecycle.end(started.session_id)
    assert persistent.get("companies") == "[]"


def test_end_unknown_session_returns_none():
    _, _, lifecycle = _lifecycle()
    assert lifecycle.end("sess_missing") is None


def test_sessions_are_isolated(sandbox_principal, regular_principal):
    _, _, lifecycle = _lifecycle()
    first = lifecycle.start(sandbox_principal)
    second = lifecycle.start(regular_principal)

    assert lifecycle.principal(first.session_id).tenant_code == "TAMJ"
    assert lifecycle.principal(second.session_id).tenant_code == "ACME"
    lifecycle.end(first.session_id)
    assert lifecycle.exists(second.session_id) is True


@pytest.mark.parametrize(("fail_closed", "restored"), [(False, []), (True, ["companies", "officeCounter"])])
def test_corrupted_principal_follows_failure_policy(sandbox_principal, fail_closed, restored):
    persistent, sessions, lifecycle = _lifecycle(SandboxConfig(fail_closed=fail_closed))
    started = lifecycle.start(sandbox_principal)
    sessions.scoped(f"session:{started.session_id}").set("currentUser", "{corrupted")
    persistent.set("companies", "[]")

    assert lifecycle.principal(started.session_id) is None
    ended = lifecycle.end(started.session_id)

    assert ended.restored_keys == restored
    assert lifecycle.exists(started.session_id) is False
