from __future__ import annotations

from pathlib import Path

import pytest

from app.kv_backend import (
    InMemoryKeyValueBackend,
    NamespacedKeyValue,
    RedisKeyValueBackend,
    SqliteKeyValueBackend,
    create_kv_from_env,
)


class FakeRedis:
    def __init__(self):
        self.values: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}

    def get(self, key):
        return self.values.get(key)

    def set(self, key, value):
        self.values[key] = value

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            if self.sets.pop(key, None) is not None:
                removed += 1
        return removed

    def sadd(self, key, member):
        self.sets.setdefault(key, set()).add(member)

    def srem(self, key, member):
        self.sets.get(key, set()).discard(member)

    def smembers(self, key):
        return set(self.sets.get(key, set()))


def test_inmemory_backend_get_set_delete():
    kv = InMemoryKeyValueBackend()
    assert kv.get("companies") is None
    kv.set("companies", "[]")
    assert kv.get("companies") == "[]"
    assert kv.keys() == ["companies"]
    assert kv.delete("companies") is True
    assert kv.delete("companies") is False
    assert kv.get("companies") is None


def test_backend_rejects_non_string_values():
    kv = InMemoryKeyValueBackend()
    with pytest.raises(TypeError, match="must be str"):
        kv.set("officeCounter", 10)  # type: ignore[arg-type]


def test_namespaced_view_isolates_sessions():
    kv = InMemoryKeyValueBackend()
    first = kv.scoped("session:a")
    second = NamespacedKeyValue(kv, namespace="session:b")
    first.set("currentUser", "{}")
    second.set("currentUser", '{"x":1}')
    kv.set("companies", "[]")

    assert first.get("currentUser") == "{}"
    assert second.get("currentUser") == '{"x":1}'
    assert first.keys() == ["currentUser"]

    first.reset()
    assert first.keys() == []
    assert second.get("currentUser") == '{"x":1}'
    assert kv.get("companies") == "[]"


def test_sqlite_backend_persists_between_instances(tmp_path: Path):
    db_path = tmp_path / "store.sqlite3"
    first = SqliteKeyValueBackend(db_path)
    first.set("companies", '[{"code":"TAMJ"}]')
    first.set("offices", "[]")
    first.set("companies", '[{"code":"JMAT"}]')

    second = SqliteKeyValueBackend(db_path)
    assert second.get("companies") == '[{"code":"JMAT"}]'
    assert second.keys() == ["companies", "offices"]
    assert second.delete("offices") is True
    second.reset()
    assert first.keys() == []


def test_redis_backend_tracks_keys_with_registry():
    fake = FakeRedis()
    kv = RedisKeyValueBackend(dsn="", namespace="fma:test", client=fake)
    kv.set("partners", "[]")
    kv.set("companies", "[]")
    assert fake.values["fma:test:kv:partners"] == "[]"
    assert kv.keys() == ["companies", "partners"]
    assert kv.delete("partners") is True
    assert kv.get("partners") is None
    kv.reset()
    assert kv.keys() == []
    assert fake.values == {}


def test_factory_defaults_to_memory():
    assert isinstance(create_kv_from_env({}, role="store"), InMemoryKeyValueBackend)
    assert isinstance(create_kv_from_env({}, role="session"), InMemoryKeyValueBackend)


def test_factory_builds_sqlite_per_role(tmp_path: Path):
    env = {
        "FMA_STORE_BACKEND": "sqlite",
        "FMA_STORE_SQLITE_PATH": str(tmp_path / "store.sqlite3"),
        "FMA_SESSION_BACKEND": "sqlite",
        "FMA_SESSION_SQLITE_PATH": str(tmp_path / "session.sqlite3"),
    }
    store = create_kv_from_env(env, role="store")
    session = create_kv_from_env(env, role="session")
    assert isinstance(store, SqliteKeyValueBackend)
    store.set("companies", "[]")
    assert session.get("companies") is None


def test_factory_rejects_unsupported_backend():
    with pytest.raises(RuntimeError, match="unsupported key-value backend"):
        create_kv_from_env({"FMA_STORE_BACKEND": "etcd"}, role="store")


def test_factory_requires_redis_dsn():
    with pytest.raises(ValueError, match="REDIS_DSN"):
        create_kv_from_env({"FMA_SESSION_BACKEND": "redis"}, role="session")


def test_factory_rejects_memory_store_when_true_stack_required():
    with pytest.raises(RuntimeError, match="FMA_REQUIRE_TRUESTACK"):
        create_kv_from_env({"FMA_REQUIRE_TRUESTACK": "true"}, role="store")
    assert isinstance(
        create_kv_from_env({"FMA_REQUIRE_TRUESTACK": "true"}, role="session"),
        InMemoryKeyValueBackend,
    )


def test_factory_rejects_unknown_role():
    with pytest.raises(ValueError, match="unknown key-value role"):
        create_kv_from_env({}, role="cache")
