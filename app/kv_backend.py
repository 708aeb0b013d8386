from __future__ import annotations

import os
import sqlite3
import threading
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from app.runtime_profile import true_stack_required


class KeyValueBackend(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self) -> list[str]: ...

    def reset(self) -> None: ...


def _require_str(key: str, value: Any) -> None:
    if not isinstance(key, str) or not key:
        raise ValueError("key must be a non-empty string")
    if not isinstance(value, str):
        raise TypeError(f"value for {key!r} must be str, got {type(value).__name__}")


class InMemoryKeyValueBackend:
    """Process-local string store; the default for both store and session roles."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        _require_str(key, value)
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data.keys())

    def reset(self) -> None:
        with self._lock:
            self._data.clear()

    def scoped(self, namespace: str) -> "NamespacedKeyValue":
        return NamespacedKeyValue(self, namespace=namespace)


class SqliteKeyValueBackend:
    """SQLite-backed string store used for local persistence across restarts."""

    def __init__(self, db_path: str | Path) -> None:
        self._lock = threading.RLock()
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    seq INTEGER NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    @staticmethod
    def _utcnow() -> str:
        return datetime.now(UTC).isoformat()

    def get(self, key: str) -> str | None:
        with self._lock, self._connect() as conn:
            row = conn.execute("SELECT value FROM kv_entries WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        return str(row["value"])

    def set(self, key: str, value: str) -> None:
        _require_str(key, value)
        with self._lock, self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv_entries(key, value, seq, updated_at)
                VALUES (?, ?, (SELECT COALESCE(MAX(seq), 0) + 1 FROM kv_entries), ?)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (key, value, self._utcnow()),
            )
            conn.commit()

    def delete(self, key: str) -> bool:
        with self._lock, self._connect() as conn:
            cur = conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
            conn.commit()
            return cur.rowcount > 0

    def keys(self) -> list[str]:
        with self._lock, self._connect() as conn:
            rows = conn.execute("SELECT key FROM kv_entries ORDER BY seq ASC").fetchall()
        return [str(row["key"]) for row in rows]

    def reset(self) -> None:
        with self._lock, self._connect() as conn:
            conn.execute("DELETE FROM kv_entries")
            conn.commit()

    def scoped(self, namespace: str) -> "NamespacedKeyValue":
        return NamespacedKeyValue(self, namespace=namespace)


def _import_redis() -> Any:
    try:
        import redis  # type: ignore
    except ImportError as exc:
        raise RuntimeError("redis is required for the redis key-value backend; install redis>=5") from exc
    return redis


class RedisKeyValueBackend:
    """Redis-backed string store shared by every process pointed at the same DSN."""

    def __init__(self, *, dsn: str, namespace: str = "fma", client: Any | None = None) -> None:
        if client is None and not dsn.strip():
            raise ValueError("REDIS_DSN must be provided for redis key-value backend")
        self._namespace = namespace.strip() or "fma"
        self._lock = threading.RLock()
        if client is None:
            redis = _import_redis()
            client = redis.Redis.from_url(dsn.strip(), decode_responses=True)
        self._client = client

    def _registry_key(self) -> str:
        return f"{self._namespace}:kv:keys"

    def _entry_key(self, key: str) -> str:
        return f"{self._namespace}:kv:{key}"

    def get(self, key: str) -> str | None:
        with self._lock:
            raw = self._client.get(self._entry_key(key))
        if raw is None:
            return None
        return raw if isinstance(raw, str) else raw.decode("utf-8")

    def set(self, key: str, value: str) -> None:
        _require_str(key, value)
        with self._lock:
            self._client.set(self._entry_key(key), value)
            self._client.sadd(self._registry_key(), key)

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = int(self._client.delete(self._entry_key(key)) or 0)
            self._client.srem(self._registry_key(), key)
            return removed > 0

    def keys(self) -> list[str]:
        with self._lock:
            members = self._client.smembers(self._registry_key()) or set()
        out = [m if isinstance(m, str) else m.decode("utf-8") for m in members]
        return sorted(out)

    def reset(self) -> None:
        with self._lock:
            members = self._client.smembers(self._registry_key()) or set()
            if members:
                self._client.delete(*[self._entry_key(m) for m in members])
            self._client.delete(self._registry_key())

    def scoped(self, namespace: str) -> "NamespacedKeyValue":
        return NamespacedKeyValue(self, namespace=namespace)


class NamespacedKeyValue:
    """View over a backend that confines every key to one namespace, e.g. one session."""

    def __init__(self, backend: KeyValueBackend, *, namespace: str) -> None:
        if not namespace.strip():
            raise ValueError("namespace must not be empty")
        self._backend = backend
        self._prefix = f"{namespace.strip()}::"

    @property
    def namespace(self) -> str:
        return self._prefix[:-2]

    def get(self, key: str) -> str | None:
        return self._backend.get(self._prefix + key)

    def set(self, key: str, value: str) -> None:
        self._backend.set(self._prefix + key, value)

    def delete(self, key: str) -> bool:
        return self._backend.delete(self._prefix + key)

    def keys(self) -> list[str]:
        return [k[len(self._prefix) :] for k in self._backend.keys() if k.startswith(self._prefix)]

    def reset(self) -> None:
        for key in self.keys():
            self.delete(key)


_ROLE_DEFAULTS: dict[str, dict[str, str]] = {
    "store": {
        "env_prefix": "FMA_STORE",
        "sqlite_path": ".runtime/fma_store.sqlite3",
        "key_prefix": "fma:store",
    },
    "session": {
        "env_prefix": "FMA_SESSION",
        "sqlite_path": ".runtime/fma_session.sqlite3",
        "key_prefix": "fma:session",
    },
}


def create_kv_from_env(
    environ: Mapping[str, str] | None = None,
    *,
    role: str = "store",
) -> InMemoryKeyValueBackend | SqliteKeyValueBackend | RedisKeyValueBackend:
    env = os.environ if environ is None else environ
    defaults = _ROLE_DEFAULTS.get(role)
    if defaults is None:
        raise ValueError(f"unknown key-value role: {role}")
    prefix = defaults["env_prefix"]
    backend = env.get(f"{prefix}_BACKEND", "memory").strip().lower() or "memory"
    if role == "store" and backend == "memory" and true_stack_required(env):
        raise RuntimeError("FMA_STORE_BACKEND must be sqlite or redis when FMA_REQUIRE_TRUESTACK=true")
    if backend == "memory":
        return InMemoryKeyValueBackend()
    if backend == "sqlite":
        db_path = env.get(f"{prefix}_SQLITE_PATH", defaults["sqlite_path"])
        return SqliteKeyValueBackend(db_path)
    if backend == "redis":
        dsn = env.get("REDIS_DSN", "").strip()
        if not dsn:
            raise ValueError(f"REDIS_DSN must be set when {prefix}_BACKEND=redis")
        namespace = env.get(f"{prefix}_KEY_PREFIX", defaults["key_prefix"])
        return RedisKeyValueBackend(dsn=dsn, namespace=namespace)
    raise RuntimeError(f"unsupported key-value backend: {backend}")
