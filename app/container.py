from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from app.assignment_resolver import ResolverContext
from app.kv_backend import KeyValueBackend, create_kv_from_env
from app.repositories.collections import KeyValueCollectionsRepository
from app.sandbox_config import SandboxConfig
from app.session_lifecycle import SessionLifecycle


@dataclass
class AppContainer:
    """Everything one application instance shares between requests."""

    config: SandboxConfig
    persistent: KeyValueBackend
    sessions: KeyValueBackend
    collections: KeyValueCollectionsRepository
    lifecycle: SessionLifecycle
    resolver_context: ResolverContext

    @classmethod
    def build(
        cls,
        *,
        config: SandboxConfig,
        persistent: KeyValueBackend,
        sessions: KeyValueBackend,
    ) -> "AppContainer":
        return cls(
            config=config,
            persistent=persistent,
            sessions=sessions,
            collections=KeyValueCollectionsRepository(persistent),
            lifecycle=SessionLifecycle(persistent=persistent, sessions=sessions, config=config),
            resolver_context=ResolverContext(),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppContainer":
        env = os.environ if environ is None else environ
        return cls.build(
            config=SandboxConfig.from_env(env),
            persistent=create_kv_from_env(env, role="store"),
            sessions=create_kv_from_env(env, role="session"),
        )

    def reset(self) -> None:
        self.persistent.reset()
        self.sessions.reset()
        self.resolver_context.reset()
