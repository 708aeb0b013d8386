from __future__ import annotations

import logging

from app.kv_backend import KeyValueBackend
from app.sandbox_config import SandboxConfig

logger = logging.getLogger(__name__)


class OverlaySnapshotStore:
    """Session-scoped copies of the tracked persistent collections.

    Capture copies every tracked key that currently has a value in the
    persistent store into the session store under ``<snapshot_prefix><key>``.
    Restore writes each captured payload back over the live key and then
    clears all snapshot records.

    Restore is a sequential loop over the tracked keys with no rollback and no
    progress marker. If the process dies part way through the write pass, some
    keys are restored and others are not, and every snapshot record is still
    present. Calling restore again completes the job; nothing detects the
    partial state on its own.
    """

    def __init__(
        self,
        *,
        persistent: KeyValueBackend,
        session: KeyValueBackend,
        config: SandboxConfig,
    ) -> None:
        self._persistent = persistent
        self._session = session
        self._config = config

    @property
    def tracked_keys(self) -> tuple[str, ...]:
        return self._config.tracked_keys

    def capture_on_session_start(self) -> list[str]:
        captured: list[str] = []
        for key in self.tracked_keys:
            data = self._persistent.get(key)
            if data is None:
                continue
            self._session.set(self._config.snapshot_key(key), data)
            captured.append(key)
        logger.info("overlay_snapshot_captured keys=%s", ",".join(captured) or "-")
        return captured

    def restore_on_session_end(self) -> list[str]:
        restored: list[str] = []
        for key in self.tracked_keys:
            snap = self._session.get(self._config.snapshot_key(key))
            if snap is None:
                continue
            self._persistent.set(key, snap)
            restored.append(key)
        for key in self.tracked_keys:
            self._session.delete(self._config.snapshot_key(key))
        if restored:
            logger.info("overlay_snapshot_restored keys=%s", ",".join(restored))
        return restored

    def pending_snapshot_keys(self) -> list[str]:
        return [key for key in self.tracked_keys if self._session.get(self._config.snapshot_key(key)) is not None]

    def has_pending_snapshot(self) -> bool:
        return bool(self.pending_snapshot_keys())
