#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.container import AppContainer


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Run the session-end hook for a session whose host never fired it (restores sandbox snapshots)"
    )
    parser.add_argument("session_id", help="session id returned when the session started")
    parser.add_argument("--dry-run", action="store_true", help="only list pending snapshot keys")
    args = parser.parse_args()

    lifecycle = AppContainer.from_env().lifecycle
    if not lifecycle.exists(args.session_id):
        print(json.dumps({"success": False, "error": "session not found"}, ensure_ascii=True))
        return 1

    if args.dry_run:
        summary = {
            "session_id": args.session_id,
            "dry_run": True,
            "classification": lifecycle.classification(args.session_id).to_dict(),
            "pending_snapshot_keys": lifecycle.snapshot_store(args.session_id).pending_snapshot_keys(),
        }
    else:
        ended = lifecycle.end(args.session_id, reason="teardown")
        summary = {"dry_run": False, **(ended.to_dict() if ended is not None else {"session_id": args.session_id})}
    print(json.dumps({"success": True, **summary}, ensure_ascii=True, sort_keys=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
