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
from app.fixtures import seed_sample_data


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed sample tenants, contracts, items and reports")
    parser.add_argument("--force", action="store_true", help="reseed even if the seed marker is current")
    args = parser.parse_args()

    container = AppContainer.from_env()
    summary = seed_sample_data(container.collections, force=bool(args.force))
    print(json.dumps(summary, ensure_ascii=True, sort_keys=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
