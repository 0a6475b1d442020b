"""
Run one competitor watch cycle from the CLI and print its report.
"""

from __future__ import annotations

import argparse
import json
import logging
import os

from app.services.competitor_watch_service import get_competitor_watch_service
from db.models.watch_cycle import WatchCycleStatus, WatchCycleTrigger


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a full competitor watch cycle.")
    parser.add_argument(
        "--days-back",
        dest="days_back",
        type=int,
        default=None,
        help="Look-back window in days (defaults to COMPETITOR_WATCH_DAYS_BACK).",
    )
    parser.add_argument(
        "--seed-only",
        dest="seed_only",
        action="store_true",
        help="Only seed configured jurisdictions and entities, then exit.",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").strip().upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    service = get_competitor_watch_service()
    if args.seed_only:
        created_jurisdictions, created_entities = service.initialize()
        print(
            json.dumps(
                {
                    "jurisdictions_created": created_jurisdictions,
                    "entities_created": created_entities,
                },
                indent=2,
            )
        )
        return 0

    cycle = service.run_tracked_cycle(days_back=args.days_back, trigger=WatchCycleTrigger.CLI)
    if cycle is None:
        return 1
    if cycle.report:
        print(cycle.report)
    else:
        print(json.dumps({"status": cycle.status, "error": cycle.error_message}, indent=2))
    return 0 if cycle.status in {WatchCycleStatus.DONE, WatchCycleStatus.SKIPPED} else 1


if __name__ == "__main__":
    raise SystemExit(main())
