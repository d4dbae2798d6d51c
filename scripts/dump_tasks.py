#!/usr/bin/env python3
"""Dump every task category and the queue dashboard for one user.

Usage
-----
Set environment variables and run::

    export TASKSYNC_BASE_URL="https://portal.example/api"
    export TASKSYNC_API_TOKEN="..."
    export TASKSYNC_USER_ID="17"
    python scripts/dump_tasks.py

Options::

    --strategy ordered   Refresh categories one by one (default: concurrent)
    --dashboard          Also load users, handlers and queue statistics
    --json               Output as machine-readable JSON
    --watch SECONDS      Keep polling and re-print after each interval
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from tasksync import Category, SyncConfig, TaskSyncController, TaskSyncError  # noqa: E402


def _section(title: str) -> str:
    return f"\n{'=' * 60}\n  {title}\n{'=' * 60}"


def _collect(controller: TaskSyncController) -> dict[str, Any]:
    return {
        category.value: [record.model_dump(mode="json", by_alias=True) for record in controller.requests(category)]
        for category in Category
    }


def _print_categories(controller: TaskSyncController) -> None:
    for category in Category:
        records = controller.requests(category)
        stale = " (stale)" if controller.is_stale(category) else ""
        print(_section(f"{category.value.upper()} - {len(records)} request(s){stale}"))
        for record in records:
            reference = record.extra_field("reference_number", "-")
            print(f"  #{record.id:<8} {record.status:<22} {reference}")


async def run(args: argparse.Namespace) -> int:
    overrides: dict[str, Any] = {"refresh_strategy": args.strategy}
    if args.watch:
        overrides["poll_interval"] = args.watch
    config = SyncConfig.from_env(**overrides)
    if config.user_id is None:
        print("TASKSYNC_USER_ID is not set", file=sys.stderr)
        return 2

    async with TaskSyncController(config) as controller:
        report = await controller.refresh_all(force=True)
        for category in report.failed:
            print(f"warning: could not load {category}", file=sys.stderr)

        result: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "user_id": config.user_id,
            "categories": _collect(controller),
        }
        if args.dashboard:
            snapshot = await controller.dashboard.refresh(force=True)
            result["dashboard"] = snapshot.classification.stats.model_dump()
            result["handlers"] = len(snapshot.handlers)

        if args.json_mode:
            print(json.dumps(result, indent=2, default=str))
        else:
            _print_categories(controller)
            if args.dashboard:
                print(_section("QUEUE"))
                for key, value in result["dashboard"].items():
                    print(f"  {key:<26}: {value}")

        if not args.watch:
            return 0

        controller.start()
        try:
            while True:
                await asyncio.sleep(args.watch)
                if not args.json_mode:
                    _print_categories(controller)
        except asyncio.CancelledError:
            return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump task categories for debugging / development.")
    parser.add_argument("--strategy", choices=["concurrent", "ordered"], default="concurrent")
    parser.add_argument("--dashboard", action="store_true", help="Also load the queue dashboard")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--watch", type=float, metavar="SECONDS", help="Keep polling every SECONDS")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    try:
        sys.exit(asyncio.run(run(args)))
    except KeyboardInterrupt:
        sys.exit(130)
    except TaskSyncError as exc:
        print(f"error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
