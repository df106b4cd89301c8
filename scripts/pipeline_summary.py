#!/usr/bin/env python3
"""Print the deal pipeline as per-stage counts and totals.

Loads the board from the configured record store (RECORD_STORE_* settings)
and prints one row per stage column, the same figures the kanban column
headers show.

Usage:
    python scripts/pipeline_summary.py
    python scripts/pipeline_summary.py --search acme

Exit code 0 on success, 1 if the board could not be loaded.
"""

import argparse
import asyncio
import os
import sys
import uuid

# Ensure project root is on sys.path so we can import src.dealboard
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.dealboard.config import get_settings  # noqa: E402
from src.dealboard.core.logging import bind_board_context, configure_logging  # noqa: E402
from src.dealboard.deals.engine import StageTransitionEngine  # noqa: E402
from src.dealboard.notifications.sink import LogNotificationSink  # noqa: E402
from src.dealboard.store.http import HttpDealStore, company_store, contact_store  # noqa: E402


async def summarize(search: str | None) -> int:
    engine = StageTransitionEngine(
        deal_store=HttpDealStore(),
        notifier=LogNotificationSink(),
        contact_store=contact_store(),
        company_store=company_store(),
        history_limit=get_settings().MOVE_HISTORY_LIMIT,
    )
    await engine.load_deals()
    if engine.load_error:
        print(f"Failed to load deals: {engine.load_error}", file=sys.stderr)
        return 1

    separator = "-" * 44
    print(separator)
    print(f"{'STAGE':<14} {'DEALS':>8} {'VALUE':>20}")
    print(separator)
    for summary in engine.pipeline_summary(search):
        print(f"{summary.stage.label:<14} {summary.count:>8} {summary.total_value:>20,.2f}")
    print(separator)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Print deal pipeline stage totals")
    parser.add_argument("--search", default=None, help="Only count deals matching this term")
    args = parser.parse_args()

    configure_logging()
    bind_board_context(board_session=uuid.uuid4().hex, command="pipeline_summary")
    sys.exit(asyncio.run(summarize(args.search)))


if __name__ == "__main__":
    main()
