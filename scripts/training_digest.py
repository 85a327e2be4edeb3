#!/usr/bin/env python3
"""Print the daily reviewer digest of new corrections and low ratings.

Usage:
    python scripts/training_digest.py              # last 24 hours
    python scripts/training_digest.py --hours 72
    python scripts/training_digest.py --mark       # stamp rows as digested
"""

import argparse
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add project root to path for imports
project_dir = Path(__file__).parent.parent
sys.path.insert(0, str(project_dir))

from dotenv import load_dotenv

env_path = project_dir / ".env"
if env_path.exists():
    load_dotenv(env_path)


async def main(hours: int, mark: bool, dashboard_url: str) -> int:
    from copilot.core.database import async_session_maker
    from copilot.ledger.digest import build_training_digest
    from copilot.ledger.service import FeedbackLedger

    now = datetime.now(timezone.utc)
    since = now - timedelta(hours=hours)

    async with async_session_maker() as session:
        ledger = FeedbackLedger(session)
        feedback, corrections = await ledger.undigested_since(since)
        digest = build_training_digest(feedback, corrections, now, dashboard_url=dashboard_url)

        if digest.is_empty:
            print("No new training events")
            return 0

        print(digest.subject)
        print()
        print(digest.body)

        if mark:
            marked = await ledger.mark_digested(digest.feedback_ids, digest.correction_ids, now)
            print(f"Marked {marked} events as digested.")

    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Print the reviewer training digest")
    parser.add_argument("--hours", type=int, default=24, help="Look-back window in hours")
    parser.add_argument("--mark", action="store_true", help="Mark included rows as digested")
    parser.add_argument("--dashboard-url", default="/admin/knowledge")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(args.hours, args.mark, args.dashboard_url)))
