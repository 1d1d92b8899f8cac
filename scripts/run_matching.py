#!/usr/bin/env python3
"""
Run the matching event over every completed group profile.
Usage: python scripts/run_matching.py [per_group_limit]
"""

import asyncio
import sys

from groupmatch.database import SessionLocal, init_db
from groupmatch.logging_config import setup_logging
from groupmatch.services.matching_service import PER_GROUP_LIMIT, run_matching_event


async def main(per_group_limit: int) -> int:
    init_db()
    db = SessionLocal()
    try:
        summary = await run_matching_event(db, per_group_limit=per_group_limit)
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()

    print(f"Groups: {summary.total_groups}")
    if summary.total_groups < 2:
        print("Need at least 2 groups to match.")
        return 1

    if summary.best_match:
        best = summary.best_match
        print(f"Best match: {best['group1']} + {best['group2']} ({best['percentage']}%)")
        print(f"  breakdown: {best['breakdown']}")
    print(f"Matches saved: {summary.matches_saved} (pairs scored: {summary.pairs_scored})")
    for error in summary.errors:
        print(f"  error: {error}")
    return 0


if __name__ == "__main__":
    setup_logging("WARNING")
    limit = int(sys.argv[1]) if len(sys.argv) > 1 else PER_GROUP_LIMIT
    sys.exit(asyncio.run(main(limit)))
