#!/usr/bin/env python3
"""
Flush all pudim data: every score record in DynamoDB and every Redis key
under the configured prefixes.

Uses the same environment variables as the Lambda handlers (DYNAMODB_*,
REDIS_*). A disabled side is skipped.

Usage:
    python scripts/flush_all.py            # asks for confirmation
    python scripts/flush_all.py --yes      # no prompt
    python scripts/flush_all.py --cache-only
"""

import argparse
import asyncio

from pudim.shared.cache import CacheClient
from pudim.shared.config import CacheConfig, LeaderboardConfig
from pudim.shared.leaderboard import LeaderboardStore


async def flush(cache_config: CacheConfig, leaderboard_config: LeaderboardConfig, cache_only: bool) -> tuple[int, int]:
    """Returns (score records deleted, cache keys deleted)."""
    cache = CacheClient(cache_config)
    try:
        records = 0
        if not cache_only:
            store = LeaderboardStore(leaderboard_config, cache)
            records = await store.delete_all_scores()
        keys = await cache.flush()
    finally:
        await cache.close()
    return records, keys


def main():
    parser = argparse.ArgumentParser(description="Delete all pudim scores and cached data")
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")
    parser.add_argument("--cache-only", action="store_true", help="Only flush Redis")
    args = parser.parse_args()

    cache_config = CacheConfig.from_env()
    leaderboard_config = LeaderboardConfig.from_env()

    print("Targets:")
    if args.cache_only:
        print("  DynamoDB: skipped (--cache-only)")
    elif leaderboard_config.enabled:
        print(f"  DynamoDB: table {leaderboard_config.table_name} ({leaderboard_config.endpoint_url or leaderboard_config.region})")
    else:
        print("  DynamoDB: disabled")
    if cache_config.enabled:
        print(f"  Redis: {cache_config.stats_prefix}* and {cache_config.key_prefix}*")
    else:
        print("  Redis: disabled")

    if not args.yes:
        confirm = input("\nDelete all of the above? [y/N]: ")
        if confirm.lower() != "y":
            print("Aborted.")
            return

    records, keys = asyncio.run(flush(cache_config, leaderboard_config, args.cache_only))
    print(f"\nDone! Deleted {records} score records and {keys} cache keys")


if __name__ == "__main__":
    main()
