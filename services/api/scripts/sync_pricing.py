#!/usr/bin/env python3
"""Pricing sync job for Railway Cron.

Pulls the Atlas wholesale sheet and reconciles it into pricing_data, the same
run the admin "Sync now" button triggers. Holds the pricing-sync Redis lock
when Redis is reachable so a cron run and a manual run never overlap.

Run (local / Railway):
  cd services/api
  python -m scripts.sync_pricing

Required env vars:
  ATLAS_SHEET_ID
Optional:
  ATLAS_SHEET_NAME="iPhone Used"
  PRICING_SYNC_BATCH_SIZE=50
"""

import asyncio
import os
import sys


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from buyback.services.pricing_sync import sync_pricing  # noqa: E402
from buyback.settings import get_settings  # noqa: E402
from buyback.stores.postgres import close_db, init_db, ping_db  # noqa: E402
from buyback.stores.redis import acquire_lock, close_redis, init_redis, release_lock  # noqa: E402

PRICING_SYNC_LOCK = "pricing-sync"


async def main() -> int:
    settings = get_settings()

    await init_db()
    await ping_db()
    redis_ready = True
    try:
        await init_redis()
    except Exception:
        # Without Redis the run is not gated against a concurrent manual sync.
        redis_ready = False

    try:
        lock_token = None
        if redis_ready:
            lock_token = await acquire_lock(PRICING_SYNC_LOCK, ttl=settings.pricing_sync_lock_ttl)
            if lock_token is None:
                print({"ok": False, "error": "A pricing sync is already running"})
                return 1

        try:
            summary = await sync_pricing(settings=settings)
        finally:
            if lock_token:
                await release_lock(PRICING_SYNC_LOCK, lock_token)

        # Final output for Railway logs (single JSON-ish blob)
        print({"ok": summary.success, **summary.model_dump(exclude_none=True)})
        return 0 if summary.success else 1
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
