#!/usr/bin/env python3
"""Recalculate cached buyback offers for every active pricing record.

Useful after editing margin settings directly in the database, or after a
deploy that changes the offer formula.

Run:
  cd services/api
  python -m scripts.recalculate_offers
"""

import asyncio
import os
import sys


# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from buyback.services.margins import load_margin_settings, recalculate_all_offer_prices  # noqa: E402
from buyback.stores.postgres import close_db, init_db, ping_db  # noqa: E402
from buyback.stores.pricing import SqlPricingStore  # noqa: E402


async def main() -> None:
    await init_db()
    await ping_db()

    try:
        store = SqlPricingStore()
        margins = await load_margin_settings(store)
        updated = await recalculate_all_offer_prices(store, margins)
        print({"ok": True, "mode": margins.mode, "updated": updated})
    finally:
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
