"""Margin policy persistence and offer recalculation.

The margin policy is stored as JSON in the settings table so admins can change
it without a deploy. Saving a new policy recalculates the cached offers of
every active pricing record.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from buyback.services.offer_calculator import (
    DEFAULT_MARGIN_SETTINGS,
    GradePrices,
    MarginSettings,
    calculate_all_offer_prices,
)
from buyback.stores.pricing import PricingStore

logger = logging.getLogger("uvicorn.error")

MARGIN_SETTINGS_KEY = "margin_settings_simple"
MARGIN_SETTINGS_CATEGORY = "pricing"

RECALCULATE_BATCH_SIZE = 200


async def load_margin_settings(store: PricingStore) -> MarginSettings:
    """Stored margin policy, or the defaults if missing, invalid or unreadable."""
    try:
        raw = await store.load_setting(MARGIN_SETTINGS_KEY)
    except Exception:
        logger.exception("Error loading margin settings, using defaults")
        return DEFAULT_MARGIN_SETTINGS

    if not raw:
        return DEFAULT_MARGIN_SETTINGS

    try:
        return MarginSettings.model_validate_json(raw)
    except ValidationError as e:
        logger.warning(f"Stored margin settings are invalid, using defaults: {e.error_count()} errors")
        return DEFAULT_MARGIN_SETTINGS


async def save_margin_settings(store: PricingStore, settings: MarginSettings) -> None:
    """Persist the margin policy (camelCase JSON, same shape the admin UI edits)."""
    payload = settings.model_dump(mode="json", by_alias=True)
    await store.save_setting(
        MARGIN_SETTINGS_KEY,
        json.dumps(payload, ensure_ascii=False),
        category=MARGIN_SETTINGS_CATEGORY,
    )


def _record_prices(record: Any) -> GradePrices:
    return GradePrices(
        swap=record.price_swap,
        grade_a=record.price_grade_a,
        grade_b=record.price_grade_b,
        grade_c=record.price_grade_c,
        grade_d=record.price_grade_d,
        doa=record.price_doa,
    )


async def recalculate_all_offer_prices(
    store: PricingStore,
    settings: MarginSettings | None = None,
    *,
    batch_size: int = RECALCULATE_BATCH_SIZE,
) -> int:
    """Recompute cached offers for all active records.

    Args:
        store: Persistence interface.
        settings: Margin policy; loaded from the store when omitted.
        batch_size: Records updated per transaction.

    Returns:
        Number of records updated.
    """
    settings = settings or await load_margin_settings(store)
    records = await store.list_active_records()
    now = datetime.now(timezone.utc)

    updated = 0
    for start in range(0, len(records), batch_size):
        chunk = records[start : start + batch_size]
        updates = []
        for record in chunk:
            offers = calculate_all_offer_prices(_record_prices(record), record.series, settings)
            updates.append((record.id, {**offers.as_columns(), "offers_calculated_at": now}))
        await store.update_offers(updates)
        updated += len(updates)

    logger.info(f"Recalculated offer prices for {updated} records (mode={settings.mode})")
    return updated
