"""Buyback quote pricing read by the storefront.

Offer priority for a record and grade:
1. Manual override (admin pricing screen)
2. Cached offer (written by the sync / margin recalculation)
3. Calculated on the fly from the wholesale price (should be rare)
"""

import logging
import math
from typing import Any

from buyback.models import NETWORK_UNLOCKED
from buyback.services.offer_calculator import Grade, MarginSettings, calculate_offer_price

logger = logging.getLogger("uvicorn.error")

_OVERRIDE_COLUMNS = {
    Grade.GRADE_A: "override_grade_a",
    Grade.GRADE_B: "override_grade_b",
    Grade.GRADE_C: "override_grade_c",
    Grade.GRADE_D: "override_grade_d",
    Grade.DOA: "override_doa",
}


def resolve_offer(record: Any, grade: Grade, settings: MarginSettings) -> float | None:
    """Offer shown to customers for a record and grade, or None."""
    override_column = _OVERRIDE_COLUMNS.get(grade)
    if override_column:
        override = getattr(record, override_column)
        if override is not None:
            return override

    cached = getattr(record, f"offer_{grade.value}")
    if cached is not None:
        return cached

    price = getattr(record, f"price_{grade.value}")
    if price is None:
        return None

    offer = calculate_offer_price(price, grade, record.series, settings)
    logger.warning(f"Missing cached offer price for {record.model!r}, calculated: {offer}")
    return offer


def model_part(model_name: str) -> str:
    """Strip the family prefix: "iPhone 17 Pro Max" -> "17 Pro Max"."""
    return model_name.replace("iPhone ", "", 1).strip()


async def get_max_price_for_model(store: Any, model_name: str, settings: MarginSettings) -> float:
    """Highest grade-A offer across storage options of an exact model (unlocked).

    Returns 0 when there is no pricing for the model.
    """
    records = await store.find_active_by_model_name(model_part(model_name), NETWORK_UNLOCKED)

    max_offer = 0.0
    for record in records:
        offer = resolve_offer(record, Grade.GRADE_A, settings)
        if offer is not None and offer > max_offer:
            max_offer = offer
    return float(math.floor(max_offer + 0.5))


async def get_max_prices_for_models(
    store: Any,
    model_names: list[str],
    settings: MarginSettings,
) -> dict[str, float]:
    """Max price per requested model name."""
    prices: dict[str, float] = {}
    for name in model_names:
        prices[name] = await get_max_price_for_model(store, name, settings)
    return prices


# Models listed on the sell-a-device pages, newest first.
SUPPORTED_MODELS = (
    "iPhone 17 Pro Max",
    "iPhone 17 Pro",
    "iPhone 17 Air",
    "iPhone 17",
    "iPhone 16e",
    "iPhone 16 Pro Max",
    "iPhone 16 Pro",
    "iPhone 16 Plus",
    "iPhone 16",
    "iPhone 15 Pro Max",
    "iPhone 15 Pro",
    "iPhone 15 Plus",
    "iPhone 15",
    "iPhone 14 Pro Max",
    "iPhone 14 Pro",
    "iPhone 14 Plus",
    "iPhone 14",
    "iPhone 13 Pro Max",
    "iPhone 13 Pro",
    "iPhone 13",
    "iPhone 13 Mini",
    "iPhone 12 Pro Max",
    "iPhone 12 Pro",
    "iPhone 12",
    "iPhone 12 Mini",
    "iPhone 11 Pro Max",
    "iPhone 11 Pro",
    "iPhone 11",
    "iPhone XS Max",
    "iPhone XS",
    "iPhone XR",
    "iPhone X",
    "iPhone 8 Plus",
    "iPhone 8",
    "iPhone 7 Plus",
    "iPhone 7",
)
