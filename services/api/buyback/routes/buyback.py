"""Public buyback endpoints.

GET /v1/buyback/max-prices - "up to $X" figures shown on sell-a-device pages.

Routers are thin: call services for business logic.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from buyback.schemas.pricing import MaxPricesResponse
from buyback.services.margins import load_margin_settings
from buyback.services.quotes import SUPPORTED_MODELS, get_max_prices_for_models
from buyback.stores.pricing import SqlPricingStore, get_pricing_store

router = APIRouter()
logger = logging.getLogger("uvicorn.error")


@router.get("/max-prices", response_model=MaxPricesResponse)
async def get_max_prices(
    models: str | None = Query(
        default=None,
        description="Comma-separated model names (defaults to every supported model)",
        examples=["iPhone 16 Pro,iPhone 15"],
    ),
    store: SqlPricingStore = Depends(get_pricing_store),
) -> MaxPricesResponse:
    """Highest grade-A unlocked offer per model; 0 when a model has no pricing."""
    if models:
        names = [m.strip() for m in models.split(",") if m.strip()]
    else:
        names = list(SUPPORTED_MODELS)

    try:
        settings = await load_margin_settings(store)
        prices = await get_max_prices_for_models(store, names, settings)
    except Exception as e:
        logger.exception("Error fetching max prices")
        raise HTTPException(status_code=500, detail=f"Failed to fetch max prices: {e}")

    return MaxPricesResponse(prices=prices)
