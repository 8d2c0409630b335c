"""Admin endpoints: pricing sync, margins, inventory cache.

All endpoints require a bearer token from ADMIN_API_TOKENS (see routes.auth).
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse

from buyback.routes.auth import ROLE_ADMIN, ROLE_MANAGER, require_role
from buyback.schemas.pricing import (
    InventoryRefreshResponse,
    MarginSaveResponse,
    PricingStats,
    SyncLogItem,
    SyncLogList,
    SyncStatus,
    SyncSummary,
)
from buyback.services.inventory import InventoryRefreshError, refresh_inventory_cache
from buyback.services.margins import load_margin_settings, recalculate_all_offer_prices, save_margin_settings
from buyback.services.offer_calculator import MarginSettings
from buyback.services.pricing_sync import sync_pricing
from buyback.settings import Settings, get_settings
from buyback.stores import redis as redis_store
from buyback.stores.pricing import SqlPricingStore, get_pricing_store

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

PRICING_SYNC_LOCK = "pricing-sync"
INVENTORY_REFRESH_RATE_KEY = "inventory-refresh"


# ============================================================
# Pricing sync
# ============================================================


async def _acquire_sync_gate(ttl: int) -> tuple[bool, str | None]:
    """(may_run, lock_token); the token is None when Redis is unavailable."""
    try:
        token = await redis_store.acquire_lock(PRICING_SYNC_LOCK, ttl=ttl)
    except Exception as e:
        logger.warning(f"[pricing-sync] Redis unavailable, running without lock: {e}")
        return True, None
    return token is not None, token


@router.post("/buyback/pricing/sync", response_model=SyncSummary, response_model_exclude_none=True)
async def trigger_pricing_sync(
    role: str = Depends(require_role(ROLE_ADMIN)),
    settings: Settings = Depends(get_settings),
    store: SqlPricingStore = Depends(get_pricing_store),
):
    """Pull the Atlas sheet and reconcile it into pricing_data.

    Returns 409 while another sync is running, 500 when the run fails (the
    body still carries the summary, including committed partial progress).
    """
    may_run, lock_token = await _acquire_sync_gate(settings.pricing_sync_lock_ttl)
    if not may_run:
        raise HTTPException(status_code=409, detail="A pricing sync is already running")

    logger.info(f"[pricing-sync] triggered by role={role}")
    try:
        summary = await sync_pricing(settings=settings, store=store)
    finally:
        if lock_token:
            try:
                await redis_store.release_lock(PRICING_SYNC_LOCK, lock_token)
            except Exception:
                logger.exception("[pricing-sync] failed to release lock")

    if not summary.success:
        return JSONResponse(
            status_code=500,
            content=summary.model_dump(mode="json", by_alias=True, exclude_none=True),
        )
    return summary


@router.get("/buyback/pricing/sync/status", response_model=SyncStatus)
async def get_pricing_sync_status(
    _: str = Depends(require_role(ROLE_ADMIN)),
) -> SyncStatus:
    """Whether a sync currently holds the lock."""
    try:
        running = await redis_store.is_locked(PRICING_SYNC_LOCK)
    except Exception as e:
        logger.warning(f"[pricing-sync] Redis unavailable for status check: {e}")
        running = False
    return SyncStatus(running=running)


@router.get("/buyback/pricing/sync/logs", response_model=SyncLogList)
async def list_pricing_sync_logs(
    limit: int = Query(20, ge=1, le=200),
    _: str = Depends(require_role(ROLE_ADMIN)),
    store: SqlPricingStore = Depends(get_pricing_store),
) -> SyncLogList:
    """Most recent sync attempts, newest first."""
    logs = await store.list_sync_logs(limit=limit)
    return SyncLogList(count=len(logs), logs=[SyncLogItem.model_validate(log) for log in logs])


@router.get("/buyback/pricing/stats", response_model=PricingStats)
async def get_pricing_stats(
    _: str = Depends(require_role(ROLE_ADMIN)),
    store: SqlPricingStore = Depends(get_pricing_store),
) -> PricingStats:
    return PricingStats(**await store.pricing_stats())


# ============================================================
# Margins
# ============================================================


@router.get("/buyback/margins", response_model=MarginSettings)
async def get_margins(
    _: str = Depends(require_role(ROLE_ADMIN)),
    store: SqlPricingStore = Depends(get_pricing_store),
) -> MarginSettings:
    return await load_margin_settings(store)


@router.put("/buyback/margins", response_model=MarginSaveResponse)
async def update_margins(
    margins: MarginSettings,
    role: str = Depends(require_role(ROLE_ADMIN)),
    store: SqlPricingStore = Depends(get_pricing_store),
) -> MarginSaveResponse:
    """Save a new margin policy and recalculate every cached offer."""
    await save_margin_settings(store, margins)
    logger.info(f"Margin settings saved by role={role} mode={margins.mode}")

    try:
        recalculated = await recalculate_all_offer_prices(store, margins)
    except Exception as e:
        logger.exception("Offer recalculation failed after saving margins")
        raise HTTPException(status_code=500, detail=f"Margins saved but recalculation failed: {e}")

    return MarginSaveResponse(
        success=True,
        message=f"Margins saved, recalculated {recalculated} offers",
        recalculated=recalculated,
    )


# ============================================================
# Inventory cache
# ============================================================


async def _check_inventory_rate_limit(settings: Settings) -> None:
    try:
        count = await redis_store.hit_rate_counter(INVENTORY_REFRESH_RATE_KEY)
    except Exception as e:
        logger.warning(f"Redis unavailable, inventory refresh not rate limited: {e}")
        return
    if count > settings.inventory_refresh_max_per_hour:
        raise HTTPException(status_code=429, detail="Too many cache refreshes, try again later")


@router.post("/inventory/refresh-cache", response_model=InventoryRefreshResponse)
async def refresh_inventory(
    role: str = Depends(require_role(ROLE_ADMIN, ROLE_MANAGER)),
    settings: Settings = Depends(get_settings),
) -> InventoryRefreshResponse:
    """Rebuild the storefront inventory cache from the inventory sheet."""
    await _check_inventory_rate_limit(settings)
    logger.info(f"Inventory cache refresh initiated by role={role}")

    try:
        items_count = await refresh_inventory_cache(settings)
    except InventoryRefreshError as e:
        logger.error(f"Inventory cache refresh failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to refresh cache: {e}")

    return InventoryRefreshResponse(
        success=True,
        message=f"Cache refreshed with {items_count} items",
        items_count=items_count,
        timestamp=datetime.now(timezone.utc),
    )
