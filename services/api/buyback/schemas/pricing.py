"""Schemas for the admin pricing endpoints (/v1/admin/buyback/...)."""

from datetime import datetime

from pydantic import BaseModel, Field


class SyncSummary(BaseModel):
    """Result of a pricing sync run, returned to the trigger caller.

    On success: added/updated/skipped/total/duration. On failure: error, plus
    whatever batches were committed before the failure.
    """

    success: bool
    added: int | None = None
    updated: int | None = None
    skipped: int | None = None
    total: int | None = None
    duration: str | None = None
    error: str | None = None
    batches_committed: int | None = Field(alias="batchesCommitted", default=None)

    model_config = {"populate_by_name": True}


class SyncLogItem(BaseModel):
    """One pricing_update_logs row."""

    id: int
    source: str
    records_added: int = Field(alias="recordsAdded")
    records_updated: int = Field(alias="recordsUpdated")
    status: str
    error: str | None = None
    created_at: datetime | None = Field(alias="createdAt", default=None)

    model_config = {"populate_by_name": True, "from_attributes": True}


class SyncLogList(BaseModel):
    count: int
    logs: list[SyncLogItem]


class SyncStatus(BaseModel):
    running: bool


class PricingStats(BaseModel):
    """Summary cards on the admin pricing dashboard."""

    total_models: int = Field(alias="totalModels")
    active_models: int = Field(alias="activeModels")
    override_count: int = Field(alias="overrideCount")
    last_sync: datetime | None = Field(alias="lastSync", default=None)

    model_config = {"populate_by_name": True}


class MarginSaveResponse(BaseModel):
    success: bool
    message: str
    recalculated: int


class InventoryRefreshResponse(BaseModel):
    success: bool
    message: str
    items_count: int = Field(alias="itemsCount")
    timestamp: datetime

    model_config = {"populate_by_name": True}


class MaxPricesResponse(BaseModel):
    """Highest grade-A offer per requested model (0 = no pricing)."""

    prices: dict[str, float]
