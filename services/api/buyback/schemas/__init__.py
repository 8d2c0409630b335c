"""Pydantic schemas for API request/response validation."""

from buyback.schemas.common import ErrorDetail, ErrorResponse
from buyback.schemas.pricing import (
    InventoryRefreshResponse,
    MarginSaveResponse,
    MaxPricesResponse,
    PricingStats,
    SyncLogItem,
    SyncLogList,
    SyncStatus,
    SyncSummary,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "InventoryRefreshResponse",
    "MarginSaveResponse",
    "MaxPricesResponse",
    "PricingStats",
    "SyncLogItem",
    "SyncLogList",
    "SyncStatus",
    "SyncSummary",
]
