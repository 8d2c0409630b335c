"""Pricing sync audit log.

One append-only entry per sync attempt. Writing the entry must never change
the outcome of the run it describes, so every failure here is logged and
swallowed.
"""

import logging
from dataclasses import dataclass

from buyback.stores.pricing import PricingStore

logger = logging.getLogger("uvicorn.error")

SYNC_SOURCE_AUTOMATED = "automated"
SYNC_STATUS_SUCCESS = "success"
SYNC_STATUS_FAILED = "failed"


@dataclass(frozen=True)
class SyncLogEntry:
    """Outcome of a sync attempt, as persisted in pricing_update_logs."""

    status: str
    records_added: int = 0
    records_updated: int = 0
    error: str | None = None
    source: str = SYNC_SOURCE_AUTOMATED

    @classmethod
    def success(cls, added: int, updated: int) -> "SyncLogEntry":
        return cls(status=SYNC_STATUS_SUCCESS, records_added=added, records_updated=updated)

    @classmethod
    def failed(cls, error: str) -> "SyncLogEntry":
        return cls(status=SYNC_STATUS_FAILED, error=error)


async def record_sync_attempt(store: PricingStore, entry: SyncLogEntry) -> bool:
    """Append an audit entry.

    Returns:
        True if written, False if the write failed (the failure is logged).
    """
    try:
        await store.append_sync_log(
            source=entry.source,
            records_added=entry.records_added,
            records_updated=entry.records_updated,
            status=entry.status,
            error=entry.error,
        )
        return True
    except Exception:
        logger.exception(f"Failed to write pricing sync log (status={entry.status})")
        return False
