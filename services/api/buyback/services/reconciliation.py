"""Reconciliation service: parsed sheet rows -> pricing_data.

Given every accepted row of a sync run:
1. Look up which (model, network) keys already exist, in one bulk query.
2. Write rows in fixed-size batches, one transaction per batch. Each row gets
   its offers computed and is upserted with a full overwrite of the sheet and
   offer columns.
3. Count added vs updated from the key set fetched in step 1.

Batches are not atomic as a whole: when batch N fails, batches 1..N-1 stay
committed. BatchPersistenceError carries the partial result so callers can see
how far the run got.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from buyback.services.offer_calculator import MarginSettings, calculate_all_offer_prices
from buyback.services.row_classifier import ParsedPricingRow
from buyback.stores.pricing import PricingStore

logger = logging.getLogger("uvicorn.error")

DEFAULT_BATCH_SIZE = 50


@dataclass
class BatchResult:
    """Outcome of one batch transaction."""

    index: int
    size: int
    added: int = 0
    updated: int = 0
    committed: bool = False
    error: str | None = None


@dataclass
class ReconcileResult:
    """Totals over the committed batches of a run."""

    added: int = 0
    updated: int = 0
    batches: list[BatchResult] = field(default_factory=list)

    @property
    def committed_batches(self) -> int:
        return sum(1 for b in self.batches if b.committed)

    @property
    def failed_batch(self) -> BatchResult | None:
        return next((b for b in self.batches if not b.committed), None)


class BatchPersistenceError(RuntimeError):
    """A batch transaction failed; earlier batches remain committed."""

    def __init__(self, message: str, result: ReconcileResult) -> None:
        super().__init__(message)
        self.result = result


def build_pricing_row(
    record: ParsedPricingRow,
    margin_settings: MarginSettings,
    now: datetime,
) -> dict[str, Any]:
    """Column values for one pricing_data upsert (offers included)."""
    prices = record.prices
    offers = calculate_all_offer_prices(prices, record.series, margin_settings)
    return {
        "model": record.model,
        "network": record.network,
        "device_type": record.device_type,
        "model_name": record.model_name,
        "storage": record.storage,
        "series": record.series,
        "price_swap": prices.swap,
        "price_grade_a": prices.grade_a,
        "price_grade_b": prices.grade_b,
        "price_grade_c": prices.grade_c,
        "price_grade_d": prices.grade_d,
        "price_doa": prices.doa,
        **offers.as_columns(),
        "offers_calculated_at": now,
        "last_updated": now,
        "is_active": True,
    }


def _chunks(records: Sequence[ParsedPricingRow], size: int) -> list[Sequence[ParsedPricingRow]]:
    return [records[start : start + size] for start in range(0, len(records), size)]


async def reconcile_pricing_records(
    records: Sequence[ParsedPricingRow],
    *,
    store: PricingStore,
    margin_settings: MarginSettings,
    batch_size: int = DEFAULT_BATCH_SIZE,
    now: datetime | None = None,
) -> ReconcileResult:
    """Persist a run's records in batches and count added/updated.

    Args:
        records: Accepted rows, in sheet order.
        store: Persistence interface.
        margin_settings: Margin policy used for offer calculation.
        batch_size: Records per transaction.
        now: Timestamp stamped on every row (defaults to current UTC time).

    Returns:
        ReconcileResult with per-batch outcomes.

    Raises:
        BatchPersistenceError: A batch transaction failed.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")

    now = now or datetime.now(timezone.utc)
    result = ReconcileResult()
    if not records:
        return result

    existing = await store.fetch_existing_keys({r.model for r in records})
    new_count = sum(1 for r in records if r.key not in existing)
    logger.info(
        f"[reconcile] {len(records)} records: {len(records) - new_count} existing, {new_count} new, "
        f"batch_size={batch_size}"
    )

    # Keys written earlier in this run count as existing when they repeat.
    seen = set(existing)

    for index, chunk in enumerate(_chunks(records, batch_size), start=1):
        batch = BatchResult(index=index, size=len(chunk))
        result.batches.append(batch)

        rows: list[dict[str, Any]] = []
        for record in chunk:
            rows.append(build_pricing_row(record, margin_settings, now))
            if record.key in seen:
                batch.updated += 1
            else:
                batch.added += 1
                seen.add(record.key)

        try:
            await store.apply_batch(rows)
        except Exception as e:
            batch.added = 0
            batch.updated = 0
            batch.error = str(e) or e.__class__.__name__
            logger.error(
                f"[reconcile] batch {index} failed after {index - 1} committed batches: {batch.error}"
            )
            raise BatchPersistenceError(f"Batch {index} failed: {batch.error}", result) from e

        batch.committed = True
        result.added += batch.added
        result.updated += batch.updated

    return result
