"""Pricing sync pipeline: Atlas sheet -> parse -> classify -> offers -> DB.

Flow:
1. Require ATLAS_SHEET_ID (fail fast, nothing fetched, nothing logged)
2. Fetch the sheet tab as CSV
3. Parse rows, classify each one (skips are counted, never raised)
4. Load the margin policy
5. Reconcile accepted rows into pricing_data in batches
6. Append a sync log entry (success, or failed with zero counts)

The caller always gets a SyncSummary back; nothing here raises past
sync_pricing(). Concurrent runs are not prevented here: the trigger route
holds a Redis lock around the call.
"""

import logging
import time
from collections import Counter
from collections.abc import Awaitable, Callable

from buyback.schemas.pricing import SyncSummary
from buyback.services.margins import load_margin_settings
from buyback.services.reconciliation import BatchPersistenceError, reconcile_pricing_records
from buyback.services.row_classifier import (
    DEFAULT_ROW_RULES,
    ParsedPricingRow,
    RowRules,
    SkipReason,
    classify_row,
)
from buyback.services.sheets_client import fetch_sheet_csv
from buyback.services.sync_log import SyncLogEntry, record_sync_attempt
from buyback.services.tabular import parse_delimited_text
from buyback.settings import Settings, get_settings
from buyback.stores.pricing import PricingStore, SqlPricingStore

logger = logging.getLogger("uvicorn.error")

FetchCsv = Callable[[str, str], Awaitable[str]]


class EmptySheetError(RuntimeError):
    """The sheet export contained no rows."""


def classify_rows(
    rows: list[list[str]],
    rules: RowRules = DEFAULT_ROW_RULES,
) -> tuple[list[ParsedPricingRow], Counter[SkipReason]]:
    """Split parsed rows into accepted records and skip counts."""
    records: list[ParsedPricingRow] = []
    skipped: Counter[SkipReason] = Counter()

    for i, row in enumerate(rows):
        classification = classify_row(row, rules)
        if classification.row is None:
            skipped[classification.skip_reason] += 1
            if classification.skip_reason is SkipReason.INVALID_FORMAT:
                logger.debug(f"Skipping invalid model format at row {i}: {row[rules.description_index]!r}")
            continue
        records.append(classification.row)

    return records, skipped


async def _fetch_atlas_csv(settings: Settings) -> str:
    return await fetch_sheet_csv(
        settings.atlas_sheet_id,
        settings.atlas_sheet_name,
        timeout=settings.atlas_fetch_timeout,
    )


def _elapsed(started: float) -> str:
    return f"{time.perf_counter() - started:.2f}s"


async def sync_pricing(
    *,
    settings: Settings | None = None,
    store: PricingStore | None = None,
    fetch_csv: FetchCsv | None = None,
    rules: RowRules = DEFAULT_ROW_RULES,
) -> SyncSummary:
    """Run one pricing sync.

    Args:
        settings: App settings (sheet id/name, batch size).
        store: Persistence interface (defaults to Postgres).
        fetch_csv: Optional replacement for the sheet fetch, called with
            (sheet_id, sheet_name).
        rules: Row classification rules.

    Returns:
        SyncSummary; success=False with an error message on any failure.
    """
    settings = settings or get_settings()

    if not settings.atlas_sheet_id:
        logger.error("[pricing-sync] ATLAS_SHEET_ID is not set - refusing to run")
        return SyncSummary(success=False, error="Missing ATLAS_SHEET_ID environment variable")

    store = store or SqlPricingStore()
    started = time.perf_counter()
    logger.info(f"[pricing-sync] start sheet={settings.atlas_sheet_name!r}")

    try:
        if fetch_csv is not None:
            csv_text = await fetch_csv(settings.atlas_sheet_id, settings.atlas_sheet_name)
        else:
            csv_text = await _fetch_atlas_csv(settings)

        rows = parse_delimited_text(csv_text)
        if not rows:
            raise EmptySheetError("No data found in Atlas sheet")

        records, skipped = classify_rows(rows, rules)
        skipped_total = sum(skipped.values())
        reasons = {reason.value: count for reason, count in skipped.items()}
        logger.info(
            f"[pricing-sync] parsed rows={len(rows)} accepted={len(records)} skipped={skipped_total} "
            f"reasons={reasons}"
        )

        margin_settings = await load_margin_settings(store)
        result = await reconcile_pricing_records(
            records,
            store=store,
            margin_settings=margin_settings,
            batch_size=settings.pricing_sync_batch_size,
        )
    except BatchPersistenceError as e:
        logger.error(
            f"[pricing-sync] failed after {e.result.committed_batches} committed batches "
            f"(added={e.result.added}, updated={e.result.updated}): {e}"
        )
        await record_sync_attempt(store, SyncLogEntry.failed(str(e)))
        return SyncSummary(
            success=False,
            added=e.result.added,
            updated=e.result.updated,
            batches_committed=e.result.committed_batches,
            duration=_elapsed(started),
            error=str(e),
        )
    except Exception as e:
        logger.exception("[pricing-sync] failed")
        await record_sync_attempt(store, SyncLogEntry.failed(str(e) or e.__class__.__name__))
        return SyncSummary(success=False, duration=_elapsed(started), error=str(e) or "Unknown error")

    await record_sync_attempt(store, SyncLogEntry.success(result.added, result.updated))

    duration = _elapsed(started)
    logger.info(
        f"[pricing-sync] done added={result.added} updated={result.updated} skipped={skipped_total} "
        f"batches={result.committed_batches} duration={duration}"
    )
    return SyncSummary(
        success=True,
        added=result.added,
        updated=result.updated,
        skipped=skipped_total,
        total=result.added + result.updated,
        duration=duration,
        batches_committed=result.committed_batches,
    )
