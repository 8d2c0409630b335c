"""Tests for the end-to-end pricing sync pipeline (fetch is faked)."""

import pytest

from buyback.services.pricing_sync import classify_rows, sync_pricing
from buyback.services.row_classifier import SkipReason
from buyback.services.sheets_client import SheetFetchError
from buyback.services.tabular import parse_delimited_text
from buyback.settings import Settings

from conftest import FakePricingStore, sheet_csv


def _fetch(text: str):
    calls: list[tuple[str, str]] = []

    async def fake_fetch(sheet_id: str, sheet_name: str) -> str:
        calls.append((sheet_id, sheet_name))
        return text

    fake_fetch.calls = calls
    return fake_fetch


@pytest.mark.asyncio
async def test_sync_success(settings: Settings, store: FakePricingStore):
    store.add(model="iPhone 13 128GB Unlocked", network="Unlocked", model_name="13")
    csv_text = sheet_csv(
        "iPhone 13 128GB Unlocked",
        "iPhone 14 Pro 256GB Unlocked",
        "iPhone 14 Pro 256GB Verizon",
    )
    fetch = _fetch(csv_text)

    summary = await sync_pricing(settings=settings, store=store, fetch_csv=fetch)

    assert summary.success is True
    assert summary.added == 2
    assert summary.updated == 1
    assert summary.total == 3
    assert summary.skipped == 1  # header row
    assert summary.duration.endswith("s")
    assert summary.error is None
    assert fetch.calls == [("atlas-sheet", "iPhone Used")]

    assert store.sync_logs[-1]["status"] == "success"
    assert store.sync_logs[-1]["records_added"] == 2
    assert store.sync_logs[-1]["records_updated"] == 1

    pro = store.records[("iPhone 14 Pro 256GB Unlocked", "Unlocked")]
    assert pro.model_name == "14 Pro"
    assert pro.series == "14"
    assert pro.offer_grade_a == 600.0


@pytest.mark.asyncio
async def test_sync_every_row_is_accounted_for(settings: Settings, store: FakePricingStore):
    csv_text = "\n".join(
        [
            "Section,Model,SWAP,A,B,C,D,DOA",
            ',"iPhone 13 128GB Unlocked",900,800,700,600,500,100',
            ",Prices for this week,,,,,,",
            ",,,,,,,",
            ',"iPhone 15 Pro",1,1,1,1,1,1',
            ',"iPhone 12 64GB AT&T",#REF!,400,,,,',
            "",
        ]
    )
    rows = parse_delimited_text(csv_text)

    summary = await sync_pricing(settings=settings, store=store, fetch_csv=_fetch(csv_text))

    assert summary.success
    assert summary.added + summary.updated + summary.skipped == len(rows)
    assert summary.added == 2
    assert summary.skipped == 5
    locked = store.records[("iPhone 12 64GB AT&T", "Carrier Locked")]
    assert locked.price_swap is None
    assert locked.price_grade_a == 400


@pytest.mark.asyncio
async def test_sync_missing_sheet_id_fails_without_log(store: FakePricingStore):
    fetch = _fetch(sheet_csv("iPhone 13 128GB Unlocked"))

    summary = await sync_pricing(settings=Settings(atlas_sheet_id=""), store=store, fetch_csv=fetch)

    assert summary.success is False
    assert summary.error == "Missing ATLAS_SHEET_ID environment variable"
    assert fetch.calls == []
    assert store.sync_logs == []


@pytest.mark.asyncio
async def test_sync_fetch_failure_is_logged(settings: Settings, store: FakePricingStore):
    async def failing_fetch(sheet_id: str, sheet_name: str) -> str:
        raise SheetFetchError("Failed to fetch sheet data: HTTP 404")

    summary = await sync_pricing(settings=settings, store=store, fetch_csv=failing_fetch)

    assert summary.success is False
    assert "HTTP 404" in summary.error
    assert store.records == {}
    assert store.sync_logs[-1]["status"] == "failed"
    assert store.sync_logs[-1]["records_added"] == 0
    assert "HTTP 404" in store.sync_logs[-1]["error"]


@pytest.mark.asyncio
async def test_sync_empty_sheet_fails(settings: Settings, store: FakePricingStore):
    summary = await sync_pricing(settings=settings, store=store, fetch_csv=_fetch(""))

    assert summary.success is False
    assert summary.error == "No data found in Atlas sheet"
    assert store.sync_logs[-1]["status"] == "failed"


@pytest.mark.asyncio
async def test_sync_batch_failure_reports_partial_progress(settings: Settings):
    store = FakePricingStore(fail_on_batch=2)
    settings = settings.model_copy(update={"pricing_sync_batch_size": 2})
    csv_text = sheet_csv(*(f"iPhone {i} 128GB Unlocked" for i in range(8, 13)))

    summary = await sync_pricing(settings=settings, store=store, fetch_csv=_fetch(csv_text))

    assert summary.success is False
    assert summary.error.startswith("Batch 2 failed")
    assert summary.added == 2
    assert summary.batches_committed == 1
    assert len(store.records) == 2
    assert store.sync_logs[-1]["status"] == "failed"
    assert store.sync_logs[-1]["records_added"] == 0


@pytest.mark.asyncio
async def test_sync_audit_log_failure_does_not_change_outcome(settings: Settings):
    store = FakePricingStore(fail_sync_log=True)

    summary = await sync_pricing(
        settings=settings, store=store, fetch_csv=_fetch(sheet_csv("iPhone 13 128GB Unlocked"))
    )

    assert summary.success is True
    assert summary.added == 1
    assert len(store.records) == 1


@pytest.mark.asyncio
async def test_sync_uses_stored_margin_settings(settings: Settings, store: FakePricingStore):
    store.settings["margin_settings_simple"] = (
        '{"mode": "percentage", "percentageMargins": '
        '{"gradeA": 50, "gradeB": 50, "gradeC": 50, "gradeD": 50, "gradeDOA": 50}}'
    )

    await sync_pricing(settings=settings, store=store, fetch_csv=_fetch(sheet_csv("iPhone 13 128GB Unlocked")))

    assert store.records[("iPhone 13 128GB Unlocked", "Unlocked")].offer_grade_a == 400.0


def test_classify_rows_counts_reasons():
    rows = parse_delimited_text(sheet_csv("iPhone 13 128GB Unlocked", "iPhone 15 Pro") + "\n")
    records, skipped = classify_rows(rows)

    assert [r.model for r in records] == ["iPhone 13 128GB Unlocked"]
    assert skipped[SkipReason.NOISE_MARKER] == 1
    assert skipped[SkipReason.INVALID_FORMAT] == 1
    assert skipped[SkipReason.MISSING_DESCRIPTION] == 1
