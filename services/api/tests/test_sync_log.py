import pytest

from buyback.services.sync_log import SyncLogEntry, record_sync_attempt

from conftest import FakePricingStore


@pytest.mark.asyncio
async def test_record_success_entry(store: FakePricingStore):
    assert await record_sync_attempt(store, SyncLogEntry.success(3, 4)) is True

    log = store.sync_logs[0]
    assert log["source"] == "automated"
    assert log["status"] == "success"
    assert (log["records_added"], log["records_updated"]) == (3, 4)
    assert log["error"] is None


@pytest.mark.asyncio
async def test_record_failed_entry_has_zero_counts(store: FakePricingStore):
    await record_sync_attempt(store, SyncLogEntry.failed("timeout"))

    log = store.sync_logs[0]
    assert log["status"] == "failed"
    assert (log["records_added"], log["records_updated"]) == (0, 0)
    assert log["error"] == "timeout"


@pytest.mark.asyncio
async def test_record_failure_is_swallowed():
    store = FakePricingStore(fail_sync_log=True)
    assert await record_sync_attempt(store, SyncLogEntry.success(1, 0)) is False
