"""Pricing repository on top of the Postgres store.

PricingStore is the persistence interface the pricing services depend on;
SqlPricingStore implements it with async SQLAlchemy. Every write method opens
its own session, so each call is one transaction.
"""

from collections.abc import Collection, Sequence
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert

from buyback.models import PricingData, PricingUpdateLog, Setting
from buyback.stores.postgres import get_session

# Keep IN (...) lists well below driver parameter limits.
_KEY_LOOKUP_CHUNK = 1000

# Identity columns; everything else in an upsert row is replaced on conflict.
_NATURAL_KEY = ("model", "network")


class PricingStore(Protocol):
    """Persistence operations used by the pricing sync and margin services."""

    async def fetch_existing_keys(self, models: Collection[str]) -> set[tuple[str, str]]: ...

    async def apply_batch(self, rows: Sequence[dict[str, Any]]) -> None: ...

    async def append_sync_log(
        self,
        *,
        source: str,
        records_added: int,
        records_updated: int,
        status: str,
        error: str | None,
    ) -> None: ...

    async def load_setting(self, key: str) -> str | None: ...

    async def save_setting(self, key: str, value: str, category: str | None = None) -> None: ...

    async def list_active_records(self) -> list[PricingData]: ...

    async def update_offers(self, updates: Sequence[tuple[int, dict[str, Any]]]) -> None: ...


class SqlPricingStore:
    """PricingStore backed by PostgreSQL."""

    async def fetch_existing_keys(self, models: Collection[str]) -> set[tuple[str, str]]:
        """Existing (model, network) keys for the given models, in bulk."""
        unique_models = sorted(set(models))
        keys: set[tuple[str, str]] = set()
        if not unique_models:
            return keys

        async with get_session() as session:
            for start in range(0, len(unique_models), _KEY_LOOKUP_CHUNK):
                chunk = unique_models[start : start + _KEY_LOOKUP_CHUNK]
                result = await session.execute(
                    select(PricingData.model, PricingData.network).where(PricingData.model.in_(chunk))
                )
                keys.update((model, network) for model, network in result.all())
        return keys

    async def apply_batch(self, rows: Sequence[dict[str, Any]]) -> None:
        """Upsert rows keyed by (model, network) in a single transaction.

        Rows are written one statement at a time so a key repeated within the
        batch is simply overwritten again.
        """
        if not rows:
            return

        async with get_session() as session:
            for row in rows:
                stmt = pg_insert(PricingData).values(**row)
                stmt = stmt.on_conflict_do_update(
                    index_elements=list(_NATURAL_KEY),
                    set_={
                        column: stmt.excluded[column]
                        for column in row
                        if column not in _NATURAL_KEY
                    },
                )
                await session.execute(stmt)

    async def append_sync_log(
        self,
        *,
        source: str,
        records_added: int,
        records_updated: int,
        status: str,
        error: str | None,
    ) -> None:
        async with get_session() as session:
            session.add(
                PricingUpdateLog(
                    source=source,
                    records_added=records_added,
                    records_updated=records_updated,
                    status=status,
                    error=error,
                )
            )

    async def list_sync_logs(self, limit: int = 20) -> list[PricingUpdateLog]:
        async with get_session() as session:
            result = await session.execute(
                select(PricingUpdateLog).order_by(PricingUpdateLog.created_at.desc()).limit(limit)
            )
            return list(result.scalars().all())

    async def load_setting(self, key: str) -> str | None:
        async with get_session() as session:
            result = await session.execute(select(Setting.value).where(Setting.key == key))
            return result.scalar_one_or_none()

    async def save_setting(self, key: str, value: str, category: str | None = None) -> None:
        async with get_session() as session:
            stmt = pg_insert(Setting).values(key=key, value=value, category=category)
            stmt = stmt.on_conflict_do_update(
                index_elements=["key"],
                set_={"value": stmt.excluded.value, "category": stmt.excluded.category},
            )
            await session.execute(stmt)

    async def list_active_records(self) -> list[PricingData]:
        async with get_session() as session:
            result = await session.execute(
                select(PricingData).where(PricingData.is_active.is_(True)).order_by(PricingData.id)
            )
            return list(result.scalars().all())

    async def update_offers(self, updates: Sequence[tuple[int, dict[str, Any]]]) -> None:
        """Write recalculated offer columns for several records in one transaction."""
        if not updates:
            return

        async with get_session() as session:
            for record_id, values in updates:
                await session.execute(
                    update(PricingData).where(PricingData.id == record_id).values(**values)
                )

    async def find_active_by_model_name(self, model_name: str, network: str) -> list[PricingData]:
        """Active records whose model_name matches exactly (case-insensitive)."""
        async with get_session() as session:
            result = await session.execute(
                select(PricingData).where(
                    func.lower(PricingData.model_name) == model_name.lower(),
                    PricingData.network == network,
                    PricingData.is_active.is_(True),
                )
            )
            return list(result.scalars().all())

    async def pricing_stats(self) -> dict[str, Any]:
        """Totals for the admin pricing dashboard."""
        async with get_session() as session:
            total = await session.scalar(select(func.count()).select_from(PricingData))
            active = await session.scalar(
                select(func.count()).select_from(PricingData).where(PricingData.is_active.is_(True))
            )
            overrides = await session.scalar(
                select(func.count())
                .select_from(PricingData)
                .where(
                    or_(
                        PricingData.override_grade_a.is_not(None),
                        PricingData.override_grade_b.is_not(None),
                        PricingData.override_grade_c.is_not(None),
                        PricingData.override_grade_d.is_not(None),
                        PricingData.override_doa.is_not(None),
                    )
                )
            )
            last_sync: datetime | None = await session.scalar(select(func.max(PricingData.last_updated)))

        return {
            "total_models": int(total or 0),
            "active_models": int(active or 0),
            "override_count": int(overrides or 0),
            "last_sync": last_sync,
        }


def get_pricing_store() -> SqlPricingStore:
    """FastAPI dependency (overridden in tests)."""
    return SqlPricingStore()
