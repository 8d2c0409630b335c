"""PricingUpdateLog model.

Append-only audit trail: one row per pricing sync attempt.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from buyback.stores.postgres import Base


class PricingUpdateLog(Base):
    """Outcome of a single pricing sync attempt."""

    __tablename__ = "pricing_update_logs"

    id: Mapped[int] = mapped_column(primary_key=True)

    source: Mapped[str] = mapped_column(String(50))  # "automated"
    records_added: Mapped[int] = mapped_column(default=0)
    records_updated: Mapped[int] = mapped_column(default=0)
    status: Mapped[str] = mapped_column(String(20), index=True)  # "success" | "failed"
    error: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )
