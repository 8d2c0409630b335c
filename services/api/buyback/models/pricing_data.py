"""PricingData model.

One device configuration's wholesale grade prices (from the Atlas sheet) and
the customer-facing buyback offers derived from them.

Natural key: (model, network). The pricing sync fully overwrites the
sheet-derived and offer columns on every run; override_* columns belong to
admins and are never written by the sync.
"""

from datetime import datetime

from sqlalchemy import Boolean, DateTime, String, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from buyback.stores.postgres import Base

NETWORK_UNLOCKED = "Unlocked"
NETWORK_CARRIER_LOCKED = "Carrier Locked"


class PricingData(Base):
    """Wholesale + offer pricing for a (model, network) pair."""

    __tablename__ = "pricing_data"
    __table_args__ = (UniqueConstraint("model", "network", name="uq_pricing_data_model_network"),)

    id: Mapped[int] = mapped_column(primary_key=True)

    # Identity (e.g. "iPhone 13 Pro 256GB Unlocked", "Unlocked")
    model: Mapped[str] = mapped_column(String(200), index=True)
    network: Mapped[str] = mapped_column(String(50))

    # Derived identity
    device_type: Mapped[str] = mapped_column(String(50), default="iPhone", index=True)
    model_name: Mapped[str] = mapped_column(String(100), index=True)  # "13 Pro"
    storage: Mapped[str] = mapped_column(String(20))  # "256GB"
    series: Mapped[str | None] = mapped_column(String(10), index=True)  # "13", "SE", "XR"

    # Wholesale grade prices (null = no price for this grade)
    price_swap: Mapped[float | None] = mapped_column()
    price_grade_a: Mapped[float | None] = mapped_column()
    price_grade_b: Mapped[float | None] = mapped_column()
    price_grade_c: Mapped[float | None] = mapped_column()
    price_grade_d: Mapped[float | None] = mapped_column()
    price_doa: Mapped[float | None] = mapped_column()

    # Calculated offers (mirror the grade prices)
    offer_swap: Mapped[float | None] = mapped_column()
    offer_grade_a: Mapped[float | None] = mapped_column()
    offer_grade_b: Mapped[float | None] = mapped_column()
    offer_grade_c: Mapped[float | None] = mapped_column()
    offer_grade_d: Mapped[float | None] = mapped_column()
    offer_doa: Mapped[float | None] = mapped_column()
    offers_calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Manual overrides (admin screens)
    override_grade_a: Mapped[float | None] = mapped_column()
    override_grade_b: Mapped[float | None] = mapped_column()
    override_grade_c: Mapped[float | None] = mapped_column()
    override_grade_d: Mapped[float | None] = mapped_column()
    override_doa: Mapped[float | None] = mapped_column()

    # Housekeeping
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    def __repr__(self) -> str:
        return f"<PricingData {self.model!r} {self.network}>"
