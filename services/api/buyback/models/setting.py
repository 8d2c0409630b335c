"""Setting model.

Key/value application settings edited from the admin screens (e.g. buyback
margin policy). Values are JSON-serialized text to keep migrations simple.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from buyback.stores.postgres import Base


class Setting(Base):
    """Admin-editable setting."""

    __tablename__ = "settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    value: Mapped[str] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(String(50))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
