"""RateLimit model - per-number cooldown windows."""

from datetime import datetime

from sqlalchemy import DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDMixin


class RateLimit(Base, UUIDMixin, TimestampMixin):
    """A (phone, key) pair that is blocked until expires_at."""

    __tablename__ = "rate_limits"

    phone: Mapped[str] = mapped_column(String(50), nullable=False)
    key: Mapped[str] = mapped_column(String(50), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )

    __table_args__ = (
        UniqueConstraint("phone", "key", name="uq_rate_limits_phone_key"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<RateLimit(phone={self.phone}, key={self.key}, expires_at={self.expires_at})>"
