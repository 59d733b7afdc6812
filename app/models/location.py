"""Location model - a branch of a business with its own phone number."""

import uuid
from typing import TYPE_CHECKING, Any

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONType, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.business import Business


class Location(Base, UUIDMixin, TimestampMixin):
    """A physical location; calls and texts to its number reply as the location."""

    __tablename__ = "locations"

    business_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(String(50), nullable=True, index=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    hours: Mapped[dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)

    manager_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    manager_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    forwarding_number: Mapped[str | None] = mapped_column(String(50), nullable=True)

    online_ordering_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    auto_reply_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    custom_settings: Mapped[dict[str, Any]] = mapped_column(
        JSONType, nullable=False, default=dict
    )

    business: Mapped["Business"] = relationship("Business", back_populates="locations")

    def __repr__(self) -> str:
        """String representation."""
        return f"<Location(id={self.id}, name='{self.name}', phone={self.phone_number})>"
