"""ApiUsage model - LLM token accounting per business."""

import uuid

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, UUIDMixin


class ApiUsage(Base, UUIDMixin, TimestampMixin):
    """Tokens spent on one LLM request."""

    __tablename__ = "api_usage"

    business_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("businesses.id", ondelete="CASCADE"), nullable=True
    )
    service: Mapped[str] = mapped_column(String(30), nullable=False, default="openai")
    model: Mapped[str] = mapped_column(String(50), nullable=False)
    request_type: Mapped[str] = mapped_column(String(50), nullable=False)
    prompt_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    completion_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_tokens: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    estimated_cost: Mapped[float] = mapped_column(
        Numeric(10, 6, asdecimal=False), nullable=False, default=0.0
    )

    __table_args__ = (
        Index("ix_api_usage_business_created", "business_id", "created_at"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ApiUsage(model={self.model}, type={self.request_type}, tokens={self.total_tokens})>"
