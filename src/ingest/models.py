from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.base.models import BaseDbModel, ShopScoped, UTCDateTime
from src.base.schemas import PydanticJSONB


class WebhookEvent(ShopScoped, BaseDbModel):
    """Every delivery as received, kept for audit and replay."""

    __tablename__ = "webhook_events"

    provider: Mapped[str] = mapped_column(String, nullable=False)
    event_name: Mapped[str | None] = mapped_column(String, nullable=True)
    payload: Mapped[Any] = mapped_column(PydanticJSONB(Any), nullable=True)
    raw: Mapped[str] = mapped_column(Text, nullable=False)
    received_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("customers.id"), nullable=True
    )
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
