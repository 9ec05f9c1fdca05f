from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.base.models import BaseDbModel, ShopScoped, UTCDateTime
from src.base.schemas import PydanticJSONB
from src.dvi.services import CanonicalServiceKey
from src.dvi.severity import Severity


class DviSnapshot(ShopScoped, BaseDbModel):
    """
    Latest inspection known for one repair order.

    ``fetched_at is None`` marks a snapshot waiting for the scheduled fetch.
    """

    __tablename__ = "dvi_snapshots"
    __table_args__ = (
        UniqueConstraint("shop_id", "ro_number", name="uq_dvi_snapshot_shop_ro"),
    )

    ro_number: Mapped[str] = mapped_column(String, nullable=False)
    fetched_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    ok: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # ── Sheet data ──
    vin: Mapped[str | None] = mapped_column(String, nullable=True)
    mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sheet_name: Mapped[str | None] = mapped_column(String, nullable=True)
    completed_at: Mapped[str | None] = mapped_column(String, nullable=True)
    advisor: Mapped[str | None] = mapped_column(String, nullable=True)
    technician: Mapped[str | None] = mapped_column(String, nullable=True)
    pdf_url: Mapped[str | None] = mapped_column(String, nullable=True)
    shop_url: Mapped[str | None] = mapped_column(String, nullable=True)
    customer_url: Mapped[str | None] = mapped_column(String, nullable=True)
    categories: Mapped[list[dict[str, Any]] | None] = mapped_column(
        PydanticJSONB(list[dict[str, Any]]), nullable=True
    )
    raw: Mapped[dict[str, Any] | None] = mapped_column(
        PydanticJSONB(dict[str, Any]), nullable=True
    )

    # ── Worst severity per canonical service ──
    severities: Mapped[dict[CanonicalServiceKey, Severity] | None] = mapped_column(
        PydanticJSONB(dict[CanonicalServiceKey, Severity]), nullable=True
    )
