from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from src.base.models import BaseDbModel


class Shop(BaseDbModel):
    __tablename__ = "shops"

    name: Mapped[str] = mapped_column(String, nullable=False)
    webhook_token: Mapped[str] = mapped_column(String, nullable=False, unique=True)

    # ── AutoFlow credentials (optional, env fallback) ──
    autoflow_domain: Mapped[str | None] = mapped_column(String, nullable=True)
    autoflow_api_key: Mapped[str | None] = mapped_column(String, nullable=True)
    autoflow_api_password: Mapped[str | None] = mapped_column(String, nullable=True)
