from __future__ import annotations

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.base.models import BaseDbModel, ShopScoped, UTCDateTime

# Statuses the open-customers list treats as finished.
CLOSED_STATUSES: tuple[str, ...] = ("closed", "Close", "CLOSED", "Appointment")


class Customer(ShopScoped, BaseDbModel):
    """
    A shop's customer as seen through upstream events.

    No natural unique key exists (every identity field may be missing), so
    rows are matched by the resolver rather than by a constraint.
    """

    __tablename__ = "customers"
    __table_args__ = (
        Index("ix_customers_shop_external_id", "shop_id", "external_id"),
        Index("ix_customers_shop_email", "shop_id", "email"),
        Index("ix_customers_shop_phone", "shop_id", "phone"),
    )

    # ── Identity (enriched, never nulled) ──
    external_id: Mapped[str | None] = mapped_column(String, nullable=True)
    first_name: Mapped[str | None] = mapped_column(String, nullable=True)
    last_name: Mapped[str | None] = mapped_column(String, nullable=True)
    name: Mapped[str | None] = mapped_column(String, nullable=True)
    email: Mapped[str | None] = mapped_column(String, nullable=True)
    phone: Mapped[str | None] = mapped_column(String, nullable=True)

    # ── Last seen (overwritten by the newest event) ──
    last_vin: Mapped[str | None] = mapped_column(String, nullable=True)
    last_ro: Mapped[str | None] = mapped_column(String, nullable=True)
    last_mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    last_status: Mapped[str | None] = mapped_column(String, nullable=True)
    last_event_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True
    )

    status: Mapped[str] = mapped_column(String, nullable=False, default="open")
    closed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="autoflow")
    created_by: Mapped[str | None] = mapped_column(String, nullable=True)

    vehicles: Mapped[list[Vehicle]] = relationship(back_populates="customer")


class Vehicle(ShopScoped, BaseDbModel):
    __tablename__ = "vehicles"
    __table_args__ = (UniqueConstraint("shop_id", "vin", name="uq_vehicle_shop_vin"),)

    vin: Mapped[str] = mapped_column(String, nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("customers.id"), nullable=True
    )
    customer_external_id: Mapped[str | None] = mapped_column(String, nullable=True)
    year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    make: Mapped[str | None] = mapped_column(String, nullable=True)
    model: Mapped[str | None] = mapped_column(String, nullable=True)
    license: Mapped[str | None] = mapped_column(String, nullable=True)
    last_mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="autoflow")

    customer: Mapped[Customer | None] = relationship(back_populates="vehicles")


class RepairOrder(ShopScoped, BaseDbModel):
    """A ticket, keyed by the shop-assigned RO (invoice) number."""

    __tablename__ = "repair_orders"
    __table_args__ = (
        UniqueConstraint("shop_id", "ro_number", name="uq_repair_order_shop_ro"),
    )

    ro_number: Mapped[str] = mapped_column(String, nullable=False)
    customer_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("customers.id"), nullable=True
    )
    customer_external_id: Mapped[str | None] = mapped_column(String, nullable=True)
    vehicle_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("vehicles.id"), nullable=True
    )
    vin: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str | None] = mapped_column(String, nullable=True)
    source: Mapped[str] = mapped_column(String, nullable=False, default="autoflow")
