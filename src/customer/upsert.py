"""
Reconciling upserts for customers, vehicles and repair orders.

Two merge policies apply:

* Identity fields (external id, names, email, phone) are enriched: a present
  value is written, a missing one never erases what is already stored.
* "Last seen" fields (last VIN/RO/mileage/status) describe the newest event
  and are overwritten whenever the event carries them.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.models import utcnow
from src.customer.models import Customer, RepairOrder, Vehicle
from src.customer.resolver import resolve_customer
from src.ingest.extraction import ExtractedFields, VehicleMeta

logger = logging.getLogger(__name__)

CREATED_BY_WEBHOOK = "autoflow-webhook"

_IDENTITY_FIELDS: tuple[str, ...] = (
    "external_id",
    "first_name",
    "last_name",
    "name",
    "email",
    "phone",
)


def _present(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


def identity_values(fields: ExtractedFields) -> dict[str, Any]:
    return _present({name: getattr(fields, name) for name in _IDENTITY_FIELDS})


def last_seen_values(fields: ExtractedFields) -> dict[str, Any]:
    return _present(
        {
            "last_vin": fields.vin,
            "last_ro": fields.ro_number,
            "last_mileage": fields.mileage,
            "last_status": fields.ticket_status,
            # Stored exactly as sent upstream.
            "status": fields.ticket_status,
        }
    )


def merge_customer(customer: Customer, fields: ExtractedFields, now: datetime) -> None:
    """Apply an event to an existing customer. Mutates in place."""
    for key, value in identity_values(fields).items():
        setattr(customer, key, value)
    for key, value in last_seen_values(fields).items():
        setattr(customer, key, value)
    customer.last_event_at = now
    customer.updated_at = now


async def upsert_customer(
    session: AsyncSession, shop_id: UUID, fields: ExtractedFields
) -> UUID:
    """
    Resolve the event's customer and merge the event into it, creating the
    row on first sighting. A customer with no identity at all is still
    created so the event stays attributable.

    Two concurrent first sightings of the same customer can both create a
    row; nothing here deduplicates them afterwards.
    """
    ref = await resolve_customer(session, shop_id, fields)
    now = utcnow()

    if ref.customer is None:
        customer = Customer(
            shop_id=shop_id,
            created_at=now,
            created_by=CREATED_BY_WEBHOOK,
            last_event_at=now,
            **identity_values(fields),
            **last_seen_values(fields),
        )
        session.add(customer)
        await session.flush()
        logger.info("Created customer %s for shop %s", customer.id, shop_id)
        return customer.id

    merge_customer(ref.customer, fields, now)
    await session.flush()
    return ref.customer.id


async def upsert_vehicle(
    session: AsyncSession,
    shop_id: UUID,
    vin: str,
    meta: VehicleMeta | None = None,
    *,
    customer_id: UUID | None = None,
    customer_external_id: str | None = None,
    mileage: int | None = None,
    source: str = "autoflow",
) -> UUID:
    """Atomic insert-or-update on ``(shop_id, vin)``; absent values never overwrite."""
    meta = meta or VehicleMeta()
    now = utcnow()
    values = _present(
        {
            "customer_id": customer_id,
            "customer_external_id": customer_external_id,
            "year": meta.year,
            "make": meta.make,
            "model": meta.model,
            "license": meta.license,
            "last_mileage": mileage,
            "source": source,
        }
    )

    stmt = (
        insert(Vehicle)
        .values(shop_id=shop_id, vin=vin, created_at=now, updated_at=now, **values)
        .on_conflict_do_update(
            index_elements=["shop_id", "vin"],
            set_={**values, "updated_at": now},
        )
        .returning(Vehicle.id)
    )
    return (await session.execute(stmt)).scalar_one()


async def upsert_ticket(
    session: AsyncSession,
    shop_id: UUID,
    ro_number: str,
    *,
    vin: str | None = None,
    mileage: int | None = None,
    status: str | None = None,
    customer_id: UUID | None = None,
    customer_external_id: str | None = None,
    vehicle_id: UUID | None = None,
    source: str = "autoflow",
) -> UUID:
    """Atomic insert-or-update on ``(shop_id, ro_number)``; absent values never overwrite."""
    now = utcnow()
    values = _present(
        {
            "vin": vin,
            "mileage": mileage,
            "status": status,
            "customer_id": customer_id,
            "customer_external_id": customer_external_id,
            "vehicle_id": vehicle_id,
            "source": source,
        }
    )

    stmt = (
        insert(RepairOrder)
        .values(
            shop_id=shop_id,
            ro_number=ro_number,
            created_at=now,
            updated_at=now,
            **values,
        )
        .on_conflict_do_update(
            index_elements=["shop_id", "ro_number"],
            set_={**values, "updated_at": now},
        )
        .returning(RepairOrder.id)
    )
    return (await session.execute(stmt)).scalar_one()


async def close_customer(session: AsyncSession, customer_id: UUID) -> None:
    """Flag a customer closed. Customers are never deleted."""
    customer = await session.get(Customer, customer_id)
    if customer is None:
        return
    now = utcnow()
    customer.status = "closed"
    customer.closed_at = now
    customer.updated_at = now
    await session.flush()


async def refresh_last_seen_for_ro(
    session: AsyncSession,
    shop_id: UUID,
    ro_number: str,
    *,
    vin: str | None,
    mileage: int | None,
) -> None:
    """Push VIN/mileage learned later (e.g. from a DVI sheet) onto customers last seen on this RO."""
    values = _present({"last_vin": vin, "last_mileage": mileage})
    if not values:
        return
    await session.execute(
        update(Customer)
        .where(Customer.shop_id == shop_id, Customer.last_ro == ro_number)
        .values(**values, updated_at=utcnow())
        .execution_options(synchronize_session="fetch")
    )
