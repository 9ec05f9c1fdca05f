from dataclasses import dataclass
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.customer.models import CLOSED_STATUSES, Customer, RepairOrder, Vehicle


@dataclass(frozen=True)
class MileageReading:
    vin: str
    mileage: int | None
    source: str | None
    known: bool


async def get_open_customers(
    session: AsyncSession, shop_id: UUID, limit: int = 50
) -> Sequence[Customer]:
    """Customers with a vehicle on an unfinished ticket, most recent activity first."""
    recency = func.coalesce(
        Customer.last_event_at, Customer.updated_at, Customer.created_at
    )
    stmt = (
        select(Customer)
        .where(
            Customer.shop_id == shop_id,
            Customer.status.not_in(CLOSED_STATUSES),
            Customer.last_vin.is_not(None),
            Customer.last_vin != "",
        )
        .order_by(recency.desc())
        .limit(limit)
    )
    return (await session.execute(stmt)).scalars().all()


async def get_latest_mileage(
    session: AsyncSession, shop_id: UUID, vin: str
) -> MileageReading | None:
    """
    Latest odometer reading for a VIN: the newest repair order that has one,
    else the vehicle's own last mileage. ``None`` when the VIN is unknown.
    """
    ro_stmt = (
        select(RepairOrder.mileage)
        .where(
            RepairOrder.shop_id == shop_id,
            RepairOrder.vin == vin,
            RepairOrder.mileage > 0,
        )
        .order_by(
            func.coalesce(RepairOrder.updated_at, RepairOrder.created_at).desc()
        )
        .limit(1)
    )
    ro_mileage = (await session.execute(ro_stmt)).scalar_one_or_none()
    if ro_mileage:
        return MileageReading(vin=vin, mileage=ro_mileage, source="repair_order", known=True)

    vehicle_stmt = select(Vehicle).where(Vehicle.shop_id == shop_id, Vehicle.vin == vin)
    vehicle = (await session.execute(vehicle_stmt)).scalar_one_or_none()
    if vehicle is None:
        return None
    if vehicle.last_mileage:
        return MileageReading(
            vin=vin, mileage=vehicle.last_mileage, source="vehicle", known=True
        )
    return MileageReading(vin=vin, mileage=None, source=None, known=False)
