from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import get_current_shop
from src.base.dependencies import get_session
from src.base.schemas import BaseDTO
from src.customer.models import Customer
from src.customer.queries import get_latest_mileage, get_open_customers
from src.ingest.normalize import normalize_vin
from src.shop.models import Shop

router = APIRouter()


class CustomerResponse(BaseDTO):
    external_id: str | None
    name: str | None
    first_name: str | None
    last_name: str | None
    email: str | None
    phone: str | None
    last_vin: str | None
    last_ro: str | None
    last_mileage: int | None
    last_status: str | None
    status: str
    last_event_at: datetime | None


class MileageResponse(BaseModel):
    vin: str
    mileage: int | None
    source: str | None
    known: bool


@router.get("/customers/open", response_model=list[CustomerResponse])
async def list_open_customers(
    limit: int = Query(50, ge=1, le=500),
    shop: Shop = Depends(get_current_shop),
    session: AsyncSession = Depends(get_session),
) -> list[Customer]:
    return list(await get_open_customers(session, shop.id, limit))


@router.get("/vehicles/{vin}/mileage", response_model=MileageResponse)
async def vehicle_mileage(
    vin: str,
    shop: Shop = Depends(get_current_shop),
    session: AsyncSession = Depends(get_session),
) -> MileageResponse:
    normalized = normalize_vin(vin)
    if normalized is None:
        raise HTTPException(status_code=400, detail="VIN must not be empty")

    reading = await get_latest_mileage(session, shop.id, normalized)
    if reading is None:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return MileageResponse(
        vin=reading.vin,
        mileage=reading.mileage,
        source=reading.source,
        known=reading.known,
    )
