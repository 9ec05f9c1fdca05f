from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import get_current_shop
from src.base.dependencies import get_session
from src.dvi.services import CanonicalServiceKey
from src.dvi.severity import Severity
from src.dvi.snapshot import get_severities
from src.maintenance.overlay import MaintenanceRecommendation, overlay
from src.shop.models import Shop

router = APIRouter(prefix="/tickets")


class OverlayRequest(BaseModel):
    recommendations: list[MaintenanceRecommendation]


class OverlayResponse(BaseModel):
    ro_number: str
    severities: dict[CanonicalServiceKey, Severity]
    recommendations: list[MaintenanceRecommendation]


@router.post("/{ro_number}/overlay", response_model=OverlayResponse)
async def overlay_ticket(
    ro_number: str,
    body: OverlayRequest,
    shop: Shop = Depends(get_current_shop),
    session: AsyncSession = Depends(get_session),
) -> OverlayResponse:
    severities = await get_severities(session, shop.id, ro_number.strip())
    return OverlayResponse(
        ro_number=ro_number,
        severities=severities,
        recommendations=overlay(body.recommendations, severities),
    )
