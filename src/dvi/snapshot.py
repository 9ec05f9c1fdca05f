from __future__ import annotations

import logging
from dataclasses import asdict
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.models import utcnow
from src.customer.upsert import refresh_last_seen_for_ro, upsert_ticket, upsert_vehicle
from src.dvi.interface import DviResult
from src.dvi.models import DviSnapshot
from src.dvi.severity import DviFinding, SeverityMap, merge_severities

logger = logging.getLogger(__name__)

MAX_FETCH_ATTEMPTS = 3


async def _ensure_snapshot(
    session: AsyncSession, shop_id: UUID, ro_number: str
) -> DviSnapshot:
    now = utcnow()
    await session.execute(
        insert(DviSnapshot)
        .values(shop_id=shop_id, ro_number=ro_number, created_at=now, updated_at=now)
        .on_conflict_do_nothing(index_elements=["shop_id", "ro_number"])
    )
    stmt = (
        select(DviSnapshot)
        .where(DviSnapshot.shop_id == shop_id, DviSnapshot.ro_number == ro_number)
        .execution_options(populate_existing=True)
    )
    return (await session.execute(stmt)).scalar_one()


async def mark_dvi_pending(
    session: AsyncSession, shop_id: UUID, ro_number: str
) -> DviSnapshot:
    """Queue the RO's inspection for the scheduled fetch."""
    snapshot = await _ensure_snapshot(session, shop_id, ro_number)
    snapshot.fetched_at = None
    snapshot.attempts = 0
    await session.flush()
    return snapshot


async def merge_inline_findings(
    session: AsyncSession,
    shop_id: UUID,
    ro_number: str,
    findings: list[DviFinding],
) -> SeverityMap:
    """Fold findings delivered inside a webhook into the RO's severity map."""
    snapshot = await _ensure_snapshot(session, shop_id, ro_number)
    snapshot.severities = merge_severities(findings, snapshot.severities)
    await session.flush()
    return snapshot.severities


async def get_severities(
    session: AsyncSession, shop_id: UUID, ro_number: str
) -> SeverityMap:
    stmt = select(DviSnapshot.severities).where(
        DviSnapshot.shop_id == shop_id, DviSnapshot.ro_number == ro_number
    )
    severities = (await session.execute(stmt)).scalar_one_or_none()
    return dict(severities or {})


async def persist_dvi_result(
    session: AsyncSession, snapshot: DviSnapshot, result: DviResult
) -> None:
    """
    Store a fetched sheet on its snapshot and propagate what it teaches us.

    The severity map is rebuilt from the sheet. VIN and mileage flow onto the
    vehicle, the repair order and customers last seen on this RO.
    """
    now = utcnow()
    snapshot.ok = True
    snapshot.error = None
    snapshot.fetched_at = now
    snapshot.attempts += 1
    snapshot.vin = result.vin
    snapshot.mileage = result.mileage
    snapshot.sheet_name = result.sheet_name
    snapshot.completed_at = result.completed_at
    snapshot.advisor = result.advisor
    snapshot.technician = result.technician
    snapshot.pdf_url = result.pdf_url
    snapshot.shop_url = result.shop_url
    snapshot.customer_url = result.customer_url
    snapshot.categories = [asdict(category) for category in result.categories]
    snapshot.raw = result.raw
    snapshot.severities = merge_severities(result.findings())

    if result.vin:
        vehicle_id = await upsert_vehicle(
            session,
            snapshot.shop_id,
            result.vin,
            mileage=result.mileage,
            source="autoflow-dvi",
        )
        await upsert_ticket(
            session,
            snapshot.shop_id,
            snapshot.ro_number,
            vin=result.vin,
            mileage=result.mileage,
            vehicle_id=vehicle_id,
            source="autoflow-dvi",
        )
        await refresh_last_seen_for_ro(
            session,
            snapshot.shop_id,
            snapshot.ro_number,
            vin=result.vin,
            mileage=result.mileage,
        )
    await session.flush()


def record_dvi_failure(snapshot: DviSnapshot, error: str) -> None:
    """Keep the error; give up (stop being pending) after MAX_FETCH_ATTEMPTS."""
    snapshot.ok = False
    snapshot.error = error
    snapshot.attempts += 1
    if snapshot.attempts >= MAX_FETCH_ATTEMPTS:
        snapshot.fetched_at = utcnow()
        logger.warning(
            "Giving up on DVI for RO %s after %d attempts",
            snapshot.ro_number,
            snapshot.attempts,
        )
