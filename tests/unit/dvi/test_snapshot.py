from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.customer.models import Customer, RepairOrder, Vehicle
from src.customer.upsert import upsert_customer
from src.dvi.interface import DviCategory, DviItem, DviResult
from src.dvi.models import DviSnapshot
from src.dvi.services import CanonicalServiceKey
from src.dvi.severity import DviFinding, Severity
from src.dvi.snapshot import (
    MAX_FETCH_ATTEMPTS,
    get_severities,
    mark_dvi_pending,
    merge_inline_findings,
    persist_dvi_result,
    record_dvi_failure,
)
from src.ingest.extraction import ExtractedFields
from src.shop.models import Shop


def _result(vin: str | None = "1FTFW1E64CFB09199") -> DviResult:
    return DviResult(
        invoice="R1",
        vin=vin,
        mileage=87412,
        sheet_name="Courtesy",
        categories=(
            DviCategory(
                name="Under Hood",
                items=(
                    DviItem(name="Engine Oil", status="0"),
                    DviItem(name="Wiper Blades", status="2"),
                ),
            ),
        ),
        raw={"success": 1},
    )


class TestMarkDviPending:
    async def test_creates_pending_snapshot(
        self, db_session: AsyncSession, shop: Shop
    ) -> None:
        snapshot = await mark_dvi_pending(db_session, shop.id, "R1")

        assert snapshot.ro_number == "R1"
        assert snapshot.fetched_at is None
        assert snapshot.attempts == 0

    async def test_requeues_existing_snapshot(
        self, db_session: AsyncSession, shop: Shop
    ) -> None:
        snapshot = await mark_dvi_pending(db_session, shop.id, "R1")
        await persist_dvi_result(db_session, snapshot, _result(vin=None))

        again = await mark_dvi_pending(db_session, shop.id, "R1")

        assert again.id == snapshot.id
        assert again.fetched_at is None
        assert again.attempts == 0


class TestMergeInlineFindings:
    async def test_accumulates_worst(self, db_session: AsyncSession, shop: Shop) -> None:
        await merge_inline_findings(
            db_session,
            shop.id,
            "R1",
            [DviFinding(label="Front Brake Pads", severity=Severity.RED)],
        )
        merged = await merge_inline_findings(
            db_session,
            shop.id,
            "R1",
            [
                DviFinding(label="front brake rotor", severity=Severity.GREEN),
                DviFinding(label="Coolant", severity=Severity.YELLOW),
            ],
        )

        assert merged == {
            CanonicalServiceKey.BRAKES_FRONT: Severity.RED,
            CanonicalServiceKey.COOLANT: Severity.YELLOW,
        }
        assert await get_severities(db_session, shop.id, "R1") == merged

    async def test_unknown_ro_has_no_severities(
        self, db_session: AsyncSession, shop: Shop
    ) -> None:
        assert await get_severities(db_session, shop.id, "nope") == {}


class TestPersistDviResult:
    async def test_stores_sheet_and_propagates_vin(
        self, db_session: AsyncSession, shop: Shop
    ) -> None:
        customer_id = await upsert_customer(
            db_session, shop.id, ExtractedFields(email="a@x.com", ro_number="R1")
        )
        snapshot = await mark_dvi_pending(db_session, shop.id, "R1")

        await persist_dvi_result(db_session, snapshot, _result())

        assert snapshot.ok is True
        assert snapshot.fetched_at is not None
        assert snapshot.severities == {
            CanonicalServiceKey.ENGINE_OIL: Severity.RED,
            CanonicalServiceKey.WIPERS: Severity.GREEN,
        }
        assert snapshot.categories is not None
        assert snapshot.categories[0]["name"] == "Under Hood"

        vehicle = (
            await db_session.execute(select(Vehicle).where(Vehicle.shop_id == shop.id))
        ).scalar_one()
        assert vehicle.vin == "1FTFW1E64CFB09199"
        assert vehicle.last_mileage == 87412

        ticket = (
            await db_session.execute(
                select(RepairOrder).where(RepairOrder.ro_number == "R1")
            )
        ).scalar_one()
        assert ticket.vehicle_id == vehicle.id
        assert ticket.source == "autoflow-dvi"

        customer = await db_session.get(
            Customer, customer_id, populate_existing=True
        )
        assert customer is not None
        assert customer.last_vin == "1FTFW1E64CFB09199"
        assert customer.last_mileage == 87412

    async def test_rebuilds_severities(
        self, db_session: AsyncSession, shop: Shop
    ) -> None:
        await merge_inline_findings(
            db_session,
            shop.id,
            "R1",
            [DviFinding(label="Coolant", severity=Severity.RED)],
        )
        snapshot = await mark_dvi_pending(db_session, shop.id, "R1")

        await persist_dvi_result(db_session, snapshot, _result(vin=None))

        assert CanonicalServiceKey.COOLANT not in (snapshot.severities or {})


class TestRecordDviFailure:
    async def test_gives_up_after_max_attempts(
        self, db_session: AsyncSession, shop: Shop
    ) -> None:
        snapshot = await mark_dvi_pending(db_session, shop.id, "R1")

        for attempt in range(1, MAX_FETCH_ATTEMPTS + 1):
            record_dvi_failure(snapshot, "HTTP 500: boom")
            if attempt < MAX_FETCH_ATTEMPTS:
                assert snapshot.fetched_at is None

        assert snapshot.attempts == MAX_FETCH_ATTEMPTS
        assert snapshot.fetched_at is not None
        assert snapshot.ok is False
        assert snapshot.error == "HTTP 500: boom"
        assert isinstance(snapshot, DviSnapshot)
