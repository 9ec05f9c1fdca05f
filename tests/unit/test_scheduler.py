from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from src.base.cache import TtlCache
from src.customer.models import RepairOrder
from src.dvi.interface import DviCategory, DviFetchError, DviItem, DviResult
from src.dvi.models import DviSnapshot
from src.dvi.services import CanonicalServiceKey
from src.dvi.severity import Severity
from src.dvi.snapshot import MAX_FETCH_ATTEMPTS, mark_dvi_pending
from src.scheduler import run_pending_dvi_fetches
from src.shop.models import Shop


def _make_result(invoice: str) -> DviResult:
    return DviResult(
        invoice=invoice,
        vin="1FTFW1E64CFB09199",
        mileage=87412,
        categories=(
            DviCategory(
                name="Brakes",
                items=(DviItem(name="Front Brake Pads", status="1"),),
            ),
        ),
    )


async def _make_pending(session: AsyncSession, shop: Shop, *ro_numbers: str) -> None:
    for ro_number in ro_numbers:
        await mark_dvi_pending(session, shop.id, ro_number)
    await session.commit()


@pytest.fixture
def test_session_factory(
    db_engine: AsyncEngine,
) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest.fixture
async def configured_shop(db_session: AsyncSession) -> Shop:
    s = Shop(
        name="Main Street Auto",
        webhook_token="tok-configured",
        autoflow_domain="acme",
        autoflow_api_key="key",
        autoflow_api_password="pw",
    )
    db_session.add(s)
    await db_session.flush()
    return s


class TestRunPendingDviFetches:
    async def test_fetches_and_persists(
        self,
        db_session: AsyncSession,
        configured_shop: Shop,
        test_session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await _make_pending(db_session, configured_shop, "R1")

        mock_source = AsyncMock()
        mock_source.fetch_dvi.return_value = _make_result("R1")

        with (
            patch("src.scheduler.async_session", test_session_factory),
            patch("src.scheduler.create_dvi_source", return_value=mock_source) as factory,
        ):
            await run_pending_dvi_fetches()

        mock_source.fetch_dvi.assert_awaited_once_with("R1")
        mock_source.aclose.assert_awaited_once()
        config = factory.call_args.args[0]
        assert config.domain == "acme.autotext.me"

        async with test_session_factory() as verify_session:
            snapshot = (
                await verify_session.execute(
                    select(DviSnapshot).where(DviSnapshot.ro_number == "R1")
                )
            ).scalar_one()
            assert snapshot.ok is True
            assert snapshot.fetched_at is not None
            assert snapshot.severities == {
                CanonicalServiceKey.BRAKES_FRONT: Severity.YELLOW
            }

            ticket = (
                await verify_session.execute(
                    select(RepairOrder).where(RepairOrder.ro_number == "R1")
                )
            ).scalar_one()
            assert ticket.vin == "1FTFW1E64CFB09199"
            assert ticket.mileage == 87412

    async def test_records_failure_and_retries(
        self,
        db_session: AsyncSession,
        configured_shop: Shop,
        test_session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await _make_pending(db_session, configured_shop, "R1")

        mock_source = AsyncMock()
        mock_source.fetch_dvi.side_effect = DviFetchError("HTTP 500: boom")

        with (
            patch("src.scheduler.async_session", test_session_factory),
            patch("src.scheduler.create_dvi_source", return_value=mock_source),
        ):
            for _ in range(MAX_FETCH_ATTEMPTS + 1):
                await run_pending_dvi_fetches()

        assert mock_source.fetch_dvi.await_count == MAX_FETCH_ATTEMPTS

        async with test_session_factory() as verify_session:
            snapshot = (
                await verify_session.execute(
                    select(DviSnapshot).where(DviSnapshot.ro_number == "R1")
                )
            ).scalar_one()
            assert snapshot.ok is False
            assert snapshot.attempts == MAX_FETCH_ATTEMPTS
            assert snapshot.fetched_at is not None
            assert snapshot.error is not None
            assert "HTTP 500: boom" in snapshot.error

    async def test_unconfigured_shop_fails_without_http(
        self,
        db_session: AsyncSession,
        shop: Shop,
        test_session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await _make_pending(db_session, shop, "R1")

        with (
            patch("src.scheduler.async_session", test_session_factory),
            patch("src.shop.config.AUTOFLOW_DOMAIN", ""),
        ):
            await run_pending_dvi_fetches()

        async with test_session_factory() as verify_session:
            snapshot = (
                await verify_session.execute(
                    select(DviSnapshot).where(DviSnapshot.ro_number == "R1")
                )
            ).scalar_one()
            assert snapshot.attempts == 1
            assert snapshot.error is not None
            assert "not configured" in snapshot.error

    async def test_one_failure_does_not_block_others(
        self,
        db_session: AsyncSession,
        configured_shop: Shop,
        test_session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        await _make_pending(db_session, configured_shop, "R1", "R2")

        async def fetch(invoice: str) -> DviResult:
            if invoice == "R1":
                raise DviFetchError("HTTP 404: missing")
            return _make_result(invoice)

        mock_source = AsyncMock()
        mock_source.fetch_dvi.side_effect = fetch

        with (
            patch("src.scheduler.async_session", test_session_factory),
            patch("src.scheduler.create_dvi_source", return_value=mock_source),
        ):
            await run_pending_dvi_fetches()

        async with test_session_factory() as verify_session:
            snapshots = {
                s.ro_number: s
                for s in (await verify_session.execute(select(DviSnapshot)))
                .scalars()
                .all()
            }
            assert snapshots["R1"].ok is False
            assert snapshots["R1"].fetched_at is None
            assert snapshots["R2"].ok is True

    async def test_skips_when_nothing_pending(
        self,
        db_session: AsyncSession,
        test_session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        cache: TtlCache[DviResult] = TtlCache(60, clock=lambda: 0.0)

        with (
            patch("src.scheduler.async_session", test_session_factory),
            patch("src.scheduler.create_dvi_source") as factory,
        ):
            await run_pending_dvi_fetches(cache)

        factory.assert_not_called()
