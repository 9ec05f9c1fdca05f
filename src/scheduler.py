import logging
import traceback
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select

from src.base.cache import TtlCache
from src.base.db import async_session
from src.dvi import create_dvi_source
from src.dvi.interface import DviResult
from src.dvi.models import DviSnapshot
from src.dvi.snapshot import MAX_FETCH_ATTEMPTS, persist_dvi_result, record_dvi_failure
from src.shop.config import AutoflowConfig, resolve_autoflow_config
from src.shop.models import Shop

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _PendingDvi:
    """DTO for a snapshot waiting on its inspection sheet."""

    snapshot_id: UUID
    ro_number: str
    config: AutoflowConfig


async def run_pending_dvi_fetches(cache: TtlCache[DviResult] | None = None) -> None:
    """
    Fetch inspection sheets for snapshots marked pending by webhooks.

    Three phases:
    1. Collect pending snapshots with their shop's AutoFlow config (short DB session)
    2. Fetch each sheet (no DB session)
    3. Persist sheets and record failures (short DB session)

    One failing snapshot never stops the others.
    """
    # Phase 1: Collect pending snapshots
    async with async_session() as session:
        stmt = (
            select(DviSnapshot, Shop)
            .join(Shop, Shop.id == DviSnapshot.shop_id)
            .where(
                DviSnapshot.fetched_at.is_(None),
                DviSnapshot.attempts < MAX_FETCH_ATTEMPTS,
            )
            .order_by(DviSnapshot.created_at)
        )
        rows = (await session.execute(stmt)).all()
        pending = [
            _PendingDvi(
                snapshot_id=snapshot.id,
                ro_number=snapshot.ro_number,
                config=resolve_autoflow_config(shop),
            )
            for snapshot, shop in rows
        ]

    if cache is not None:
        cache.purge_expired()

    if not pending:
        return

    logger.info("Found %d DVI snapshots pending fetch", len(pending))

    # Phase 2: Fetch sheets
    fetched: list[tuple[_PendingDvi, DviResult]] = []
    failed: list[tuple[_PendingDvi, str]] = []

    for item in pending:
        try:
            source = create_dvi_source(item.config, cache)
            try:
                result = await source.fetch_dvi(item.ro_number)
            finally:
                await source.aclose()
            fetched.append((item, result))
        except Exception:
            failed.append((item, traceback.format_exc()[:2000]))
            logger.exception("DVI fetch for RO %s failed", item.ro_number)

    # Phase 3: Persist results
    async with async_session() as session:
        for item, result in fetched:
            snapshot = await session.get(DviSnapshot, item.snapshot_id)
            if snapshot is None:
                continue
            try:
                async with session.begin_nested():
                    await persist_dvi_result(session, snapshot, result)
            except Exception:
                logger.exception("Failed to persist DVI for RO %s", item.ro_number)
                await session.refresh(snapshot)
                record_dvi_failure(snapshot, traceback.format_exc()[:2000])

        for item, tb in failed:
            snapshot = await session.get(DviSnapshot, item.snapshot_id)
            if snapshot is not None:
                record_dvi_failure(snapshot, tb)

        await session.commit()

    logger.info(
        "DVI fetch completed: %d fetched, %d failed", len(fetched), len(failed)
    )
