from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.base.models import utcnow
from src.customer.upsert import (
    close_customer,
    upsert_customer,
    upsert_ticket,
    upsert_vehicle,
)
from src.dvi.severity import SeverityMap, merge_severities
from src.dvi.snapshot import mark_dvi_pending, merge_inline_findings
from src.ingest.extraction import extract, extract_inline_findings
from src.ingest.models import WebhookEvent

logger = logging.getLogger(__name__)

PROVIDER = "autoflow"

# Terminal events after which the customer drops off the open list.
CLOSE_EVENTS = frozenset(
    {
        "dvi_signoff",
        "dvi.signoff",
        "dvi_completed",
        "dvi.completed",
        "work_completed",
        "ticket_closed",
        "ticket.closed",
        "close",
        "closed",
    }
)

_DVI_PHASES = ("signoff", "complete", "update")


@dataclass(frozen=True)
class IngestResult:
    customer_id: UUID
    vehicle_id: UUID | None = None
    repair_order_id: UUID | None = None
    closed: bool = False
    dvi_pending: bool = False
    severities: SeverityMap = field(default_factory=dict)


def _strip_nul(value: Any) -> Any:
    # Postgres text and jsonb columns reject U+0000.
    if isinstance(value, str):
        return value.replace("\x00", "")
    if isinstance(value, dict):
        return {_strip_nul(k): _strip_nul(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_strip_nul(v) for v in value]
    return value


def parse_body(raw: bytes) -> Any:
    """Parse a webhook body; anything that is not JSON becomes ``None``."""
    if not raw.strip():
        return None
    try:
        return _strip_nul(json.loads(raw))
    except ValueError:
        return None


def is_close_event(event_name: str | None) -> bool:
    return (event_name or "").strip().lower() in CLOSE_EVENTS


def is_dvi_event(event_name: str | None) -> bool:
    name = (event_name or "").lower()
    return "dvi" in name and any(phase in name for phase in _DVI_PHASES)


async def record_event(
    session: AsyncSession, shop_id: UUID, raw: bytes, payload: Any
) -> WebhookEvent:
    """Store the delivery before any normalization so it can be replayed."""
    event = WebhookEvent(
        shop_id=shop_id,
        provider=PROVIDER,
        event_name=extract(payload).event_name,
        payload=payload,
        raw=_strip_nul(raw.decode("utf-8", errors="replace")),
        received_at=utcnow(),
    )
    session.add(event)
    await session.flush()
    return event


async def ingest_event(session: AsyncSession, shop_id: UUID, payload: Any) -> IngestResult:
    """
    Normalize one event into customer, vehicle and repair-order rows.

    An event without any usable field still yields a customer row. Store
    errors propagate unchanged; nothing is retried here.
    """
    fields = extract(payload)

    customer_id = await upsert_customer(session, shop_id, fields)

    vehicle_id: UUID | None = None
    if fields.vin:
        vehicle_id = await upsert_vehicle(
            session,
            shop_id,
            fields.vin,
            fields.vehicle_meta,
            customer_id=customer_id,
            customer_external_id=fields.external_id,
            mileage=fields.mileage,
        )

    repair_order_id: UUID | None = None
    if fields.ro_number:
        repair_order_id = await upsert_ticket(
            session,
            shop_id,
            fields.ro_number,
            vin=fields.vin,
            mileage=fields.mileage,
            status=fields.ticket_status,
            customer_id=customer_id,
            customer_external_id=fields.external_id,
            vehicle_id=vehicle_id,
        )

    closed = is_close_event(fields.event_name)
    if closed:
        await close_customer(session, customer_id)

    dvi_pending = bool(fields.ro_number) and is_dvi_event(fields.event_name)
    if dvi_pending and fields.ro_number:
        await mark_dvi_pending(session, shop_id, fields.ro_number)

    severities: SeverityMap = {}
    findings = extract_inline_findings(payload)
    if findings and fields.ro_number:
        severities = await merge_inline_findings(
            session, shop_id, fields.ro_number, findings
        )
    elif findings:
        severities = merge_severities(findings)

    logger.info(
        "Ingested %s event for shop %s: customer=%s vin=%s ro=%s",
        fields.event_name or "unnamed",
        shop_id,
        customer_id,
        fields.vin,
        fields.ro_number,
    )
    return IngestResult(
        customer_id=customer_id,
        vehicle_id=vehicle_id,
        repair_order_id=repair_order_id,
        closed=closed,
        dvi_pending=dvi_pending,
        severities=severities,
    )
