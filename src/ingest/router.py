import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth import find_shop_by_token
from src.base.dependencies import get_session
from src.ingest.pipeline import ingest_event, parse_body, record_event
from src.ingest.signing import SIGNATURE_HEADERS, SIGNING_SECRET, verify_signature
from src.shop.models import Shop

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks/autoflow")


class WebhookAck(BaseModel):
    ok: bool = True
    shop_id: UUID
    event_id: UUID | None = None
    customer_id: UUID | None = None
    token_valid: bool | None = None


async def _get_token_shop(token: str, session: AsyncSession) -> Shop:
    if not token.strip():
        raise HTTPException(status_code=400, detail="Missing webhook token")
    shop = await find_shop_by_token(session, token)
    if shop is None:
        raise HTTPException(status_code=401, detail="Invalid webhook token")
    return shop


def _signature(request: Request) -> str:
    for header in SIGNATURE_HEADERS:
        value = request.headers.get(header)
        if value:
            return value
    return ""


@router.get("/{token}", response_model=WebhookAck, response_model_exclude_none=True)
async def check_webhook(
    token: str,
    ping: str | None = None,
    session: AsyncSession = Depends(get_session),
) -> WebhookAck:
    shop = await _get_token_shop(token, session)
    return WebhookAck(
        shop_id=shop.id, token_valid=True if ping is not None else None
    )


@router.post(
    "/{token}",
    response_model=WebhookAck,
    response_model_exclude_none=True,
    responses={500: {"description": "Event stored but could not be normalized"}},
)
async def receive_webhook(
    token: str,
    request: Request,
    session: AsyncSession = Depends(get_session),
) -> Any:
    shop = await _get_token_shop(token, session)

    raw = await request.body()
    if SIGNING_SECRET and not verify_signature(SIGNING_SECRET, raw, _signature(request)):
        raise HTTPException(status_code=401, detail="Invalid signature")

    payload = parse_body(raw)
    logger.info("Received AutoFlow webhook for shop %s (%d bytes)", shop.id, len(raw))
    event = await record_event(session, shop.id, raw, payload)
    event_id = event.id

    try:
        async with session.begin_nested():
            result = await ingest_event(session, shop.id, payload)
    except Exception as e:
        logger.exception("Failed to normalize webhook event %s", event_id)
        event.error = f"{type(e).__name__}: {e}"[:2000]
        await session.flush()
        return JSONResponse(
            status_code=500,
            content={"ok": False, "event_id": str(event_id), "error": str(e)},
        )

    event.customer_id = result.customer_id
    await session.flush()
    return WebhookAck(shop_id=shop.id, event_id=event_id, customer_id=result.customer_id)
