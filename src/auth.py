from fastapi import Depends, Header, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.base.dependencies import get_session
from src.shop.models import Shop


async def find_shop_by_token(session: AsyncSession, token: str) -> Shop | None:
    token = token.strip()
    if not token:
        return None
    stmt = select(Shop).where(Shop.webhook_token == token)
    return (await session.execute(stmt)).scalar_one_or_none()


async def get_current_shop(
    x_shop_token: str = Header(),
    session: AsyncSession = Depends(get_session),
) -> Shop:
    if not x_shop_token.strip():
        raise HTTPException(status_code=400, detail="X-Shop-Token must not be empty")

    shop = await find_shop_by_token(session, x_shop_token)
    if shop is None:
        raise HTTPException(status_code=401, detail="Unknown shop token")
    return shop
