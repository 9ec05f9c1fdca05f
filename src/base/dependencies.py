import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from src.base.db import async_session

logger = logging.getLogger(__name__)


async def get_session() -> AsyncGenerator[AsyncSession]:
    """One session per request, committed when the handler returns."""
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception as e:
            logger.warning("Rolling back request session: %s", type(e).__name__)
            await session.rollback()
            raise
