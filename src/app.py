import logging
import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from src.base.cache import TtlCache
from src.customer.router import router as customer_router
from src.dvi.interface import DviResult
from src.ingest.router import router as webhook_router
from src.maintenance.router import router as maintenance_router
from src.scheduler import run_pending_dvi_fetches

logging.basicConfig(level=logging.INFO)

SCHEDULER_INTERVAL_MINUTES = int(
    os.environ.get("SHOPSYNC_SCHEDULER_INTERVAL_MINUTES", "5")
)
DVI_CACHE_TTL_SECONDS = int(os.environ.get("SHOPSYNC_DVI_CACHE_TTL_SECONDS", "3600"))


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    dvi_cache: TtlCache[DviResult] = TtlCache(DVI_CACHE_TTL_SECONDS)
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_pending_dvi_fetches,
        "interval",
        minutes=SCHEDULER_INTERVAL_MINUTES,
        id="run_pending_dvi_fetches",
        kwargs={"cache": dvi_cache},
    )
    scheduler.start()
    yield
    scheduler.shutdown()


app = FastAPI(title="ShopSync", lifespan=lifespan)
app.include_router(webhook_router)
app.include_router(customer_router)
app.include_router(maintenance_router)


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
