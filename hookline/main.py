"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hookline import __version__
from hookline.api import deliveries, events, webhooks
from hookline.config import get_settings
from hookline.database import Base, engine

settings = get_settings()


def configure_logging():
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    # Startup: create tables if they do not exist yet
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="Outbound webhook delivery: signed fan-out, retries and delivery history",
    lifespan=lifespan,
)

# Register routers
app.include_router(webhooks.router, prefix="/api/v1")
app.include_router(deliveries.router, prefix="/api/v1")
app.include_router(events.router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "app": settings.app_name}
