import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api import courts, health, webhooks
from app.config import settings
from app.models.database import init_db

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    await init_db()
    logger.info(
        f"Database ready ({settings.database_url}), facility timezone {settings.timezone}"
    )
    if settings.exactly_once_messages:
        logger.info("Display messages are claimed with conditional updates")

    yield


app = FastAPI(
    title="BayDisplay",
    description="MATCHi webhook receiver and bay display message service",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(webhooks.router)
app.include_router(courts.router)
