import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from app.core.config import settings
from app.core.plans import limit_table
from app.database.connection import connect_to_mongo, close_mongo_connection
from app.integrations.llm_client import initialize_llm_client
from app.services.quota.windows import resolve_timezone

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Context Manager for FastAPI application lifespan events.
    Validates quota configuration, then opens MongoDB on startup and closes it on shutdown.
    """
    # Misconfigured limits must stop the boot, not fail a request later
    limit_table.validate()
    resolve_timezone(settings.QUOTA_TIMEZONE)
    logger.info(f"Quota limits loaded (fail_open={settings.QUOTA_FAIL_OPEN}, timezone={settings.QUOTA_TIMEZONE})")

    await connect_to_mongo()
    initialize_llm_client()
    yield # Application will run and handle requests here
    await close_mongo_connection()
