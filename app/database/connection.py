import logging
from motor.motor_asyncio import AsyncIOMotorClient
from app.core.config import settings

logger = logging.getLogger(__name__)

# This client will be initialized once during application startup
# and closed during shutdown using FastAPI's lifespan events.
client: AsyncIOMotorClient = None # type: ignore

async def connect_to_mongo():
    """Connect to MongoDB, set the global client instance and ensure indexes."""
    global client
    client = AsyncIOMotorClient(settings.MONGO_URI)
    db = client[settings.DB_NAME]
    await ensure_indexes(db)
    logger.info("MongoDB connected")

async def ensure_indexes(db):
    await db["users"].create_index("email", unique=True)
    # Storage ceilings count documents by owner
    for collection in ("saved_ideas", "scheduled_ideas", "insights", "scripts", "refinements"):
        await db[collection].create_index("user_id")

async def close_mongo_connection():
    """Close the MongoDB connection."""
    global client
    if client:
        client.close()
        logger.info("MongoDB disconnected")

def get_mongo_db():
    """
    Dependency function to get the MongoDB database object.
    This will be used in path operations.
    """
    if client is None:
        raise RuntimeError("MongoDB client is not initialized.")
    return client[settings.DB_NAME]
