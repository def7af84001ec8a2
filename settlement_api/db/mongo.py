import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from settlement_api.core.config import settings

logger = logging.getLogger(__name__)

class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes()
    logger.info("Connected to MongoDB: %s", settings.DATABASE_NAME)

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes():
    """Create database indexes."""
    # Debt source lookups
    await mongodb.db["material_debts"].create_index([("site_group_id", 1), ("settlement_status", 1)])
    await mongodb.db["material_debts"].create_index("settlement_id")

    # Settlement indexes
    await mongodb.db["settlements"].create_index("settlement_code", unique=True)
    await mongodb.db["settlements"].create_index([("from_site_id", 1), ("to_site_id", 1), ("status", 1)])

    # Offset audit records
    await mongodb.db["settlement_offsets"].create_index("site_group_id")