from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from lendbook.core.config import settings
from lendbook.core.logging import get_logger

logger = get_logger(__name__)

class MongoDatabase:
    """MongoDB connection manager."""

    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

mongodb = MongoDatabase()

async def connect_to_mongo():
    """Connect to MongoDB."""
    mongodb.client = AsyncIOMotorClient(settings.MONGODB_URL, tz_aware=True)
    mongodb.db = mongodb.client[settings.DATABASE_NAME]

    await create_indexes(mongodb.db)
    logger.info("Connected to MongoDB database %s", settings.DATABASE_NAME)

async def close_mongo_connection():
    """Disconnect from MongoDB."""
    if mongodb.client is not None:
        mongodb.client.close()
    logger.info("Disconnected from MongoDB")

async def create_indexes(db: AsyncIOMotorDatabase):
    """Create database indexes."""
    # Account directory: unique display name and contact address
    await db["users"].create_index("username", unique=True)
    await db["users"].create_index("email", unique=True)
    await db["users"].create_index("phone_number")

    # Loan lookups by both identity forms
    await db["loans"].create_index("lender_id")
    await db["loans"].create_index("borrower_id")
    await db["loans"].create_index("borrower_name")

def get_db() -> AsyncIOMotorDatabase:
    """Get database instance."""
    return mongodb.db
