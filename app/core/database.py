import logging
from typing import Optional

from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient

from app.core.config import settings
from app.schemas.otp import OtpRecord

logger = logging.getLogger(__name__)

# Global client
client: Optional[AsyncIOMotorClient] = None


async def init_db():
    global client

    client = AsyncIOMotorClient(settings.MONGO_URI)

    db_name = settings.MONGO_DB_NAME or settings.MONGO_URI.split("/")[-1].split("?")[0]
    db = client[db_name]

    document_models = [
        OtpRecord,
    ]

    await init_beanie(database=db, document_models=document_models)
    logger.info(f"✅ Database '{db_name}' connected successfully!")


async def close_db():
    if client:
        client.close()

