"""
MongoDB connection management (Motor + Beanie).
"""

import logging
from typing import Optional

import certifi
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from dentalsync.core.config import DatabaseSettings
from dentalsync.core.exceptions import DatabaseError

from .models import DOCUMENT_MODELS

logger = logging.getLogger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_database: Optional[AsyncIOMotorDatabase] = None


def create_client(settings: DatabaseSettings) -> AsyncIOMotorClient:
    """Create a Motor client; TLS is enabled only for Atlas SRV URIs."""
    if settings.uri.startswith("mongodb+srv://"):
        return AsyncIOMotorClient(
            settings.uri,
            serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
            tls=True,
            tlsCAFile=certifi.where(),
            tlsAllowInvalidCertificates=False,
        )
    return AsyncIOMotorClient(
        settings.uri,
        serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
    )


async def init_database(settings: DatabaseSettings) -> AsyncIOMotorDatabase:
    """Connect and register the Beanie document models.

    Raises:
        DatabaseError: the connection or model registration failed
    """
    global _client, _database
    try:
        client = create_client(settings)
        database = client[settings.db_name]
        await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    except Exception as exc:
        logger.error(f"Database connection failed: {exc}", exc_info=True)
        raise DatabaseError(f"Could not initialize database '{settings.db_name}': {exc}") from exc

    _client, _database = client, database
    logger.info(f"Database connection established ({settings.db_name})")
    return database


def get_database() -> AsyncIOMotorDatabase:
    """The database opened by ``init_database``."""
    if _database is None:
        raise DatabaseError("Database has not been initialized")
    return _database


async def ping(settings: DatabaseSettings) -> bool:
    """Round-trip to the server, used by the readiness probe."""
    if _client is not None:
        await _client.admin.command("ping")
        return True

    client = create_client(settings)
    try:
        await client.admin.command("ping")
    finally:
        client.close()
    return True


def close_database() -> None:
    global _client, _database
    if _client is not None:
        _client.close()
        logger.info("Database connection closed")
    _client, _database = None, None
