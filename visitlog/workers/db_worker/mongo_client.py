"""
MongoDB client with connection pooling and health checks

Provides the shared connection pool used by the MongoDB-backed stores.
"""

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.server_api import ServerApi

from visitlog.config import get_settings

logger = logging.getLogger(__name__)


class MongoDBClient:
    """
    MongoDB client holder (one pool per process)

    Only the connection pool is shared; stores receive the database handle
    explicitly.
    """

    _instance: Optional[AsyncIOMotorClient] = None
    _db: Optional[AsyncIOMotorDatabase] = None

    @classmethod
    def get_client(cls) -> AsyncIOMotorClient:
        """
        Get or create the async MongoDB client

        Returns:
            AsyncIOMotorClient: MongoDB async client instance

        Raises:
            ValueError: If MONGODB_URI is not configured
        """
        if cls._instance is None:
            settings = get_settings()

            if not settings.mongodb_uri:
                raise ValueError("MONGODB_URI environment variable not set")

            cls._instance = AsyncIOMotorClient(
                settings.mongodb_uri,
                maxPoolSize=settings.mongodb_max_pool_size,
                minPoolSize=settings.mongodb_min_pool_size,
                maxIdleTimeMS=45000,  # Close idle connections after 45 seconds
                waitQueueTimeoutMS=10000,
                serverSelectionTimeoutMS=5000,
                retryWrites=True,
                w="majority",
                tz_aware=True,
                server_api=ServerApi("1"),
            )
            logger.info(
                f"MongoDB async client initialized (pool: {settings.mongodb_min_pool_size}-{settings.mongodb_max_pool_size})"
            )

        return cls._instance

    @classmethod
    def get_database(cls) -> AsyncIOMotorDatabase:
        """
        Get database instance

        Returns:
            AsyncIOMotorDatabase: MongoDB database instance
        """
        if cls._db is None:
            client = cls.get_client()
            settings = get_settings()
            cls._db = client[settings.mongodb_database]
            logger.info(f"Connected to database: {settings.mongodb_database}")

        return cls._db

    @classmethod
    async def health_check(cls) -> bool:
        """
        Perform async health check using ping command

        Returns:
            bool: True if connection is healthy, False otherwise
        """
        try:
            client = cls.get_client()
            await client.admin.command("ping")
            logger.info("MongoDB health check: OK")
            return True
        except Exception as e:
            logger.error(f"MongoDB health check failed: {e}")
            return False

    @classmethod
    async def close(cls) -> None:
        """Close MongoDB connections"""
        if cls._instance:
            cls._instance.close()
            cls._instance = None
            cls._db = None
            logger.info("MongoDB connection closed")
