"""Minimal MongoDB service owning the client and collection indexes."""

from __future__ import annotations

from typing import Any

from pymongo import ASCENDING, DESCENDING, AsyncMongoClient, IndexModel
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import OperationFailure

from tourhub.config import Settings
from tourhub.core.constants import (
    K_AUTHOR,
    K_CREATED_AT,
    K_REVIEWS,
    K_TOUR_STATUS,
    TOURS_COLLECTION,
    USERS_COLLECTION,
)
from tourhub.core.logging import get_logger

logger = get_logger(__name__)


class MongoService:
    """Thin wrapper around the async MongoDB client for collection and index management."""

    def __init__(
        self,
        settings: Settings,
        client: AsyncMongoClient[dict[str, Any]] | None = None,
    ):
        self.settings = settings
        self.client: AsyncMongoClient[dict[str, Any]] = client or AsyncMongoClient(
            settings.mongodb_url,
            tz_aware=True,
            serverSelectionTimeoutMS=settings.mongodb_timeout_ms,
        )
        self.db: AsyncDatabase[dict[str, Any]] = self.client[settings.mongodb_database]

        logger.info("MongoService initialized for database '%s'", settings.mongodb_database)

    @property
    def tours(self) -> AsyncCollection[dict[str, Any]]:
        return self.db[TOURS_COLLECTION]

    @property
    def users(self) -> AsyncCollection[dict[str, Any]]:
        return self.db[USERS_COLLECTION]

    async def aclose(self) -> None:
        """Close the client."""
        await self.client.close()

    async def ping(self) -> bool:
        """Return True if the server answers a ping."""
        try:
            await self.client.admin.command("ping")
        except Exception as exc:  # noqa: BLE001
            logger.warning("MongoDB ping failed: %s", exc)
            return False
        return True

    async def ensure_indexes(self) -> None:
        """Create the indexes the listing and review queries rely on."""

        async def _create(collection: AsyncCollection[dict[str, Any]], indexes: list[IndexModel]) -> None:
            try:
                await collection.create_indexes(indexes)
            except OperationFailure as exc:
                # Only ignore conflicting definitions of an existing index; otherwise re-raise
                if exc.code in (85, 86):
                    logger.warning("Index on '%s' already exists with other options: %s", collection.name, exc)
                else:
                    raise

        logger.info("Ensuring indexes for '%s' and '%s'", TOURS_COLLECTION, USERS_COLLECTION)
        await _create(
            self.tours,
            [
                IndexModel([(f"{K_REVIEWS}._id", ASCENDING)]),
                IndexModel([(f"{K_REVIEWS}.status", ASCENDING)]),
                IndexModel([(K_AUTHOR, ASCENDING)]),
                IndexModel([(K_TOUR_STATUS, ASCENDING), (K_CREATED_AT, DESCENDING)]),
            ],
        )
        await _create(
            self.users,
            [
                IndexModel([("email", ASCENDING)], unique=True),
                IndexModel([(K_CREATED_AT, DESCENDING)]),
            ],
        )


__all__ = ["MongoService"]
