"""Repository for the user collection."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from bson import ObjectId
from pymongo.asynchronous.collection import AsyncCollection

from tourhub.core.constants import K_CREATED_AT, K_ID
from tourhub.core.models import SortSpec, utcnow
from tourhub.repositories.tour_repository import build_sort

# Credentials never leave the store.
USER_PROJECTION: dict[str, int] = {"password": 0, "refreshToken": 0}


class MongoUserRepository:
    """Read-mostly access to users for admin listings."""

    def __init__(self, collection: AsyncCollection[dict[str, Any]]):
        self._users = collection

    async def count(self, filters: Mapping[str, Any]) -> int:
        return await self._users.count_documents(dict(filters))

    async def find(
        self,
        filters: Mapping[str, Any],
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        cursor = self._users.find(dict(filters), USER_PROJECTION).sort(build_sort(sort))
        if skip:
            cursor = cursor.skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=None)

    async def insert_user(self, user: Mapping[str, Any]) -> str:
        doc = dict(user)
        doc.setdefault(K_ID, ObjectId())
        doc.setdefault(K_CREATED_AT, utcnow())
        await self._users.insert_one(doc)
        return str(doc[K_ID])
