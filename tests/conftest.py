# conftest.py
import asyncio
import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

# The app module builds its settings at import time; never reach for a real database in tests.
os.environ.setdefault("STORAGE_BACKEND", "memory")

import pytest
from fastapi.testclient import TestClient

from tourhub.adapters.mongo_mapper import new_id
from tourhub.config import Settings, get_settings
from tourhub.core.constants import REVIEW_APPROVED, TOUR_PUBLISHED
from tourhub.core.models import Reply, Review, Tour
from tourhub.dependencies import get_tour_store, get_user_store
from tourhub.main import create_app
from tourhub.repositories.memory import MemoryTourRepository, MemoryUserRepository
from tourhub.services.aggregates import recompute_aggregates

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def at(minutes: int) -> datetime:
    """Deterministic timestamp ``minutes`` after a fixed base."""
    return BASE_TIME + timedelta(minutes=minutes)


def make_review(
    rating: float,
    status: str = REVIEW_APPROVED,
    user: str | None = None,
    created_at: datetime | None = None,
    views: int = 0,
    likes: int = 0,
    replies: list[Reply] | None = None,
) -> Review:
    return Review(
        id=new_id(),
        user=user or new_id(),
        rating=rating,
        comment=f"{rating} stars",
        status=status,
        views=views,
        likes=likes,
        created_at=created_at or BASE_TIME,
        replies=list(replies or []),
    )


def make_tour(
    title: str = "Tour",
    author: str = "seller-1",
    reviews: list[Review] | None = None,
    tour_status: str = TOUR_PUBLISHED,
    images: list[str] | None = None,
    created_at: datetime | None = None,
    **kwargs,
) -> Tour:
    reviews = list(reviews or [])
    return Tour(
        id=new_id(),
        title=title,
        author=author,
        slug=title.lower().replace(" ", "-"),
        tour_status=tour_status,
        images=list(images or []),
        created_at=created_at or BASE_TIME,
        reviews=reviews,
        aggregates=recompute_aggregates(reviews),
        **kwargs,
    )


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        storage_backend="memory",
        pagination_default_limit=10,
        pagination_max_limit=100,
        pagination_memory_threshold=2000,
        structural_write_retries=3,
    )


@pytest.fixture
def tour_store() -> MemoryTourRepository:
    return MemoryTourRepository()


@pytest.fixture
def user_store() -> MemoryUserRepository:
    return MemoryUserRepository()


@pytest.fixture
def seed(tour_store: MemoryTourRepository) -> Callable[..., list[Tour]]:
    """Insert tours from synchronous tests."""

    def _seed(*tours: Tour) -> list[Tour]:
        async def _insert() -> None:
            for tour in tours:
                await tour_store.insert_tour(tour)

        asyncio.run(_insert())
        return list(tours)

    return _seed


@pytest.fixture
def api_client(
    test_settings: Settings,
    tour_store: MemoryTourRepository,
    user_store: MemoryUserRepository,
):
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_tour_store] = lambda: tour_store
    app.dependency_overrides[get_user_store] = lambda: user_store
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


def auth(user_id: str, *roles: str) -> dict[str, str]:
    """Headers the upstream authentication layer would forward."""
    headers = {"X-User-Id": user_id}
    if roles:
        headers["X-User-Roles"] = ",".join(roles)
    return headers
