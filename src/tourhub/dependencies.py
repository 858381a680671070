"""FastAPI dependency injection utilities."""

from typing import TYPE_CHECKING, Annotated

from fastapi import Depends, Request

from tourhub.config import Settings, get_settings
from tourhub.core.models import Identity
from tourhub.core.security import ensure_identity, identity_from_request
from tourhub.repositories.base import TourStore, UserStore
from tourhub.services.review_service import ReviewService
from tourhub.services.tour_service import TourService
from tourhub.services.user_service import UserService

if TYPE_CHECKING:
    from tourhub.services.mongo_service import MongoService

# Common dependencies that can be injected into route handlers
SettingsDep = Annotated[Settings, Depends(get_settings)]


# Module-level cache for MongoService singleton
_mongo_service_cache: "MongoService | None" = None


def get_mongo_service(settings: Annotated["Settings", Depends(get_settings)]) -> "MongoService":
    """Get or create a cached MongoService instance.

    Returns:
        MongoService instance.
    """
    global _mongo_service_cache

    if _mongo_service_cache is None:
        from tourhub.services.mongo_service import MongoService

        _mongo_service_cache = MongoService(settings)

    return _mongo_service_cache


async def close_mongo_service() -> None:
    """Close the cached client, if one was created."""
    global _mongo_service_cache

    if _mongo_service_cache is not None:
        await _mongo_service_cache.aclose()
        _mongo_service_cache = None


# Module-level cache for the stores; the memory backend must outlive a request
_tour_store_cache: TourStore | None = None
_user_store_cache: UserStore | None = None


def get_tour_store(settings: Annotated["Settings", Depends(get_settings)]) -> TourStore:
    """Get the tour store for the configured backend.

    Returns:
        TourStore instance.
    """
    global _tour_store_cache

    if _tour_store_cache is None:
        if settings.storage_backend == "memory":
            from tourhub.repositories.memory import MemoryTourRepository

            _tour_store_cache = MemoryTourRepository()
        else:
            from tourhub.repositories.tour_repository import MongoTourRepository

            _tour_store_cache = MongoTourRepository(get_mongo_service(settings).tours)

    return _tour_store_cache


def get_user_store(settings: Annotated["Settings", Depends(get_settings)]) -> UserStore:
    """Get the user store for the configured backend.

    Returns:
        UserStore instance.
    """
    global _user_store_cache

    if _user_store_cache is None:
        if settings.storage_backend == "memory":
            from tourhub.repositories.memory import MemoryUserRepository

            _user_store_cache = MemoryUserRepository()
        else:
            from tourhub.repositories.user_repository import MongoUserRepository

            _user_store_cache = MongoUserRepository(get_mongo_service(settings).users)

    return _user_store_cache


# Services hold no state beyond their store, so one is built per request.
def get_tour_service(
    settings: Annotated["Settings", Depends(get_settings)],
    store: Annotated[TourStore, Depends(get_tour_store)],
) -> TourService:
    return TourService(settings, store)


def get_review_service(
    settings: Annotated["Settings", Depends(get_settings)],
    store: Annotated[TourStore, Depends(get_tour_store)],
) -> ReviewService:
    return ReviewService(settings, store)


def get_user_service(
    settings: Annotated["Settings", Depends(get_settings)],
    store: Annotated[UserStore, Depends(get_user_store)],
) -> UserService:
    return UserService(settings, store)


def get_optional_identity(request: Request) -> Identity | None:
    """Caller identity if the authentication layer supplied one."""
    return identity_from_request(request)


def get_identity(identity: Annotated[Identity | None, Depends(get_optional_identity)]) -> Identity:
    """Caller identity; rejects anonymous requests with 401."""
    return ensure_identity(identity)


# Type aliases for dependency injection
TourServiceDep = Annotated[TourService, Depends(get_tour_service)]
ReviewServiceDep = Annotated[ReviewService, Depends(get_review_service)]
UserServiceDep = Annotated[UserService, Depends(get_user_service)]
OptionalIdentityDep = Annotated[Identity | None, Depends(get_optional_identity)]
IdentityDep = Annotated[Identity, Depends(get_identity)]
