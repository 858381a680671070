"""Health check endpoint."""

from fastapi import APIRouter

from tourhub.dependencies import SettingsDep, get_mongo_service
from tourhub.schemas.health import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Returns the health status of the API and its storage backend",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """Check API health and return status.

    Args:
        settings: Injected application settings.

    Returns:
        HealthResponse: Health status information.
    """
    if settings.storage_backend == "memory":
        storage = "memory"
    else:
        storage = "ok" if await get_mongo_service(settings).ping() else "unavailable"
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        environment=settings.environment,
        storage=storage,
    )
