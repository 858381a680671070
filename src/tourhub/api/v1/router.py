"""Main API v1 router that combines all endpoint routers."""

from fastapi import APIRouter

from tourhub.api.v1.endpoints import health, reviews, tours, users

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router)
api_router.include_router(tours.router)
api_router.include_router(reviews.router)
api_router.include_router(users.router)
