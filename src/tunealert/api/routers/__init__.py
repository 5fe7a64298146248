"""API routers."""

from fastapi import APIRouter

from tunealert.api.routers import cron, health, notifications, releases

api_router = APIRouter()
api_router.include_router(cron.router)
api_router.include_router(health.router)
api_router.include_router(notifications.router)
api_router.include_router(releases.router)

__all__ = ["api_router"]
