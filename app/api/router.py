from fastapi import APIRouter

from app.api.v1 import analytics, github, preferences, repositories, sync

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(sync.router)
api_router.include_router(analytics.router)
api_router.include_router(repositories.router)
api_router.include_router(github.router)
api_router.include_router(preferences.router)
