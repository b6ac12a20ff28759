from fastapi import APIRouter

from app.studiodesk.core.config import settings
from app.studiodesk.routers.health import router as health_router
from app.studiodesk.routers.lists import router as lists_router
from app.studiodesk.routers.metrics import router as metrics_router

api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(lists_router, tags=["lists"])
if settings.METRICS_ENABLED:
    api_router.include_router(metrics_router, tags=["ops"])
