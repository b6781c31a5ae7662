from fastapi import APIRouter

from src.app.router import api_router as app_router
from src.core.authentication.router import router as devices_router
from src.platform.router import api_router as platform_router

api_router = APIRouter()
# Platform routes stay unprefixed, load balancers probe /healthcheck directly
api_router.include_router(platform_router)
api_router.include_router(devices_router, prefix='/api/devices', tags=['devices'])
api_router.include_router(app_router, prefix='/api')
