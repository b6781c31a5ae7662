from fastapi import APIRouter

from src.app.leaderboard.router import router as leaderboard_router
from src.app.metrics.router import router as metrics_router

# Create the root API router
api_router = APIRouter()

# Include domain routers
api_router.include_router(leaderboard_router, prefix='/metrics/leaderboard', tags=['leaderboard'])
api_router.include_router(metrics_router, prefix='/metrics', tags=['metrics'])
