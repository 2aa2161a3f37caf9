from fastapi import APIRouter

from app.api.routes import analytics, dashboard, exports, finance, health


api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(analytics.router)
api_router.include_router(dashboard.router)
api_router.include_router(finance.router)
api_router.include_router(exports.router)
