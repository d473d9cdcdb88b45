"""Top-level API router."""

from fastapi import APIRouter

from pmreport.api.routes.analytics import router as analytics_router
from pmreport.api.routes.exports import router as exports_router
from pmreport.api.routes.health import router as health_router
from pmreport.api.routes.me import router as me_router
from pmreport.api.routes.reports import router as reports_router

api_router = APIRouter()
api_router.include_router(health_router, tags=["health"])
api_router.include_router(me_router)
api_router.include_router(analytics_router)
api_router.include_router(reports_router)
api_router.include_router(exports_router)
