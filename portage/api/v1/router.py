"""API v1 router aggregating all endpoints."""

from fastapi import APIRouter

from portage.api.v1 import children, health, reports

api_router = APIRouter()

# Health check
api_router.include_router(
    health.router,
    prefix="/health",
    tags=["health"],
)

# Children collection
api_router.include_router(
    children.router,
    prefix="/children",
    tags=["children"],
)

# Derived reports
api_router.include_router(
    reports.router,
    prefix="/children",
    tags=["reports"],
)
