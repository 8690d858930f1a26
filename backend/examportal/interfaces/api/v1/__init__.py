"""
Exam Portal - API v1 Router
Aggregates all API endpoints
"""

from fastapi import APIRouter

from examportal.interfaces.api.v1.exams import router as exams_router
from examportal.interfaces.api.v1.health import router as health_router

api_router = APIRouter()

# Health check endpoints
api_router.include_router(
    health_router,
    prefix="/health",
    tags=["Health"],
)

# Exam endpoints
api_router.include_router(
    exams_router,
    prefix="/exam",
    tags=["Exam"],
)
