"""
API Routes
"""

from fastapi import APIRouter

from .connectors import router as connectors_router
from .projects import router as projects_router

api_router = APIRouter()

api_router.include_router(projects_router, prefix="/projects", tags=["Projects"])
api_router.include_router(connectors_router, prefix="/connectors", tags=["Connectors"])
