"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.gemini_routes import router as gemini_router
from app.api.routes.job_routes import router as job_router
from app.api.routes.candidate_routes import router as candidate_router
from app.api.routes.connectx_routes import router as connectx_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(gemini_router)
api_router.include_router(job_router)
api_router.include_router(candidate_router)
api_router.include_router(connectx_router)
