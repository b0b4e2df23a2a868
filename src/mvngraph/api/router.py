"""Main API router."""

from fastapi import APIRouter
from mvngraph.api.builds import router as builds_router
from mvngraph.api.jobs import router as jobs_router
from mvngraph.api.artifacts import router as artifacts_router
from mvngraph.api.admin import router as admin_router

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(builds_router)
api_router.include_router(jobs_router)
api_router.include_router(artifacts_router)
api_router.include_router(admin_router)
