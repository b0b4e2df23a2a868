"""Admin API endpoints — maintenance and diagnostics."""

from fastapi import APIRouter, Depends, HTTPException

from mvngraph.api.deps import get_store
from mvngraph.core.auth import verify_api_key
from mvngraph.daemon.scheduler import list_jobs
from mvngraph.services.store import MavenGraphStore

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/cleanup")
async def cleanup(
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    """Run a cleanup pass now."""
    report = await store.cleanup()
    if report is None:
        raise HTTPException(500, "Cleanup failed, see daemon logs")
    return report.to_dict()


@router.get("/info")
async def info(
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    return {
        "store": await store.to_pretty_string(),
        "production_grade": store.is_enough_production_grade_for_the_workload(),
        "scheduler_jobs": list_jobs(),
    }
