"""Artifact API endpoints — downstream lookup by coordinate."""

from fastapi import APIRouter, Depends

from mvngraph.api.deps import get_store
from mvngraph.core.auth import verify_api_key
from mvngraph.services.store import MavenGraphStore

router = APIRouter(prefix="/artifacts", tags=["artifacts"])


@router.get("/downstream")
async def list_downstream_jobs(
    group_id: str,
    artifact_id: str,
    version: str,
    type: str = "jar",
    base_version: str | None = None,
    classifier: str | None = None,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    """Jobs depending on the given coordinate (version or base version)."""
    jobs = await store.list_downstream_jobs_for_artifact(
        group_id, artifact_id, version, base_version, type, classifier
    )
    return {"downstream": jobs}
