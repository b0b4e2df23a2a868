"""Build API endpoints — facts recorded while a build runs."""

from fastapi import APIRouter, Depends

from mvngraph.api.deps import get_store
from mvngraph.core.auth import verify_api_key
from mvngraph.schemas.maven import (
    BuildCompletion,
    DependencyRecord,
    GeneratedArtifactRecord,
    ParentProjectRecord,
    UpstreamCauseRecord,
)
from mvngraph.services.store import MavenGraphStore

router = APIRouter(prefix="/builds", tags=["builds"])


@router.post("/dependencies")
async def record_dependency(
    data: DependencyRecord,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    """Record a dependency consumed by a build."""
    await store.record_dependency(
        data.job_full_name,
        data.build_number,
        data.group_id,
        data.artifact_id,
        data.version,
        data.type,
        data.scope,
        ignore_upstream_triggers=data.ignore_upstream_triggers,
        classifier=data.classifier,
        base_version=data.base_version,
    )
    return {"status": "recorded"}


@router.post("/parents")
async def record_parent_project(
    data: ParentProjectRecord,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    """Record the parent pom of a project built by a build."""
    await store.record_parent_project(
        data.job_full_name,
        data.build_number,
        data.parent_group_id,
        data.parent_artifact_id,
        data.parent_version,
        ignore_upstream_triggers=data.ignore_upstream_triggers,
    )
    return {"status": "recorded"}


@router.post("/generated")
async def record_generated_artifact(
    data: GeneratedArtifactRecord,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    """Record an artifact produced by a build."""
    await store.record_generated_artifact(
        data.job_full_name,
        data.build_number,
        data.group_id,
        data.artifact_id,
        data.version,
        data.type,
        data.base_version,
        repository_url=data.repository_url,
        skip_downstream_triggers=data.skip_downstream_triggers,
        extension=data.extension,
        classifier=data.classifier,
    )
    return {"status": "recorded"}


@router.post("/upstream-causes")
async def record_upstream_cause(
    data: UpstreamCauseRecord,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    await store.record_build_upstream_cause(
        data.upstream_job_name,
        data.upstream_build_number,
        data.downstream_job_name,
        data.downstream_build_number,
    )
    return {"status": "recorded"}


@router.post("/completion")
async def update_on_completion(
    data: BuildCompletion,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    """Store the result and timings of a completed build."""
    await store.update_build_on_completion(
        data.job_full_name,
        data.build_number,
        data.result_ordinal,
        data.start_time_ms,
        data.duration_ms,
    )
    return {"status": "updated"}
