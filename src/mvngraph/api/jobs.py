"""Job API endpoints — per-build listings, graph queries and lifecycle.

Job full names are hierarchical (``folder/app``) and therefore captured with
the ``path`` converter.
"""

from fastapi import APIRouter, Depends

from mvngraph.api.deps import get_store
from mvngraph.core.auth import verify_api_key
from mvngraph.schemas.maven import (
    DownstreamByArtifact,
    JobRename,
    MavenArtifactResponse,
    MavenDependencyResponse,
    UpstreamBuildsResponse,
)
from mvngraph.services.store import MavenGraphStore

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("/{job_full_name:path}/builds/{build_number}/dependencies", response_model=list[MavenDependencyResponse])
async def list_dependencies(
    job_full_name: str,
    build_number: int,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    dependencies = await store.list_dependencies(job_full_name, build_number)
    return [d.to_dict() for d in dependencies]


@router.get("/{job_full_name:path}/builds/{build_number}/generated", response_model=list[MavenArtifactResponse])
async def list_generated_artifacts(
    job_full_name: str,
    build_number: int,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    artifacts = await store.get_generated_artifacts(job_full_name, build_number)
    return [a.to_dict() for a in artifacts]


@router.get("/{job_full_name:path}/builds/{build_number}/upstream", response_model=UpstreamBuildsResponse)
async def list_upstream(
    job_full_name: str,
    build_number: int,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    """Builds that produced what this build consumes."""
    upstream = await store.list_upstream_jobs(job_full_name, build_number)
    return UpstreamBuildsResponse(job_full_name=job_full_name, build_number=build_number, upstream=upstream)


@router.get("/{job_full_name:path}/builds/{build_number}/transitive-upstream", response_model=UpstreamBuildsResponse)
async def list_transitive_upstream(
    job_full_name: str,
    build_number: int,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    upstream = await store.list_transitive_upstream_jobs(job_full_name, build_number)
    return UpstreamBuildsResponse(job_full_name=job_full_name, build_number=build_number, upstream=upstream)


@router.get("/{job_full_name:path}/builds/{build_number}/downstream-by-artifact", response_model=list[DownstreamByArtifact])
async def list_downstream_by_artifact(
    job_full_name: str,
    build_number: int,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    by_artifact = await store.list_downstream_jobs_by_artifact(job_full_name, build_number)
    return [
        DownstreamByArtifact(artifact=MavenArtifactResponse(**artifact.to_dict()), jobs=jobs)
        for artifact, jobs in sorted(by_artifact.items(), key=lambda item: item[0].sort_key())
    ]


@router.get("/{job_full_name:path}/builds/{build_number}/downstream")
async def list_downstream(
    job_full_name: str,
    build_number: int,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    """Downstream job names only."""
    return {"downstream": await store.list_downstream_jobs(job_full_name, build_number)}


@router.post("/rename")
async def rename_job(
    data: JobRename,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    await store.rename_job(data.old_full_name, data.new_full_name)
    return {"status": "renamed", "old_full_name": data.old_full_name, "new_full_name": data.new_full_name}


# Registered before the job route: both match "<job>/builds/<n>"
@router.delete("/{job_full_name:path}/builds/{build_number}")
async def delete_build(
    job_full_name: str,
    build_number: int,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    await store.delete_build(job_full_name, build_number)
    return {"status": "deleted", "job_full_name": job_full_name, "build_number": build_number}


@router.delete("/{job_full_name:path}")
async def delete_job(
    job_full_name: str,
    store: MavenGraphStore = Depends(get_store),
    _: str = Depends(verify_api_key),
):
    await store.delete_job(job_full_name)
    return {"status": "deleted", "job_full_name": job_full_name}
