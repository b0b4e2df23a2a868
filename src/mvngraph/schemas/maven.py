"""Pydantic schemas for the HTTP surface of the store."""

from pydantic import BaseModel, Field


class BuildRef(BaseModel):
    job_full_name: str
    build_number: int = Field(ge=1)


class DependencyRecord(BuildRef):
    group_id: str
    artifact_id: str
    version: str
    type: str = "jar"
    scope: str = "compile"
    classifier: str | None = None
    base_version: str | None = None
    ignore_upstream_triggers: bool = False


class ParentProjectRecord(BuildRef):
    parent_group_id: str
    parent_artifact_id: str
    parent_version: str
    ignore_upstream_triggers: bool = False


class GeneratedArtifactRecord(BuildRef):
    group_id: str
    artifact_id: str
    version: str
    type: str = "jar"
    base_version: str | None = None
    repository_url: str | None = None
    extension: str | None = None
    classifier: str | None = None
    skip_downstream_triggers: bool = False


class UpstreamCauseRecord(BaseModel):
    upstream_job_name: str
    upstream_build_number: int = Field(ge=1)
    downstream_job_name: str
    downstream_build_number: int = Field(ge=1)


class BuildCompletion(BuildRef):
    result_ordinal: int = Field(ge=0)
    start_time_ms: int = Field(ge=0)
    duration_ms: int = Field(ge=0)


class JobRename(BaseModel):
    old_full_name: str
    new_full_name: str


class MavenArtifactResponse(BaseModel):
    group_id: str
    artifact_id: str
    version: str
    type: str
    base_version: str | None = None
    classifier: str | None = None
    extension: str | None = None
    repository_url: str | None = None


class MavenDependencyResponse(MavenArtifactResponse):
    scope: str | None = None
    ignore_upstream_triggers: bool = False


class DownstreamByArtifact(BaseModel):
    artifact: MavenArtifactResponse
    jobs: list[str]


class UpstreamBuildsResponse(BaseModel):
    job_full_name: str
    build_number: int
    upstream: dict[str, int]
