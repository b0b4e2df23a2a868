from mvngraph.core.database import Base
from mvngraph.models.job import Job, Build, BuildResult
from mvngraph.models.artifact import MavenArtifactRecord, coordinate_key
from mvngraph.models.edges import (
    MavenDependencyEdge,
    MavenParentProjectEdge,
    GeneratedArtifactEdge,
    BuildUpstreamCause,
)

__all__ = [
    "Base",
    "Job",
    "Build",
    "BuildResult",
    "MavenArtifactRecord",
    "coordinate_key",
    "MavenDependencyEdge",
    "MavenParentProjectEdge",
    "GeneratedArtifactEdge",
    "BuildUpstreamCause",
]
