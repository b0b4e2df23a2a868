from mvngraph.graph.types import MavenArtifact, MavenDependency
from mvngraph.graph.upstream import UpstreamMemory, UpstreamWalker, representative_build_number

__all__ = [
    "MavenArtifact",
    "MavenDependency",
    "UpstreamMemory",
    "UpstreamWalker",
    "representative_build_number",
]
