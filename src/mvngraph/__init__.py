"""mvngraph — Maven dependency provenance across CI builds."""

__version__ = "0.1.0"

from mvngraph.graph.types import MavenArtifact, MavenDependency
from mvngraph.graph.upstream import UpstreamMemory
from mvngraph.services.store import MavenGraphStore

__all__ = ["MavenGraphStore", "MavenArtifact", "MavenDependency", "UpstreamMemory", "__version__"]
