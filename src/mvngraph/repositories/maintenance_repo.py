"""Orphan reclamation and table statistics."""

from dataclasses import dataclass, field

from sqlalchemy import select, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from mvngraph.models.artifact import MavenArtifactRecord
from mvngraph.models.edges import (
    BuildUpstreamCause,
    GeneratedArtifactEdge,
    MavenDependencyEdge,
    MavenParentProjectEdge,
)
from mvngraph.models.job import Build, Job

ARTIFACT_EDGE_MODELS = (MavenDependencyEdge, MavenParentProjectEdge, GeneratedArtifactEdge)
ALL_MODELS = (Job, Build, MavenArtifactRecord, *ARTIFACT_EDGE_MODELS, BuildUpstreamCause)


@dataclass
class CleanupReport:
    """Rows reclaimed by one cleanup pass."""
    orphan_builds: int = 0
    orphan_edges: int = 0
    orphan_artifacts: int = 0
    vacuumed: bool = False
    table_sizes: dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return self.orphan_builds + self.orphan_edges + self.orphan_artifacts

    def to_dict(self) -> dict:
        return {
            "orphan_builds": self.orphan_builds,
            "orphan_edges": self.orphan_edges,
            "orphan_artifacts": self.orphan_artifacts,
            "vacuumed": self.vacuumed,
            "table_sizes": self.table_sizes,
        }


class MaintenanceRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _purge(self, stmt) -> int:
        result = await self.session.execute(stmt, execution_options={"synchronize_session": False})
        return result.rowcount

    async def delete_orphans(self) -> CleanupReport:
        report = CleanupReport()

        # Builds whose job row is gone
        report.orphan_builds = await self._purge(
            delete(Build).where(Build.job_id.not_in(select(Job.id)))
        )

        # Edges whose build row is gone
        live_builds = select(Build.id)
        for model in ARTIFACT_EDGE_MODELS:
            report.orphan_edges += await self._purge(
                delete(model).where(model.build_id.not_in(live_builds))
            )
        report.orphan_edges += await self._purge(
            delete(BuildUpstreamCause).where(
                or_(
                    BuildUpstreamCause.upstream_build_id.not_in(live_builds),
                    BuildUpstreamCause.downstream_build_id.not_in(live_builds),
                )
            )
        )

        # Coordinates no edge references anymore
        referenced = [select(model.maven_artifact_id) for model in ARTIFACT_EDGE_MODELS]
        report.orphan_artifacts = await self._purge(
            delete(MavenArtifactRecord).where(
                *[MavenArtifactRecord.id.not_in(q) for q in referenced]
            )
        )
        return report

    async def table_sizes(self) -> dict[str, int]:
        sizes = {}
        for model in ALL_MODELS:
            result = await self.session.execute(select(func.count()).select_from(model))
            sizes[model.__tablename__] = result.scalar_one()
        return sizes
