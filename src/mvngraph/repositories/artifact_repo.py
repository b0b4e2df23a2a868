"""Maven coordinate and edge repository."""

from __future__ import annotations
from datetime import datetime

from sqlalchemy import select, and_, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from mvngraph.core.errors import InconsistentError
from mvngraph.graph.types import MavenArtifact, MavenDependency, sort_artifacts
from mvngraph.models.artifact import MavenArtifactRecord, coordinate_key
from mvngraph.models.edges import (
    BuildUpstreamCause,
    GeneratedArtifactEdge,
    MavenDependencyEdge,
    MavenParentProjectEdge,
)
from mvngraph.models.job import Build, Job
from mvngraph.repositories.upsert import insert_ignore, upsert

# Edges through which a build consumes a coordinate
CONSUMER_EDGE_MODELS = (MavenDependencyEdge, MavenParentProjectEdge)


def coordinates_match(consumed, produced):
    """SQL predicate: same g/a/type/classifier and overlapping {version, base_version}."""
    return and_(
        produced.group_id == consumed.group_id,
        produced.artifact_id == consumed.artifact_id,
        produced.type == consumed.type,
        produced.classifier.is_not_distinct_from(consumed.classifier),
        or_(
            produced.version == consumed.version,
            produced.base_version == consumed.version,
            produced.version == consumed.base_version,
            produced.base_version == consumed.base_version,
        ),
    )


class ArtifactRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_or_create(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        type: str,
        base_version: str | None = None,
        classifier: str | None = None,
    ) -> int:
        key = coordinate_key(group_id, artifact_id, version, base_version, type, classifier)
        query = select(MavenArtifactRecord.id).where(MavenArtifactRecord.coordinate_key == key)

        existing = (await self.session.execute(query)).scalar_one_or_none()
        if existing is not None:
            return existing

        await insert_ignore(
            self.session,
            MavenArtifactRecord,
            {
                "coordinate_key": key,
                "group_id": group_id,
                "artifact_id": artifact_id,
                "version": version,
                "base_version": base_version,
                "type": type,
                "classifier": classifier,
            },
        )
        created = (await self.session.execute(query)).scalar_one_or_none()
        if created is None:
            raise InconsistentError(f"Maven artifact {key} vanished right after its creation")
        return created

    # ─── Writes ───

    async def record_dependency(self, build_id: int, maven_artifact_id: int, scope: str, ignore_upstream_triggers: bool) -> None:
        await upsert(
            self.session,
            MavenDependencyEdge,
            {"build_id": build_id, "maven_artifact_id": maven_artifact_id},
            {"scope": scope, "ignore_upstream_triggers": ignore_upstream_triggers},
        )

    async def record_parent_project(self, build_id: int, maven_artifact_id: int, ignore_upstream_triggers: bool) -> None:
        await upsert(
            self.session,
            MavenParentProjectEdge,
            {"build_id": build_id, "maven_artifact_id": maven_artifact_id},
            {"ignore_upstream_triggers": ignore_upstream_triggers},
        )

    async def record_generated_artifact(
        self,
        build_id: int,
        maven_artifact_id: int,
        repository_url: str | None,
        extension: str | None,
        skip_downstream_triggers: bool,
    ) -> None:
        await upsert(
            self.session,
            GeneratedArtifactEdge,
            {"build_id": build_id, "maven_artifact_id": maven_artifact_id},
            {
                "repository_url": repository_url,
                "extension": extension,
                "skip_downstream_triggers": skip_downstream_triggers,
            },
        )

    async def record_upstream_cause(self, upstream_build_id: int, downstream_build_id: int) -> None:
        await upsert(
            self.session,
            BuildUpstreamCause,
            {"upstream_build_id": upstream_build_id, "downstream_build_id": downstream_build_id},
            {},
        )

    # ─── Direct listings ───

    async def list_dependencies(self, job_full_name: str, build_number: int) -> list[MavenDependency]:
        result = await self.session.execute(
            select(MavenArtifactRecord, MavenDependencyEdge)
            .join(MavenDependencyEdge, MavenDependencyEdge.maven_artifact_id == MavenArtifactRecord.id)
            .join(Build, Build.id == MavenDependencyEdge.build_id)
            .join(Job, Job.id == Build.job_id)
            .where(Job.full_name == job_full_name, Build.number == build_number)
        )
        return sort_artifacts(
            MavenDependency(
                group_id=record.group_id,
                artifact_id=record.artifact_id,
                version=record.version,
                type=record.type,
                base_version=record.base_version,
                classifier=record.classifier,
                scope=edge.scope,
                ignore_upstream_triggers=edge.ignore_upstream_triggers,
            )
            for record, edge in result.all()
        )

    async def list_parent_projects(self, job_full_name: str, build_number: int) -> list[MavenArtifact]:
        result = await self.session.execute(
            select(MavenArtifactRecord)
            .join(MavenParentProjectEdge, MavenParentProjectEdge.maven_artifact_id == MavenArtifactRecord.id)
            .join(Build, Build.id == MavenParentProjectEdge.build_id)
            .join(Job, Job.id == Build.job_id)
            .where(Job.full_name == job_full_name, Build.number == build_number)
        )
        return sort_artifacts(
            MavenArtifact(
                group_id=record.group_id,
                artifact_id=record.artifact_id,
                version=record.version,
                type=record.type,
            )
            for record in result.scalars().all()
        )

    async def list_generated_artifacts(
        self,
        job_full_name: str,
        build_number: int,
        include_skipped: bool = True,
    ) -> list[MavenArtifact]:
        query = (
            select(MavenArtifactRecord, GeneratedArtifactEdge)
            .join(GeneratedArtifactEdge, GeneratedArtifactEdge.maven_artifact_id == MavenArtifactRecord.id)
            .join(Build, Build.id == GeneratedArtifactEdge.build_id)
            .join(Job, Job.id == Build.job_id)
            .where(Job.full_name == job_full_name, Build.number == build_number)
        )
        if not include_skipped:
            query = query.where(GeneratedArtifactEdge.skip_downstream_triggers.is_(False))
        result = await self.session.execute(query)
        return sort_artifacts(
            MavenArtifact(
                group_id=record.group_id,
                artifact_id=record.artifact_id,
                version=record.version,
                type=record.type,
                base_version=record.base_version,
                classifier=record.classifier,
                extension=edge.extension,
                repository_url=edge.repository_url,
            )
            for record, edge in result.all()
        )

    # ─── Trigger-oriented queries ───

    async def list_consumer_jobs(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        base_version: str | None,
        type: str,
        classifier: str | None,
    ) -> set[str]:
        """Jobs with some build consuming the coordinate without ignoring upstream triggers."""
        versions = [v for v in (version, base_version) if v]
        classifier_clause = (
            MavenArtifactRecord.classifier.is_(None)
            if classifier is None
            else MavenArtifactRecord.classifier == classifier
        )
        jobs: set[str] = set()
        for edge_model in CONSUMER_EDGE_MODELS:
            result = await self.session.execute(
                select(Job.full_name)
                .distinct()
                .join(Build, Build.job_id == Job.id)
                .join(edge_model, edge_model.build_id == Build.id)
                .join(MavenArtifactRecord, MavenArtifactRecord.id == edge_model.maven_artifact_id)
                .where(
                    MavenArtifactRecord.group_id == group_id,
                    MavenArtifactRecord.artifact_id == artifact_id,
                    MavenArtifactRecord.type == type,
                    classifier_clause,
                    or_(
                        MavenArtifactRecord.version.in_(versions),
                        MavenArtifactRecord.base_version.in_(versions),
                    ),
                    edge_model.ignore_upstream_triggers.is_(False),
                )
            )
            jobs.update(result.scalars().all())
        return jobs

    async def list_upstream_builds(self, job_full_name: str, build_number: int) -> dict[str, int]:
        """For every coordinate the build consumes, the build of another job that produced it last."""
        consumer_build = aliased(Build)
        consumer_job = aliased(Job)
        consumed = aliased(MavenArtifactRecord)
        produced = aliased(MavenArtifactRecord)
        producer_build = aliased(Build)
        producer_job = aliased(Job)

        latest: dict[int, tuple[tuple[datetime, int], str, int]] = {}
        for edge_model in CONSUMER_EDGE_MODELS:
            result = await self.session.execute(
                select(
                    consumed.id,
                    producer_job.full_name,
                    producer_build.number,
                    producer_build.start_time,
                )
                .select_from(edge_model)
                .join(consumer_build, consumer_build.id == edge_model.build_id)
                .join(consumer_job, consumer_job.id == consumer_build.job_id)
                .join(consumed, consumed.id == edge_model.maven_artifact_id)
                .join(produced, coordinates_match(consumed, produced))
                .join(GeneratedArtifactEdge, GeneratedArtifactEdge.maven_artifact_id == produced.id)
                .join(producer_build, producer_build.id == GeneratedArtifactEdge.build_id)
                .join(producer_job, producer_job.id == producer_build.job_id)
                .where(
                    consumer_job.full_name == job_full_name,
                    consumer_build.number == build_number,
                    edge_model.ignore_upstream_triggers.is_(False),
                    GeneratedArtifactEdge.skip_downstream_triggers.is_(False),
                    producer_job.id != consumer_job.id,
                )
            )
            for consumed_id, producer_name, producer_number, start_time in result.all():
                recency = (start_time or datetime.min, producer_number)
                current = latest.get(consumed_id)
                if current is None or recency > current[0]:
                    latest[consumed_id] = (recency, producer_name, producer_number)

        upstream: dict[str, int] = {}
        for _, producer_name, producer_number in latest.values():
            if producer_number > upstream.get(producer_name, 0):
                upstream[producer_name] = producer_number
        return upstream
