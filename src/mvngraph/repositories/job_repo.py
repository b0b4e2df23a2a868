"""Job and build repository — data access layer."""

from datetime import datetime

from sqlalchemy import select, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from mvngraph.core.errors import InconsistentError
from mvngraph.models.edges import (
    BuildUpstreamCause,
    GeneratedArtifactEdge,
    MavenDependencyEdge,
    MavenParentProjectEdge,
)
from mvngraph.models.job import Build, BuildResult, Job
from mvngraph.repositories.upsert import insert_ignore

BUILD_EDGE_MODELS = (MavenDependencyEdge, MavenParentProjectEdge, GeneratedArtifactEdge)

# Bulk deletes never need to reconcile loaded ORM objects
BULK = {"synchronize_session": False}


class JobRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_name(self, full_name: str) -> Job | None:
        result = await self.session.execute(select(Job).where(Job.full_name == full_name))
        return result.scalar_one_or_none()

    async def get_or_create(self, full_name: str) -> Job:
        job = await self.get_by_name(full_name)
        if job is not None:
            return job
        await insert_ignore(self.session, Job, {"full_name": full_name, "created_at": datetime.utcnow()})
        job = await self.get_by_name(full_name)
        if job is None:
            raise InconsistentError(f"Job '{full_name}' vanished right after its creation")
        return job

    async def get_build(self, full_name: str, number: int) -> Build | None:
        result = await self.session.execute(
            select(Build)
            .join(Job, Build.job_id == Job.id)
            .where(Job.full_name == full_name, Build.number == number)
        )
        return result.scalar_one_or_none()

    async def get_or_create_build(self, full_name: str, number: int) -> Build:
        job = await self.get_or_create(full_name)
        result = await self.session.execute(
            select(Build).where(Build.job_id == job.id, Build.number == number)
        )
        build = result.scalar_one_or_none()
        if build is not None:
            return build
        await insert_ignore(
            self.session,
            Build,
            {"job_id": job.id, "number": number, "created_at": datetime.utcnow()},
        )
        result = await self.session.execute(
            select(Build).where(Build.job_id == job.id, Build.number == number)
        )
        build = result.scalar_one_or_none()
        if build is None:
            raise InconsistentError(f"Build {full_name}#{number} vanished right after its creation")
        return build

    async def get_last_completed_build_number(self, full_name: str) -> int | None:
        result = await self.session.execute(
            select(Job.last_build_number).where(Job.full_name == full_name)
        )
        return result.scalar_one_or_none()

    async def update_build_on_completion(
        self,
        full_name: str,
        number: int,
        result_ordinal: int,
        start_time: datetime,
        duration_ms: int,
    ) -> Build:
        build = await self.get_or_create_build(full_name, number)
        build.result_id = result_ordinal
        build.start_time = start_time
        build.duration_ms = duration_ms

        job = await self.session.get(Job, build.job_id)
        if job is None:
            raise InconsistentError(f"Build {full_name}#{number} references a missing job")
        if job.last_build_number is None or number >= job.last_build_number:
            job.last_build_number = number
        if result_ordinal == BuildResult.SUCCESS and (
            job.last_successful_build_number is None or number >= job.last_successful_build_number
        ):
            job.last_successful_build_number = number
        await self.session.flush()
        return build

    async def rename(self, job: Job, new_full_name: str) -> None:
        # Edges reference the job through its id, so one row carries the name
        job.full_name = new_full_name
        await self.session.flush()

    async def _delete_builds(self, build_ids: list[int]) -> int:
        if not build_ids:
            return 0
        for model in BUILD_EDGE_MODELS:
            await self.session.execute(delete(model).where(model.build_id.in_(build_ids)), execution_options=BULK)
        await self.session.execute(
            delete(BuildUpstreamCause).where(
                or_(
                    BuildUpstreamCause.upstream_build_id.in_(build_ids),
                    BuildUpstreamCause.downstream_build_id.in_(build_ids),
                )
            ),
            execution_options=BULK,
        )
        result = await self.session.execute(delete(Build).where(Build.id.in_(build_ids)), execution_options=BULK)
        return result.rowcount

    async def delete_job(self, job: Job) -> int:
        result = await self.session.execute(select(Build.id).where(Build.job_id == job.id))
        deleted = await self._delete_builds(list(result.scalars().all()))
        await self.session.execute(delete(Job).where(Job.id == job.id), execution_options=BULK)
        return deleted

    async def delete_build(self, job: Job, number: int) -> bool:
        result = await self.session.execute(
            select(Build.id).where(Build.job_id == job.id, Build.number == number)
        )
        build_id = result.scalar_one_or_none()
        if build_id is None:
            return False
        await self._delete_builds([build_id])

        if number in (job.last_build_number, job.last_successful_build_number):
            await self._refresh_last_builds(job)
        return True

    async def _refresh_last_builds(self, job: Job) -> None:
        last = await self.session.execute(
            select(func.max(Build.number)).where(Build.job_id == job.id, Build.result_id.is_not(None))
        )
        last_successful = await self.session.execute(
            select(func.max(Build.number)).where(
                Build.job_id == job.id, Build.result_id == BuildResult.SUCCESS.value
            )
        )
        job.last_build_number = last.scalar_one_or_none()
        job.last_successful_build_number = last_successful.scalar_one_or_none()
        await self.session.flush()
