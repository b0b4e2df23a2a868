"""Maven dependency graph store — write, read and lifecycle operations.

One instance is shared by every running build of the process. Each operation
runs in its own transaction. On SQLite the store also serializes its
transactions through an asyncio lock.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager, nullcontext
from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError, TimeoutError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from mvngraph.core.config import MvnGraphSettings, get_settings
from mvngraph.core.database import create_tables, init_engine, is_embedded
from mvngraph.core.errors import (
    InconsistentError,
    InvalidArgumentError,
    MvnGraphError,
    NotFoundError,
    StorageUnavailableError,
)
from mvngraph.graph.types import MavenArtifact, MavenDependency
from mvngraph.graph.upstream import UpstreamMemory, UpstreamWalker
from mvngraph.models.job import JOB_NAME_MAX_LENGTH
from mvngraph.repositories.artifact_repo import ArtifactRepository
from mvngraph.repositories.job_repo import JobRepository
from mvngraph.repositories.maintenance_repo import CleanupReport, MaintenanceRepository

logger = logging.getLogger("mvngraph.store")

PARENT_PROJECT_TYPE = "pom"


def _require(name: str, value) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidArgumentError(f"'{name}' is required")


def _require_job_name(name: str, value) -> None:
    _require(name, value)
    if not isinstance(value, str):
        raise InvalidArgumentError(f"'{name}' must be a string, got {value!r}")
    if len(value) > JOB_NAME_MAX_LENGTH:
        raise InvalidArgumentError(f"'{name}' exceeds {JOB_NAME_MAX_LENGTH} characters")


def _require_build_number(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidArgumentError(f"'{name}' must be a positive integer, got {value!r}")


def _require_non_negative(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidArgumentError(f"'{name}' must be a non-negative integer, got {value!r}")


def _utc_from_epoch_ms(name: str, value: int) -> datetime:
    """Naive UTC datetime, as stored in the builds table."""
    try:
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidArgumentError(f"'{name}' is out of range: {value!r}") from e


class MavenGraphStore:
    """Build-to-build Maven dependency provenance.

    Usage::

        async with MavenGraphStore("sqlite+aiosqlite:///mvngraph.db") as store:
            await store.record_dependency("folder/app", 12, "com.acme", "core", "1.0-SNAPSHOT", "jar", "compile")
            upstream = await store.list_upstream_jobs("folder/app", 12)

    On SQLite every transaction, reads and transitive walks included, holds
    the store lock, so a long walk delays concurrent writers of the same
    process. An in-memory database shares one connection between all
    sessions, and a file database admits a single writer whose lock upgrade
    fails with "database is locked" instead of waiting. Server backends take
    no store lock and rely on their own transaction isolation.
    """

    def __init__(self, database_url: str, echo: bool = False, create_tables: bool = True):
        self.database_url = database_url
        self._echo = echo
        self._create_tables = create_tables
        self._engine: AsyncEngine | None = None
        self._session_factory: async_sessionmaker[AsyncSession] | None = None
        self._lock = asyncio.Lock() if is_embedded(database_url) else None

    @classmethod
    def from_settings(cls, settings: MvnGraphSettings | None = None) -> "MavenGraphStore":
        settings = settings or get_settings()
        return cls(settings.database_url, create_tables=settings.create_tables)

    # ─── Resource lifecycle ───

    @property
    def is_open(self) -> bool:
        return self._engine is not None

    async def open(self) -> "MavenGraphStore":
        if self._engine is not None:
            return self
        self._engine, self._session_factory = init_engine(self.database_url, echo=self._echo)
        if self._create_tables:
            try:
                await create_tables(self._engine)
            except (OperationalError, InterfaceError, TimeoutError, OSError) as e:
                await self.close()
                raise StorageUnavailableError(f"Cannot initialize database {self._safe_url}: {e}") from e
        logger.info(f"Store opened: {self._safe_url}")
        return self

    async def close(self) -> None:
        if self._engine is None:
            return
        engine = self._engine
        self._engine = None
        self._session_factory = None
        await engine.dispose()
        logger.info(f"Store closed: {self._safe_url}")

    async def __aenter__(self) -> "MavenGraphStore":
        return await self.open()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def _safe_url(self) -> str:
        return make_url(self.database_url).render_as_string(hide_password=True)

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        if self._session_factory is None:
            raise StorageUnavailableError("Store is closed")
        async with self._lock or nullcontext():
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        yield session
            except IntegrityError as e:
                raise InconsistentError(f"Integrity violation: {e.orig}") from e
            except (OperationalError, InterfaceError, TimeoutError, OSError) as e:
                raise StorageUnavailableError(f"Database unavailable ({self._safe_url}): {e}") from e

    # ─── Write API ───

    async def record_dependency(
        self,
        job_full_name: str,
        build_number: int,
        group_id: str,
        artifact_id: str,
        version: str,
        type: str,
        scope: str,
        ignore_upstream_triggers: bool = False,
        classifier: str | None = None,
        base_version: str | None = None,
    ) -> None:
        """Record that the build consumed a Maven coordinate."""
        _require_job_name("job_full_name", job_full_name)
        _require_build_number("build_number", build_number)
        for name, value in (("group_id", group_id), ("artifact_id", artifact_id),
                            ("version", version), ("type", type), ("scope", scope)):
            _require(name, value)

        async with self._transaction() as session:
            build = await JobRepository(session).get_or_create_build(job_full_name, build_number)
            artifacts = ArtifactRepository(session)
            maven_artifact_id = await artifacts.get_or_create(
                group_id, artifact_id, version, type, base_version=base_version, classifier=classifier
            )
            await artifacts.record_dependency(build.id, maven_artifact_id, scope, ignore_upstream_triggers)
        logger.debug(f"Dependency {group_id}:{artifact_id}:{version} recorded for {job_full_name}#{build_number}")

    async def record_parent_project(
        self,
        job_full_name: str,
        build_number: int,
        parent_group_id: str,
        parent_artifact_id: str,
        parent_version: str,
        ignore_upstream_triggers: bool = False,
    ) -> None:
        """Record the parent pom of a project built by the build."""
        _require_job_name("job_full_name", job_full_name)
        _require_build_number("build_number", build_number)
        for name, value in (("parent_group_id", parent_group_id), ("parent_artifact_id", parent_artifact_id),
                            ("parent_version", parent_version)):
            _require(name, value)

        async with self._transaction() as session:
            build = await JobRepository(session).get_or_create_build(job_full_name, build_number)
            artifacts = ArtifactRepository(session)
            maven_artifact_id = await artifacts.get_or_create(
                parent_group_id, parent_artifact_id, parent_version, PARENT_PROJECT_TYPE
            )
            await artifacts.record_parent_project(build.id, maven_artifact_id, ignore_upstream_triggers)
        logger.debug(
            f"Parent {parent_group_id}:{parent_artifact_id}:{parent_version} recorded for {job_full_name}#{build_number}"
        )

    async def record_generated_artifact(
        self,
        job_full_name: str,
        build_number: int,
        group_id: str,
        artifact_id: str,
        version: str,
        type: str,
        base_version: str | None,
        repository_url: str | None = None,
        skip_downstream_triggers: bool = False,
        extension: str | None = None,
        classifier: str | None = None,
    ) -> None:
        """Record that the build produced a Maven coordinate.

        ``version`` is the expanded version of a deployed snapshot
        (``1.1-20170808.155524-66``), ``base_version`` the declared one
        (``1.1-SNAPSHOT``). ``repository_url`` is None when not deployed.
        """
        _require_job_name("job_full_name", job_full_name)
        _require_build_number("build_number", build_number)
        for name, value in (("group_id", group_id), ("artifact_id", artifact_id),
                            ("version", version), ("type", type)):
            _require(name, value)

        async with self._transaction() as session:
            build = await JobRepository(session).get_or_create_build(job_full_name, build_number)
            artifacts = ArtifactRepository(session)
            maven_artifact_id = await artifacts.get_or_create(
                group_id, artifact_id, version, type, base_version=base_version, classifier=classifier
            )
            await artifacts.record_generated_artifact(
                build.id, maven_artifact_id, repository_url, extension, skip_downstream_triggers
            )
        logger.debug(f"Generated {group_id}:{artifact_id}:{version} recorded for {job_full_name}#{build_number}")

    async def record_build_upstream_cause(
        self,
        upstream_job_name: str,
        upstream_build_number: int,
        downstream_job_name: str,
        downstream_build_number: int,
    ) -> None:
        """Record that the upstream build triggered the downstream build."""
        _require_job_name("upstream_job_name", upstream_job_name)
        _require_build_number("upstream_build_number", upstream_build_number)
        _require_job_name("downstream_job_name", downstream_job_name)
        _require_build_number("downstream_build_number", downstream_build_number)

        async with self._transaction() as session:
            jobs = JobRepository(session)
            upstream = await jobs.get_or_create_build(upstream_job_name, upstream_build_number)
            downstream = await jobs.get_or_create_build(downstream_job_name, downstream_build_number)
            await ArtifactRepository(session).record_upstream_cause(upstream.id, downstream.id)
        logger.debug(
            f"Upstream cause {upstream_job_name}#{upstream_build_number} → "
            f"{downstream_job_name}#{downstream_build_number}"
        )

    async def update_build_on_completion(
        self,
        job_full_name: str,
        build_number: int,
        build_result_ordinal: int,
        start_time_ms: int,
        duration_ms: int,
    ) -> None:
        """Store result, start time and duration; the last call wins."""
        _require_job_name("job_full_name", job_full_name)
        _require_build_number("build_number", build_number)
        _require_non_negative("build_result_ordinal", build_result_ordinal)
        _require_non_negative("start_time_ms", start_time_ms)
        _require_non_negative("duration_ms", duration_ms)
        start_time = _utc_from_epoch_ms("start_time_ms", start_time_ms)

        async with self._transaction() as session:
            await JobRepository(session).update_build_on_completion(
                job_full_name, build_number, build_result_ordinal, start_time, duration_ms
            )
        logger.debug(f"Completion recorded for {job_full_name}#{build_number} (result={build_result_ordinal})")

    # ─── Direct read API ───

    async def list_dependencies(self, job_full_name: str, build_number: int) -> list[MavenDependency]:
        _require_job_name("job_full_name", job_full_name)
        async with self._transaction() as session:
            return await ArtifactRepository(session).list_dependencies(job_full_name, build_number)

    async def list_parent_projects(self, job_full_name: str, build_number: int) -> list[MavenArtifact]:
        _require_job_name("job_full_name", job_full_name)
        async with self._transaction() as session:
            return await ArtifactRepository(session).list_parent_projects(job_full_name, build_number)

    async def get_generated_artifacts(self, job_full_name: str, build_number: int) -> list[MavenArtifact]:
        _require_job_name("job_full_name", job_full_name)
        async with self._transaction() as session:
            return await ArtifactRepository(session).list_generated_artifacts(job_full_name, build_number)

    async def list_downstream_jobs_by_artifact(
        self, job_full_name: str, build_number: int
    ) -> dict[MavenArtifact, list[str]]:
        """Jobs consuming each artifact generated by the build, the build's own job excluded."""
        _require_job_name("job_full_name", job_full_name)
        downstream: dict[MavenArtifact, list[str]] = {}
        async with self._transaction() as session:
            repo = ArtifactRepository(session)
            generated = await repo.list_generated_artifacts(job_full_name, build_number, include_skipped=False)
            for artifact in generated:
                jobs = await repo.list_consumer_jobs(
                    artifact.group_id,
                    artifact.artifact_id,
                    artifact.version,
                    artifact.base_version,
                    artifact.type,
                    artifact.classifier,
                )
                jobs.discard(job_full_name)
                if jobs:
                    downstream[artifact] = sorted(jobs)
        return downstream

    async def list_downstream_jobs(self, job_full_name: str, build_number: int) -> list[str]:
        """Deprecated: job names only. Use :meth:`list_downstream_jobs_by_artifact`."""
        by_artifact = await self.list_downstream_jobs_by_artifact(job_full_name, build_number)
        return sorted({job for jobs in by_artifact.values() for job in jobs})

    async def list_downstream_jobs_for_artifact(
        self,
        group_id: str,
        artifact_id: str,
        version: str,
        base_version: str | None,
        type: str,
        classifier: str | None = None,
    ) -> list[str]:
        """Jobs with some build depending on the given coordinate."""
        for name, value in (("group_id", group_id), ("artifact_id", artifact_id),
                            ("version", version), ("type", type)):
            _require(name, value)
        async with self._transaction() as session:
            jobs = await ArtifactRepository(session).list_consumer_jobs(
                group_id, artifact_id, version, base_version, type, classifier
            )
        return sorted(jobs)

    async def list_upstream_jobs(self, job_full_name: str, build_number: int) -> dict[str, int]:
        """``{job full name: build number}`` of the builds that produced what the build consumes."""
        _require_job_name("job_full_name", job_full_name)
        async with self._transaction() as session:
            return await ArtifactRepository(session).list_upstream_builds(job_full_name, build_number)

    # ─── Transitive upstream ───

    async def list_transitive_upstream_jobs(
        self,
        job_full_name: str,
        build_number: int,
        upstream_memory: UpstreamMemory | None = None,
    ) -> dict[str, int]:
        """Direct and indirect upstream jobs of the build.

        Pass the same ``upstream_memory`` to every call of one batch to reuse
        lookups; results are identical with or without it.
        """
        _require_job_name("job_full_name", job_full_name)
        async with self._transaction() as session:
            walker = UpstreamWalker(
                ArtifactRepository(session).list_upstream_builds,
                JobRepository(session).get_last_completed_build_number,
            )
            return await walker.walk(job_full_name, build_number, upstream_memory)

    # ─── Lifecycle ───

    async def rename_job(self, old_full_name: str, new_full_name: str) -> None:
        _require_job_name("old_full_name", old_full_name)
        _require_job_name("new_full_name", new_full_name)
        async with self._transaction() as session:
            jobs = JobRepository(session)
            job = await jobs.get_by_name(old_full_name)
            if job is None:
                raise NotFoundError(f"Job '{old_full_name}' not found")
            if old_full_name == new_full_name:
                return
            if await jobs.get_by_name(new_full_name) is not None:
                raise InvalidArgumentError(f"Cannot rename '{old_full_name}': job '{new_full_name}' already exists")
            await jobs.rename(job, new_full_name)
        logger.info(f"Job renamed: {old_full_name} → {new_full_name}")

    async def delete_job(self, job_full_name: str) -> None:
        _require_job_name("job_full_name", job_full_name)
        async with self._transaction() as session:
            jobs = JobRepository(session)
            job = await jobs.get_by_name(job_full_name)
            if job is None:
                logger.debug(f"Delete of unknown job ignored: {job_full_name}")
                return
            deleted = await jobs.delete_job(job)
        logger.info(f"Job deleted: {job_full_name} ({deleted} builds)")

    async def delete_build(self, job_full_name: str, build_number: int) -> None:
        _require_job_name("job_full_name", job_full_name)
        async with self._transaction() as session:
            jobs = JobRepository(session)
            job = await jobs.get_by_name(job_full_name)
            deleted = job is not None and await jobs.delete_build(job, build_number)
        if deleted:
            logger.info(f"Build deleted: {job_full_name}#{build_number}")
        else:
            logger.debug(f"Delete of unknown build ignored: {job_full_name}#{build_number}")

    # ─── Maintenance ───

    async def cleanup(self) -> CleanupReport | None:
        """Reclaim orphaned rows and disk space. Best effort: failures are logged, never raised."""
        try:
            async with self._transaction() as session:
                report = await MaintenanceRepository(session).delete_orphans()
            report.vacuumed = await self._vacuum()
            async with self._transaction() as session:
                report.table_sizes = await MaintenanceRepository(session).table_sizes()
        except (MvnGraphError, SQLAlchemyError, OSError):
            logger.exception(f"Cleanup of {self._safe_url} failed")
            return None
        logger.info(
            f"Cleanup reclaimed {report.total} rows "
            f"(builds={report.orphan_builds}, edges={report.orphan_edges}, artifacts={report.orphan_artifacts})"
        )
        return report

    async def _vacuum(self) -> bool:
        if not is_embedded(self.database_url) or self._engine is None:
            return False
        async with self._lock or nullcontext():
            async with self._engine.connect() as conn:
                conn = await conn.execution_options(isolation_level="AUTOCOMMIT")
                await conn.exec_driver_sql("VACUUM")
        return True

    def is_enough_production_grade_for_the_workload(self) -> bool:
        """False for single-file embedded engines such as SQLite."""
        return not is_embedded(self.database_url)

    async def to_pretty_string(self) -> str:
        backend = make_url(self.database_url).get_backend_name()
        lines = [f"MavenGraphStore - {self._safe_url}"]
        lines.append(f"  Backend: {backend} ({'production grade' if self.is_enough_production_grade_for_the_workload() else 'embedded, not production grade'})")
        if not self.is_open:
            lines.append("  Status: closed")
            return "\n".join(lines)
        async with self._transaction() as session:
            sizes = await MaintenanceRepository(session).table_sizes()
        lines.append("  Table sizes:")
        for table, size in sizes.items():
            lines.append(f"    {table}: {size}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        state = "open" if self.is_open else "closed"
        return f"MavenGraphStore({self._safe_url!r}, {state})"
