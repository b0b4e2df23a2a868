"""Tests for the write API: recording, idempotence, validation, completion."""

import asyncio

import pytest

from mvngraph.core.errors import InvalidArgumentError, StorageUnavailableError
from mvngraph.graph.types import MavenArtifact, MavenDependency
from mvngraph.models.job import BuildResult
from mvngraph.repositories.job_repo import JobRepository
from mvngraph.repositories.maintenance_repo import MaintenanceRepository
from mvngraph.services.store import MavenGraphStore


class TestRecordDependency:
    @pytest.mark.asyncio
    async def test_record_and_list(self, store):
        await store.record_dependency("app", 1, "com.acme", "core", "1.0", "jar", "compile")
        deps = await store.list_dependencies("app", 1)
        assert deps == [
            MavenDependency(
                group_id="com.acme", artifact_id="core", version="1.0", type="jar",
                scope="compile", ignore_upstream_triggers=False,
            )
        ]

    @pytest.mark.asyncio
    async def test_idempotent(self, store, consume):
        await consume("app", 1, "core")
        once = await store.list_dependencies("app", 1)
        await consume("app", 1, "core")
        assert await store.list_dependencies("app", 1) == once
        assert len(once) == 1

    @pytest.mark.asyncio
    async def test_second_record_overwrites_attributes(self, store, consume):
        await consume("app", 1, "core", scope="compile")
        await consume("app", 1, "core", scope="test", ignore_upstream_triggers=True)
        [dep] = await store.list_dependencies("app", 1)
        assert dep.scope == "test"
        assert dep.ignore_upstream_triggers is True

    @pytest.mark.asyncio
    async def test_sorted_by_coordinate(self, store, consume):
        await consume("app", 1, "zeta")
        await consume("app", 1, "alpha", version="2.0")
        await consume("app", 1, "alpha", version="1.0")
        await consume("app", 1, "beta", group_id="com.aaa")
        deps = await store.list_dependencies("app", 1)
        assert [(d.group_id, d.artifact_id, d.version) for d in deps] == [
            ("com.aaa", "beta", "1.0"),
            ("com.acme", "alpha", "1.0"),
            ("com.acme", "alpha", "2.0"),
            ("com.acme", "zeta", "1.0"),
        ]

    @pytest.mark.asyncio
    async def test_no_classifier_differs_from_empty_classifier(self, store, consume):
        await consume("app", 1, "core", classifier=None)
        await consume("app", 1, "core", classifier="")
        await consume("app", 1, "core", classifier="tests")
        deps = await store.list_dependencies("app", 1)
        assert [d.classifier for d in deps] == [None, "", "tests"]

    @pytest.mark.asyncio
    async def test_builds_are_independent(self, store, consume):
        await consume("app", 1, "core")
        await consume("app", 2, "api")
        assert [d.artifact_id for d in await store.list_dependencies("app", 1)] == ["core"]
        assert [d.artifact_id for d in await store.list_dependencies("app", 2)] == ["api"]

    @pytest.mark.asyncio
    async def test_unknown_build_lists_empty(self, store):
        assert await store.list_dependencies("nobody", 42) == []
        assert await store.get_generated_artifacts("nobody", 42) == []
        assert await store.list_parent_projects("nobody", 42) == []


class TestRecordGeneratedArtifact:
    @pytest.mark.asyncio
    async def test_round_trip(self, store):
        await store.record_generated_artifact(
            "lib", 3, "com.acme", "core", "1.1-20170808.155524-66", "jar", "1.1-SNAPSHOT",
            repository_url="https://repo.acme.com/snapshots",
            extension="jar",
        )
        assert await store.get_generated_artifacts("lib", 3) == [
            MavenArtifact(
                group_id="com.acme",
                artifact_id="core",
                version="1.1-20170808.155524-66",
                type="jar",
                base_version="1.1-SNAPSHOT",
                extension="jar",
                repository_url="https://repo.acme.com/snapshots",
            )
        ]

    @pytest.mark.asyncio
    async def test_skipped_artifact_still_listed(self, store, produce):
        await produce("lib", 1, "core", skip_downstream_triggers=True)
        [artifact] = await store.get_generated_artifacts("lib", 1)
        assert artifact.artifact_id == "core"

    @pytest.mark.asyncio
    async def test_snapshot_helpers(self, store, produce):
        await produce("lib", 1, "core", version="1.0-20240101.100000-1", base_version="1.0-SNAPSHOT")
        [artifact] = await store.get_generated_artifacts("lib", 1)
        assert artifact.is_snapshot
        assert artifact.id == "com.acme:core:jar:1.0-SNAPSHOT"
        assert artifact.short_description == "core:jar"


class TestRecordParentProject:
    @pytest.mark.asyncio
    async def test_parent_listed_separately(self, store):
        await store.record_parent_project("app", 1, "com.acme", "parent", "3")
        assert await store.list_dependencies("app", 1) == []
        [parent] = await store.list_parent_projects("app", 1)
        assert (parent.group_id, parent.artifact_id, parent.version, parent.type) == (
            "com.acme", "parent", "3", "pom",
        )


class TestValidation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["job", "group_id", "artifact_id", "version", "type", "scope"])
    async def test_missing_dependency_field(self, store, field):
        args = {
            "job": "app", "group_id": "com.acme", "artifact_id": "core",
            "version": "1.0", "type": "jar", "scope": "compile",
        }
        args[field] = ""
        with pytest.raises(InvalidArgumentError):
            await store.record_dependency(
                args["job"], 1, args["group_id"], args["artifact_id"],
                args["version"], args["type"], args["scope"],
            )

    @pytest.mark.asyncio
    async def test_none_group_id(self, store):
        with pytest.raises(InvalidArgumentError):
            await store.record_generated_artifact("lib", 1, None, "core", "1.0", "jar", "1.0")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("number", [0, -1, True, "3"])
    async def test_bad_build_number(self, store, number):
        with pytest.raises(InvalidArgumentError):
            await store.record_dependency("app", number, "com.acme", "core", "1.0", "jar", "compile")

    @pytest.mark.asyncio
    async def test_invalid_argument_is_value_error(self, store):
        with pytest.raises(ValueError):
            await store.record_parent_project("", 1, "com.acme", "parent", "1")

    @pytest.mark.asyncio
    async def test_nothing_written_on_invalid_call(self, store):
        with pytest.raises(InvalidArgumentError):
            await store.record_dependency("app", 1, "com.acme", "", "1.0", "jar", "compile")
        async with store._transaction() as session:
            assert await JobRepository(session).get_by_name("app") is None


class TestCompletion:
    @pytest.mark.asyncio
    async def test_completion_updates_build_and_job(self, store):
        await store.update_build_on_completion("app", 4, BuildResult.SUCCESS, 1_700_000_000_000, 12_000)
        async with store._transaction() as session:
            jobs = JobRepository(session)
            build = await jobs.get_build("app", 4)
            job = await jobs.get_by_name("app")
            assert build.result_id == BuildResult.SUCCESS
            assert build.duration_ms == 12_000
            assert build.start_time.year == 2023
            assert job.last_build_number == 4
            assert job.last_successful_build_number == 4

    @pytest.mark.asyncio
    async def test_last_call_wins(self, store):
        await store.update_build_on_completion("app", 1, BuildResult.FAILURE, 1000, 10)
        await store.update_build_on_completion("app", 1, BuildResult.UNSTABLE, 2000, 20)
        async with store._transaction() as session:
            build = await JobRepository(session).get_build("app", 1)
            assert build.result_id == BuildResult.UNSTABLE
            assert build.duration_ms == 20

    @pytest.mark.asyncio
    async def test_failed_build_does_not_advance_last_successful(self, store):
        await store.update_build_on_completion("app", 1, BuildResult.SUCCESS, 1000, 10)
        await store.update_build_on_completion("app", 2, BuildResult.FAILURE, 2000, 10)
        async with store._transaction() as session:
            job = await JobRepository(session).get_by_name("app")
            assert job.last_build_number == 2
            assert job.last_successful_build_number == 1

    @pytest.mark.asyncio
    async def test_older_build_completing_late_keeps_latest(self, store):
        await store.update_build_on_completion("app", 5, BuildResult.SUCCESS, 5000, 10)
        await store.update_build_on_completion("app", 3, BuildResult.SUCCESS, 3000, 10)
        async with store._transaction() as session:
            assert await JobRepository(session).get_last_completed_build_number("app") == 5

    @pytest.mark.asyncio
    async def test_negative_duration_rejected(self, store):
        with pytest.raises(InvalidArgumentError):
            await store.update_build_on_completion("app", 1, BuildResult.SUCCESS, 1000, -5)

    @pytest.mark.asyncio
    async def test_start_time_beyond_calendar_rejected(self, store):
        with pytest.raises(InvalidArgumentError):
            await store.update_build_on_completion("app", 1, BuildResult.SUCCESS, 10**15, 1)
        async with store._transaction() as session:
            assert await JobRepository(session).get_by_name("app") is None


class TestUpstreamCause:
    @pytest.mark.asyncio
    async def test_creates_both_builds_once(self, store):
        await store.record_build_upstream_cause("lib", 1, "app", 7)
        await store.record_build_upstream_cause("lib", 1, "app", 7)
        async with store._transaction() as session:
            sizes = await MaintenanceRepository(session).table_sizes()
        assert sizes["build_upstream_causes"] == 1
        assert sizes["builds"] == 2
        assert sizes["jobs"] == 2


class TestConcurrentWrites:
    @pytest.mark.asyncio
    async def test_parallel_builds_share_job_and_coordinate(self, store, consume):
        await asyncio.gather(*[consume("app", n, "core") for n in range(1, 21)])
        async with store._transaction() as session:
            sizes = await MaintenanceRepository(session).table_sizes()
        assert sizes["jobs"] == 1
        assert sizes["builds"] == 20
        assert sizes["maven_artifacts"] == 1
        assert sizes["maven_dependencies"] == 20

    @pytest.mark.asyncio
    async def test_parallel_identical_records_do_not_duplicate(self, store, produce):
        await asyncio.gather(*[produce("lib", 1, "core") for _ in range(10)])
        assert len(await store.get_generated_artifacts("lib", 1)) == 1

    @pytest.mark.asyncio
    async def test_file_database_reads_and_writes_interleave(self, tmp_path):
        async with MavenGraphStore(f"sqlite+aiosqlite:///{tmp_path / 'graph.db'}") as s:
            writes = [
                s.record_dependency("app", n, "com.acme", "core", "1.0", "jar", "compile")
                for n in range(1, 11)
            ]
            reads = [s.list_transitive_upstream_jobs("app", n) for n in range(1, 11)]
            await asyncio.gather(*writes, *reads)
            assert len(await s.list_dependencies("app", 10)) == 1

    def test_server_backend_takes_no_store_lock(self):
        assert MavenGraphStore("postgresql+asyncpg://db/mvngraph")._lock is None
        assert MavenGraphStore("sqlite+aiosqlite:///graph.db")._lock is not None


class TestClosedStore:
    @pytest.mark.asyncio
    async def test_operations_on_closed_store(self):
        s = MavenGraphStore("sqlite+aiosqlite://")
        with pytest.raises(StorageUnavailableError):
            await s.record_dependency("app", 1, "com.acme", "core", "1.0", "jar", "compile")
        with pytest.raises(StorageUnavailableError):
            await s.list_dependencies("app", 1)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        s = MavenGraphStore("sqlite+aiosqlite://")
        await s.open()
        assert s.is_open
        await s.close()
        await s.close()
        assert not s.is_open

    @pytest.mark.asyncio
    async def test_context_manager_releases_on_error(self):
        s = MavenGraphStore("sqlite+aiosqlite://")
        with pytest.raises(RuntimeError):
            async with s:
                raise RuntimeError("boom")
        assert not s.is_open
