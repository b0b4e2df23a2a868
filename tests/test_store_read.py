"""Tests for the direct read API: downstream and upstream jobs."""

import pytest

from mvngraph.graph.types import MavenArtifact
from mvngraph.models.job import BuildResult


class TestDownstreamByArtifact:
    @pytest.mark.asyncio
    async def test_consumers_grouped_by_artifact(self, store, produce, consume):
        await produce("lib", 1, "core")
        await produce("lib", 1, "api")
        await consume("app-a", 1, "core")
        await consume("app-b", 3, "core")
        await consume("app-b", 3, "api")

        result = await store.list_downstream_jobs_by_artifact("lib", 1)
        by_id = {artifact.artifact_id: jobs for artifact, jobs in result.items()}
        assert by_id == {"core": ["app-a", "app-b"], "api": ["app-b"]}

    @pytest.mark.asyncio
    async def test_artifacts_without_consumers_omitted(self, store, produce, consume):
        await produce("lib", 1, "core")
        await produce("lib", 1, "unused")
        await consume("app", 1, "core")
        result = await store.list_downstream_jobs_by_artifact("lib", 1)
        assert [a.artifact_id for a in result] == ["core"]

    @pytest.mark.asyncio
    async def test_snapshot_consumer_of_timestamped_version(self, store, produce, consume):
        await produce("lib", 1, "core", version="1.0-20240101.100000-1", base_version="1.0-SNAPSHOT")
        await consume("app", 1, "core", version="1.0-SNAPSHOT")
        result = await store.list_downstream_jobs_by_artifact("lib", 1)
        assert list(result.values()) == [["app"]]

    @pytest.mark.asyncio
    async def test_producing_job_excluded(self, store, produce, consume):
        await produce("lib", 2, "core")
        await consume("lib", 3, "core")
        assert await store.list_downstream_jobs_by_artifact("lib", 2) == {}

    @pytest.mark.asyncio
    async def test_skipped_artifact_has_no_downstream(self, store, produce, consume):
        await produce("lib", 1, "core", skip_downstream_triggers=True)
        await consume("app", 1, "core")
        assert await store.list_downstream_jobs_by_artifact("lib", 1) == {}

    @pytest.mark.asyncio
    async def test_ignoring_consumer_excluded(self, store, produce, consume):
        await produce("lib", 1, "core")
        await consume("app", 1, "core", ignore_upstream_triggers=True)
        await consume("other", 1, "core")
        [jobs] = (await store.list_downstream_jobs_by_artifact("lib", 1)).values()
        assert jobs == ["other"]

    @pytest.mark.asyncio
    async def test_parent_pom_consumer(self, store, produce):
        await produce("parent-job", 1, "parent", version="3", type="pom")
        await store.record_parent_project("app", 1, "com.acme", "parent", "3")
        result = await store.list_downstream_jobs_by_artifact("parent-job", 1)
        assert list(result.values()) == [["app"]]

    @pytest.mark.asyncio
    async def test_classifier_must_match(self, store, produce, consume):
        await produce("lib", 1, "core", classifier="tests")
        await consume("plain", 1, "core")
        await consume("tests-user", 1, "core", classifier="tests")
        [jobs] = (await store.list_downstream_jobs_by_artifact("lib", 1)).values()
        assert jobs == ["tests-user"]

    @pytest.mark.asyncio
    async def test_deprecated_job_list(self, store, produce, consume):
        await produce("lib", 1, "core")
        await produce("lib", 1, "api")
        await consume("b", 1, "core")
        await consume("a", 1, "api")
        await consume("a", 1, "core")
        assert await store.list_downstream_jobs("lib", 1) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_unknown_build(self, store):
        assert await store.list_downstream_jobs_by_artifact("nobody", 1) == {}
        assert await store.list_downstream_jobs("nobody", 1) == []


class TestDownstreamForCoordinate:
    @pytest.mark.asyncio
    async def test_any_build_of_a_job_counts(self, store, consume):
        await consume("app", 1, "core", version="1.0")
        await consume("app", 2, "core", version="2.0")
        await consume("other", 5, "core", version="1.0")
        jobs = await store.list_downstream_jobs_for_artifact("com.acme", "core", "1.0", "1.0", "jar")
        assert jobs == ["app", "other"]

    @pytest.mark.asyncio
    async def test_base_version_matches_snapshot_consumers(self, store, consume):
        await consume("app", 1, "core", version="1.0-SNAPSHOT")
        jobs = await store.list_downstream_jobs_for_artifact(
            "com.acme", "core", "1.0-20240101.100000-1", "1.0-SNAPSHOT", "jar"
        )
        assert jobs == ["app"]

    @pytest.mark.asyncio
    async def test_type_must_match(self, store, consume):
        await consume("app", 1, "core", type="war")
        assert await store.list_downstream_jobs_for_artifact("com.acme", "core", "1.0", None, "jar") == []

    @pytest.mark.asyncio
    async def test_classifier_none_only_matches_none(self, store, consume):
        await consume("app", 1, "core", classifier="")
        await consume("other", 1, "core")
        jobs = await store.list_downstream_jobs_for_artifact("com.acme", "core", "1.0", None, "jar")
        assert jobs == ["other"]
        jobs = await store.list_downstream_jobs_for_artifact("com.acme", "core", "1.0", None, "jar", classifier="")
        assert jobs == ["app"]


class TestUpstreamJobs:
    @pytest.mark.asyncio
    async def test_direct_upstream(self, store, produce, consume):
        await produce("lib", 4, "core")
        await produce("api-job", 9, "api")
        await consume("app", 1, "core")
        await consume("app", 1, "api")
        assert await store.list_upstream_jobs("app", 1) == {"lib": 4, "api-job": 9}

    @pytest.mark.asyncio
    async def test_consumer_with_snapshot_base_version(self, store, produce, consume):
        await produce("lib", 2, "core", version="1.0-20240101.100000-1", base_version="1.0-SNAPSHOT")
        await consume("app", 1, "core", version="1.0-20240101.100000-1", base_version="1.0-SNAPSHOT")
        await consume("app", 2, "core", version="1.0-SNAPSHOT")
        assert await store.list_upstream_jobs("app", 1) == {"lib": 2}
        assert await store.list_upstream_jobs("app", 2) == {"lib": 2}

    @pytest.mark.asyncio
    async def test_most_recently_started_producer_wins(self, store, produce, consume):
        await produce("lib-a", 7, "core")
        await produce("lib-b", 2, "core")
        await store.update_build_on_completion("lib-a", 7, BuildResult.SUCCESS, 1_000, 10)
        await store.update_build_on_completion("lib-b", 2, BuildResult.SUCCESS, 5_000, 10)
        await consume("app", 1, "core")
        assert await store.list_upstream_jobs("app", 1) == {"lib-b": 2}

    @pytest.mark.asyncio
    async def test_highest_build_number_without_start_times(self, store, produce, consume):
        await produce("lib", 3, "core")
        await produce("lib", 8, "core")
        await produce("lib", 5, "core")
        await consume("app", 1, "core")
        assert await store.list_upstream_jobs("app", 1) == {"lib": 8}

    @pytest.mark.asyncio
    async def test_same_job_earlier_build_not_upstream(self, store, produce, consume):
        await produce("app", 1, "core")
        await consume("app", 2, "core")
        assert await store.list_upstream_jobs("app", 2) == {}

    @pytest.mark.asyncio
    async def test_ignore_upstream_triggers(self, store, produce, consume):
        await produce("lib", 1, "core")
        await consume("app", 1, "core", ignore_upstream_triggers=True)
        assert await store.list_upstream_jobs("app", 1) == {}

    @pytest.mark.asyncio
    async def test_skip_downstream_triggers(self, store, produce, consume):
        await produce("lib", 1, "core", skip_downstream_triggers=True)
        await consume("app", 1, "core")
        assert await store.list_upstream_jobs("app", 1) == {}

    @pytest.mark.asyncio
    async def test_parent_project_upstream(self, store, produce):
        await produce("parent-job", 6, "parent", version="3", type="pom")
        await store.record_parent_project("app", 1, "com.acme", "parent", "3")
        assert await store.list_upstream_jobs("app", 1) == {"parent-job": 6}

    @pytest.mark.asyncio
    async def test_classifier_distinguishes_producers(self, store, produce, consume):
        await produce("lib", 1, "core")
        await produce("test-lib", 1, "core", classifier="tests")
        await consume("app", 1, "core", classifier="tests")
        assert await store.list_upstream_jobs("app", 1) == {"test-lib": 1}

    @pytest.mark.asyncio
    async def test_no_producer(self, store, consume):
        await consume("app", 1, "external")
        assert await store.list_upstream_jobs("app", 1) == {}
        assert await store.list_upstream_jobs("nobody", 1) == {}


class TestValueTypes:
    def test_sort_key_puts_missing_classifier_first(self):
        plain = MavenArtifact("g", "a", "1", "jar")
        tests = MavenArtifact("g", "a", "1", "jar", classifier="tests")
        assert sorted([tests, plain], key=lambda a: a.sort_key()) == [plain, tests]

    def test_to_dict(self):
        artifact = MavenArtifact("g", "a", "1-SNAPSHOT", "jar")
        assert artifact.to_dict()["version"] == "1-SNAPSHOT"
        assert artifact.is_snapshot
