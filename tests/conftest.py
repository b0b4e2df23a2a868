"""Shared test fixtures for mvngraph tests."""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from mvngraph.api.deps import set_store
from mvngraph.core.auth import set_api_key
from mvngraph.daemon.main import create_app
from mvngraph.services.store import MavenGraphStore

IN_MEMORY_URL = "sqlite+aiosqlite://"


@pytest_asyncio.fixture(scope="function")
async def store():
    """A fresh in-memory store for each test."""
    async with MavenGraphStore(IN_MEMORY_URL) as s:
        yield s


@pytest.fixture
def produce(store):
    """Record a generated artifact: ``await produce("job", 1, "lib", version="1.0")``."""

    async def _produce(
        job: str,
        build: int,
        artifact_id: str,
        version: str = "1.0",
        base_version: str | None = None,
        group_id: str = "com.acme",
        type: str = "jar",
        classifier: str | None = None,
        skip_downstream_triggers: bool = False,
    ):
        await store.record_generated_artifact(
            job, build, group_id, artifact_id, version, type,
            base_version if base_version is not None else version,
            repository_url=None,
            skip_downstream_triggers=skip_downstream_triggers,
            extension=type,
            classifier=classifier,
        )

    return _produce


@pytest.fixture
def consume(store):
    """Record a dependency: ``await consume("job", 1, "lib", version="1.0")``."""

    async def _consume(
        job: str,
        build: int,
        artifact_id: str,
        version: str = "1.0",
        group_id: str = "com.acme",
        type: str = "jar",
        scope: str = "compile",
        classifier: str | None = None,
        base_version: str | None = None,
        ignore_upstream_triggers: bool = False,
    ):
        await store.record_dependency(
            job, build, group_id, artifact_id, version, type, scope,
            ignore_upstream_triggers=ignore_upstream_triggers,
            classifier=classifier,
            base_version=base_version,
        )

    return _consume


@pytest_asyncio.fixture(scope="function")
async def app(store):
    """App wired to the in-memory store (ASGITransport does not run the lifespan)."""
    set_store(store)
    set_api_key("test_key")
    yield create_app()
    set_store(None)
    set_api_key(None)


@pytest_asyncio.fixture(scope="function")
async def client(app):
    """Async HTTP client pointed at the test app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"Authorization": "Bearer test_key"},
    ) as c:
        yield c


@pytest_asyncio.fixture(scope="function")
async def unauthed_client(app):
    """Async HTTP client without auth."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
