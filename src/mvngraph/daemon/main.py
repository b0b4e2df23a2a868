"""mvngraph daemon — FastAPI app over the dependency graph store, with periodic cleanup."""

import logging
import uvicorn
from contextlib import asynccontextmanager
from fastapi import FastAPI

from mvngraph import __version__
from mvngraph.core.auth import set_api_key
from mvngraph.core.config import MvnGraphSettings, get_settings
from mvngraph.api.deps import current_store, register_error_handlers, set_store
from mvngraph.api.router import api_router
from mvngraph.daemon.scheduler import schedule_cleanup, start_scheduler, stop_scheduler, list_jobs
from mvngraph.services.store import MavenGraphStore

logger = logging.getLogger("mvngraph")


def configure_logging(settings: MvnGraphSettings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown."""
    settings = get_settings()
    set_api_key(settings.api_key)

    store = MavenGraphStore.from_settings(settings)
    await store.open()
    set_store(store)
    if not store.is_enough_production_grade_for_the_workload():
        logger.warning(
            f"{store!r} uses an embedded database, not suited to production workloads; "
            "configure MVNGRAPH_DATABASE_URL"
        )

    start_scheduler()
    schedule_cleanup(store, settings.cleanup_interval_seconds)

    try:
        yield
    finally:
        stop_scheduler()
        set_store(None)
        await store.close()
        logger.info("mvngraph daemon stopped")


def create_app() -> FastAPI:
    app = FastAPI(
        title="mvngraph",
        description="Maven dependency provenance across CI builds",
        version=__version__,
        lifespan=lifespan,
    )

    register_error_handlers(app)
    app.include_router(api_router)

    @app.get("/health")
    async def health():
        store = current_store()
        return {
            "status": "ok" if store is not None and store.is_open else "starting",
            "version": __version__,
            "scheduler_jobs": list_jobs(),
        }

    return app


def main():
    """Entry point for `mvngraphd` command."""
    import sys

    settings = get_settings()
    configure_logging(settings)

    host = settings.host
    port = settings.port

    # Parse CLI args (simple, no dep on typer for daemon)
    args = sys.argv[1:]
    for i, arg in enumerate(args):
        if arg == "--port" and i + 1 < len(args):
            port = int(args[i + 1])
        if arg == "--host" and i + 1 < len(args):
            host = args[i + 1]

    logger.info(f"Starting mvngraph daemon v{__version__} on {host}:{port}")

    app = create_app()
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
