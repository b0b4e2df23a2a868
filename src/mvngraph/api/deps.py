"""Shared API dependencies: the store instance and error mapping."""

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from mvngraph.core.errors import (
    InconsistentError,
    InvalidArgumentError,
    MvnGraphError,
    NotFoundError,
    StorageUnavailableError,
)
from mvngraph.services.store import MavenGraphStore

logger = logging.getLogger("mvngraph.api")

# Store is opened by the daemon on startup
_store: MavenGraphStore | None = None

_STATUS_BY_ERROR = (
    (InvalidArgumentError, 400),
    (NotFoundError, 404),
    (StorageUnavailableError, 503),
    (InconsistentError, 500),
)


def set_store(store: MavenGraphStore | None):
    global _store
    _store = store


def current_store() -> MavenGraphStore | None:
    return _store


def get_store() -> MavenGraphStore:
    if _store is None or not _store.is_open:
        raise HTTPException(503, "Store not initialized")
    return _store


async def _store_error_handler(request: Request, exc: MvnGraphError) -> JSONResponse:
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    if status >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status, content={"detail": str(exc)})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MvnGraphError, _store_error_handler)
