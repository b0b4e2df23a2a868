"""Error kinds raised by the dependency graph store."""

from __future__ import annotations


class MvnGraphError(RuntimeError):
    """Base class for store failures."""


class InvalidArgumentError(MvnGraphError, ValueError):
    """Raised when a required identifying field is missing or malformed."""


class NotFoundError(MvnGraphError, LookupError):
    """Raised when an operation must reference an existing job or build and it does not exist."""


class StorageUnavailableError(MvnGraphError):
    """Raised when the underlying database cannot be reached. Never retried by the store."""


class InconsistentError(MvnGraphError):
    """Raised when a consistency check fails inside a transaction."""
