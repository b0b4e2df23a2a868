"""mvngraph configuration, read from mvngraph.toml and env vars."""

import os
import sys
from pathlib import Path
from typing import Dict, Any
from pydantic_settings import BaseSettings
from pydantic import Field

# Handle tomli import for Python < 3.11 compatibility
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

# Settings that may be provided by mvngraph.toml
_TOML_KEYS = (
    "database_url",
    "log_level",
    "host",
    "port",
    "api_key",
    "cleanup_interval_seconds",
    "create_tables",
)


class MvnGraphSettings(BaseSettings):
    """Store and daemon settings."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8410
    log_level: str = "info"

    # Database (SQLite by default for zero-setup, not production grade)
    database_url: str = Field(
        default="sqlite+aiosqlite:///mvngraph.db",
        alias="MVNGRAPH_DATABASE_URL",
    )
    create_tables: bool = True

    # Auth
    api_key: str = Field(default="mvngraph_dev_key", alias="MVNGRAPH_API_KEY")

    # Maintenance: seconds between cleanup runs, 0 disables the job
    cleanup_interval_seconds: int = 86400

    model_config = {"env_prefix": "MVNGRAPH_", "env_file": ".env", "populate_by_name": True}


def _load_toml_config() -> Dict[str, Any]:
    """Load configuration from mvngraph.toml files.

    Searches for mvngraph.toml in:
    1. MVNGRAPH_HOME (~/.mvngraph/mvngraph.toml by default)
    2. Current directory (./mvngraph.toml)

    Returns:
        Combined configuration dict from found files, local file winning
    """
    config: Dict[str, Any] = {}

    home = Path(os.environ.get("MVNGRAPH_HOME", "~/.mvngraph")).expanduser()
    for path in (home / "mvngraph.toml", Path("mvngraph.toml")):
        if not path.exists():
            continue
        with path.open("rb") as f:
            data = tomllib.load(f)
        # Accept both a flat file and a [mvngraph] table
        section = data.get("mvngraph", data)
        config.update({k: v for k, v in section.items() if k in _TOML_KEYS})

    return config


def _env_overrides() -> set[str]:
    """Field names explicitly set through the environment."""
    names = set()
    for key in _TOML_KEYS:
        if f"MVNGRAPH_{key.upper()}" in os.environ:
            names.add(key)
    return names


def get_settings() -> MvnGraphSettings:
    # Environment variables win over mvngraph.toml
    overridden = _env_overrides()
    toml_config = {k: v for k, v in _load_toml_config().items() if k not in overridden}
    return MvnGraphSettings(**toml_config)
