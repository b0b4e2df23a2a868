"""API key authentication."""

import secrets

from fastapi import HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from mvngraph.core.config import get_settings

security = HTTPBearer()

# Set by the daemon on startup; falls back to settings when unset
_api_key: str | None = None


def set_api_key(api_key: str | None) -> None:
    global _api_key
    _api_key = api_key


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> str:
    expected = _api_key or get_settings().api_key
    if not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(status_code=401, detail="Invalid API key")
    return credentials.credentials
