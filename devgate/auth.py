"""Client authentication for devgate.

Clients log in with the gateway password and get back an opaque session
token.  Every other route expects ``Authorization: Bearer <token>``; the
token is checked against the session store under the shared guard.
"""

from __future__ import annotations

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from devgate.discovery import DiscoveryService
from devgate.errors import Unauthorized
from devgate.state import SharedState

_bearer = HTTPBearer(auto_error=False)


# ── Injected handles ──────────────────────────────────────────────

def get_shared(request: Request) -> SharedState:
    return request.app.state.shared


def get_discovery(request: Request) -> DiscoveryService:
    return request.app.state.discovery


# ── FastAPI dependency ────────────────────────────────────────────

async def require_session(
    creds: HTTPAuthorizationCredentials | None = Depends(_bearer),
    shared: SharedState = Depends(get_shared),
) -> str:
    """Dependency that ensures the caller holds a valid session token."""
    if creds is None:
        raise Unauthorized("Not authenticated")
    if not await shared.is_authorized(creds.credentials):
        raise Unauthorized("Invalid or expired session")
    return creds.credentials
