"""HTTP surface of devgate.

Exposes:
  GET  /health                      — liveness check (no auth)
  POST /login                       — exchange the password for a session token
  POST /logout                      — revoke the caller's session
  GET  /discover                    — mDNS scan of the local network
  GET  /refresh-session?device=...  — re-establish a device's session
  GET  /devices                     — configured devices
  *    /actions/...                 — per-device actions (see :mod:`devgate.actions`)

The app is built around an explicitly passed :class:`SharedState`; nothing
here is a module-level singleton.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import APIRouter, Depends, FastAPI, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from devgate import __version__
from devgate.actions import make_router
from devgate.auth import get_discovery, get_shared, require_session
from devgate.discovery import DEFAULT_TIMEOUT, DiscoveryError, DiscoveryService, ZeroconfDiscovery
from devgate.errors import UpstreamFailure, install_error_handlers
from devgate.state import SharedState

logger = logging.getLogger(__name__)


# ──────────────────────────────────────────────────────────────────
# Request / Response models
# ──────────────────────────────────────────────────────────────────

class LoginRequest(BaseModel):
    password: str


class LoginResponse(BaseModel):
    token: str
    created_at: str


# ──────────────────────────────────────────────────────────────────
# App factory
# ──────────────────────────────────────────────────────────────────

def create_app(
    shared: SharedState,
    discovery: DiscoveryService | None = None,
    cors_origins: list[str] | None = None,
    discovery_timeout: float = DEFAULT_TIMEOUT,
    connect_on_startup: bool = False,
) -> FastAPI:
    """Build the FastAPI app around *shared*.

    With *connect_on_startup* the lifespan opens a session with every device
    before serving; drivers are always closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if connect_on_startup:
            connected = await shared.connect_devices()
            logger.info("Connected to %d/%d device(s)", connected, len(shared.devices))
        try:
            yield
        finally:
            await shared.close()

    app = FastAPI(title="devgate", version=__version__, lifespan=lifespan)
    app.state.shared = shared
    app.state.discovery = discovery or ZeroconfDiscovery()
    app.state.discovery_timeout = discovery_timeout

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins if cors_origins is not None else ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_error_handlers(app)

    app.include_router(_make_core_router())
    app.include_router(make_router())
    return app


def _make_core_router() -> APIRouter:
    router = APIRouter()

    @router.get("/health")
    async def health(shared: SharedState = Depends(get_shared)):
        return {"status": "ok", "devices": len(shared.devices)}

    @router.post("/login", response_model=LoginResponse)
    async def login(req: LoginRequest, shared: SharedState = Depends(get_shared)):
        session = await shared.login(req.password)
        return LoginResponse(token=session.token, created_at=session.created_at.isoformat())

    @router.post("/logout")
    async def logout(
        token: str = Depends(require_session),
        shared: SharedState = Depends(get_shared),
    ):
        await shared.logout(token)
        return {"ok": True}

    @router.get("/discover", dependencies=[Depends(require_session)])
    async def discover(
        request: Request,
        timeout: float | None = Query(default=None, gt=0, le=30),
        discovery: DiscoveryService = Depends(get_discovery),
    ):
        try:
            found = await discovery.discover(timeout or request.app.state.discovery_timeout)
        except DiscoveryError as e:
            logger.warning("Discovery failed: %s", e)
            raise UpstreamFailure("Failed to discover devices", cause=e) from e
        return [d.to_dict() for d in found]

    @router.get("/refresh-session", dependencies=[Depends(require_session)])
    async def refresh_session(
        device: str = Query(..., min_length=1),
        shared: SharedState = Depends(get_shared),
    ):
        await shared.refresh_device_session(device)
        return Response(status_code=200)

    @router.get("/devices", dependencies=[Depends(require_session)])
    async def list_devices(shared: SharedState = Depends(get_shared)):
        return await shared.list_devices()

    return router