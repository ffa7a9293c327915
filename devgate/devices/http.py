"""Driver for devices that expose a small JSON-over-HTTP API.

The device is expected to serve:

* ``POST /session`` with ``{"username", "password"}`` -> ``{"token": "..."}``
* ``POST /rpc`` with ``{"method", "params"}`` and a bearer token ->
  ``{"result": ...}`` or ``{"error": {"code", "message"}}``
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .base import DeviceDriver, DriverError

logger = logging.getLogger(__name__)


class HttpDeviceDriver(DeviceDriver):
    """Talks to one device at *base_url*."""

    def __init__(
        self,
        base_url: str,
        username: str = "",
        password: str = "",
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._token: str | None = None

    @property
    def has_session(self) -> bool:
        return self._token is not None

    # ------------------------------------------------------------------
    # DeviceDriver interface
    # ------------------------------------------------------------------

    async def refresh_session(self) -> None:
        payload = {"username": self.username, "password": self.password}
        try:
            resp = await self._client.post("/session", json=payload)
            resp.raise_for_status()
            token = resp.json().get("token")
        except httpx.HTTPStatusError as e:
            raise DriverError(
                f"Device at {self.base_url} refused login ({e.response.status_code})"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise DriverError(f"Device at {self.base_url} unreachable: {e}") from e
        if not token:
            raise DriverError(f"Device at {self.base_url} returned no session token")
        self._token = token
        logger.debug("Session established with %s", self.base_url)

    async def invoke(self, action: str, params: dict[str, Any]) -> Any:
        if self._token is None:
            raise DriverError("No active device session; refresh the session first")

        headers = {"Authorization": f"Bearer {self._token}"}
        try:
            resp = await self._client.post(
                "/rpc", json={"method": action, "params": params}, headers=headers
            )
            if resp.status_code == 401:
                raise DriverError("Device session expired; refresh the session")
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as e:
            raise DriverError(
                f"Device at {self.base_url} failed '{action}' ({e.response.status_code})"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise DriverError(f"Device at {self.base_url} unreachable: {e}") from e

        if not isinstance(data, dict):
            raise DriverError(f"Device at {self.base_url} sent an unexpected reply")
        error = data.get("error")
        if error:
            code = error.get("code", "unknown")
            raise DriverError(f"Device rejected '{action}': {error.get('message', '')} ({code})")
        return data.get("result")

    async def close(self) -> None:
        await self._client.aclose()
