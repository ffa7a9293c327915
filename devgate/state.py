"""Shared gateway state and the guard around it.

:class:`SharedState` bundles the credential, the device registry and the
session store behind one :class:`~devgate.locks.ReadWriteLock`.  There is
one instance per process; it is created at startup and handed to
:func:`devgate.api.create_app`, which exposes it to handlers as a
dependency.

Handlers never touch the registry or the store outside :meth:`read` or
:meth:`write`.  The helper coroutines below each run as a single critical
section and release the guard before returning.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, Iterable

from devgate.credentials import hash_credential, verify_credential
from devgate.devices import Device, DeviceRegistry, DeviceType, DriverError, find_action
from devgate.errors import BadRequest, NotFound, Unauthorized, UpstreamFailure
from devgate.locks import ReadWriteLock
from devgate.sessions import Session, SessionStore

logger = logging.getLogger(__name__)


class SharedState:
    def __init__(
        self,
        credential_hash: bytes,
        devices: DeviceRegistry,
        sessions: SessionStore,
    ) -> None:
        self._credential_hash = credential_hash
        self.devices = devices
        self.sessions = sessions
        self.lock = ReadWriteLock()

    @classmethod
    def init(
        cls,
        credential: str,
        devices: Iterable[Device],
        sessions_file: str | Path,
    ) -> SharedState:
        """Build the state from a resolved credential and configured devices.

        Raises ConfigError on duplicate device names and PersistenceFailure
        if an existing sessions file cannot be read.
        """
        registry = devices if isinstance(devices, DeviceRegistry) else DeviceRegistry(devices)
        store = SessionStore.load(sessions_file)
        return cls(hash_credential(credential), registry, store)

    # ── Guard ──────────────────────────────────────────────────────

    @asynccontextmanager
    async def read(self) -> AsyncIterator[SharedState]:
        async with self.lock.read():
            yield self

    @asynccontextmanager
    async def write(self) -> AsyncIterator[SharedState]:
        async with self.lock.write():
            yield self

    # ── Authentication ─────────────────────────────────────────────

    def check_credential(self, candidate: str) -> bool:
        return verify_credential(candidate, self._credential_hash)

    async def login(self, candidate: str) -> Session:
        """Issue and persist a session if *candidate* matches the credential."""
        # The credential is immutable, so the check needs no guard.
        if not await asyncio.to_thread(self.check_credential, candidate):
            logger.info("Rejected login attempt")
            raise Unauthorized("Invalid password")
        async with self.write():
            session = await self.sessions.issue()
        logger.info("Issued new session (%d active)", len(self.sessions))
        return session

    async def logout(self, token: str) -> None:
        async with self.write():
            await self.sessions.revoke(token)

    async def is_authorized(self, token: str) -> bool:
        async with self.read():
            return self.sessions.contains(token)

    # ── Devices ────────────────────────────────────────────────────

    def _get_device(self, name: str) -> Device:
        device = self.devices.get(name)
        if device is None:
            raise NotFound.device(name)
        return device

    async def refresh_device_session(self, name: str) -> None:
        """Re-establish *name*'s device session under the exclusive guard."""
        async with self.write():
            device = self._get_device(name)
            try:
                await device.refresh_session()
            except DriverError as e:
                logger.warning("Session refresh failed for %s: %s", name, e)
                raise UpstreamFailure(
                    "Failed to refresh device's session", cause=e, device=name
                ) from e
        logger.info("Refreshed session for %s", name)

    async def invoke_action(
        self,
        name: str,
        device_type: DeviceType,
        action: str,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Run *action* on device *name*, which must be of *device_type*."""
        async with self.read():
            device = self._get_device(name)
            if device.device_type != device_type:
                raise BadRequest(
                    f"Device {name} is not of type {device_type.value}",
                    device=name,
                    device_type=device.device_type.value,
                )
            if find_action(device.device_type, action) is None:
                raise BadRequest(f"Unsupported action {action} for {name}", device=name)
            try:
                return await device.invoke(action, params)
            except DriverError as e:
                logger.warning("Action %s failed for %s: %s", action, name, e)
                raise UpstreamFailure(
                    f"Failed to run {action} on {name}", cause=e, device=name
                ) from e

    async def list_devices(self) -> list[dict[str, Any]]:
        async with self.read():
            return [d.to_dict() for d in self.devices.values()]

    async def connect_devices(self) -> int:
        """Try to open a session with every device; returns how many succeeded.

        Failures are logged, not raised: an offline device can be brought up
        later through a session refresh.
        """
        connected = 0
        async with self.write():
            for device in self.devices.values():
                try:
                    await device.refresh_session()
                    connected += 1
                except DriverError as e:
                    logger.warning("Could not connect to %s at startup: %s", device.name, e)
        return connected

    async def close(self) -> None:
        await self.devices.close()
