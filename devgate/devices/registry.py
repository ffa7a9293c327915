"""Device handles and the name-keyed registry that holds them."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from devgate.devices.base import DeviceDriver
from devgate.devices.catalog import DeviceType
from devgate.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class Device:
    """A configured device and the driver that talks to it."""

    name: str
    device_type: DeviceType
    driver: DeviceDriver
    session_refreshed_at: datetime | None = field(default=None, compare=False)

    async def refresh_session(self) -> None:
        await self.driver.refresh_session()
        self.session_refreshed_at = datetime.now(timezone.utc)

    async def invoke(self, action: str, params: dict[str, Any] | None = None) -> Any:
        return await self.driver.invoke(action, params or {})

    def to_dict(self) -> dict[str, Any]:
        refreshed = self.session_refreshed_at
        return {
            "name": self.name,
            "device_type": self.device_type.value,
            "has_session": self.driver.has_session,
            "session_refreshed_at": refreshed.isoformat() if refreshed else None,
        }


class DeviceRegistry(Mapping[str, Device]):
    """Read-only mapping of device name to :class:`Device`.

    The set of devices is fixed at construction; only the devices
    themselves change, through :meth:`Device.refresh_session`.
    """

    def __init__(self, devices: Iterable[Device] = ()) -> None:
        self._devices: dict[str, Device] = {}
        for device in devices:
            if device.name in self._devices:
                raise ConfigError(f"Duplicate device name: {device.name}")
            self._devices[device.name] = device

    def __getitem__(self, name: str) -> Device:
        return self._devices[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._devices)

    def __len__(self) -> int:
        return len(self._devices)

    def __repr__(self) -> str:
        return f"DeviceRegistry({sorted(self._devices)!r})"

    async def close(self) -> None:
        for device in self._devices.values():
            try:
                await device.driver.close()
            except Exception:
                logger.exception("Failed to close driver for %s", device.name)
