"""Local-network device discovery.

Devices announce themselves over mDNS as ``_devgate-device._tcp.local.``
with TXT properties such as ``model`` and ``type``.  A discovery request
runs a one-shot browse for *timeout* seconds and returns what answered.
Discovery never touches :class:`devgate.state.SharedState`.
"""

from __future__ import annotations

import abc
import asyncio
import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Any

from zeroconf import ServiceBrowser, Zeroconf

logger = logging.getLogger(__name__)

DEVICE_SERVICE = "_devgate-device._tcp.local."
DEFAULT_TIMEOUT = 3.0


class DiscoveryError(Exception):
    """The discovery mechanism itself failed (not "nothing found")."""


@dataclass
class DeviceDescriptor:
    """A device seen on the network."""

    name: str
    ip_address: str
    port: int = 80
    model: str = ""
    device_type: str = ""
    properties: dict[str, str] = field(default_factory=dict)
    discovery_method: str = "mdns"
    discovered_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class DiscoveryService(abc.ABC):
    @abc.abstractmethod
    async def discover(self, timeout: float = DEFAULT_TIMEOUT) -> list[DeviceDescriptor]:
        """Return devices found within *timeout* seconds.

        Raises :class:`DiscoveryError` if the query could not be run.
        """
        raise NotImplementedError


class StaticDiscovery(DiscoveryService):
    """Returns a fixed list; for networks without mDNS and for tests."""

    def __init__(self, devices: list[DeviceDescriptor] | None = None) -> None:
        self._devices = list(devices or [])

    async def discover(self, timeout: float = DEFAULT_TIMEOUT) -> list[DeviceDescriptor]:
        return list(self._devices)


class ZeroconfDiscovery(DiscoveryService):
    """One-shot mDNS browse for :data:`DEVICE_SERVICE`."""

    def __init__(self, service_type: str = DEVICE_SERVICE) -> None:
        self.service_type = service_type

    async def discover(self, timeout: float = DEFAULT_TIMEOUT) -> list[DeviceDescriptor]:
        collector = _Collector(self.service_type)
        try:
            zc = Zeroconf()
        except OSError as e:
            raise DiscoveryError(f"Could not open mDNS socket: {e}") from e
        try:
            browser = ServiceBrowser(zc, self.service_type, collector)
            await asyncio.sleep(timeout)
            browser.cancel()
        except Exception as e:
            raise DiscoveryError(f"mDNS query failed: {e}") from e
        finally:
            zc.close()

        found = collector.results()
        logger.info("Discovery complete: %d device(s) found", len(found))
        return found


class _Collector:
    """Zeroconf service listener that records every resolved device."""

    def __init__(self, service_type: str) -> None:
        self._service_type = service_type
        self._found: dict[str, DeviceDescriptor] = {}
        self._lock = threading.Lock()

    def add_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        info = zc.get_service_info(type_, name)
        if not info or not info.parsed_addresses():
            logger.debug("Could not resolve %s", name)
            return
        props = {
            k.decode() if isinstance(k, bytes) else k:
            v.decode() if isinstance(v, bytes) else (v or "")
            for k, v in (info.properties or {}).items()
        }
        descriptor = DeviceDescriptor(
            name=name.replace(f".{self._service_type}", ""),
            ip_address=info.parsed_addresses()[0],
            port=info.port or 80,
            model=props.get("model", ""),
            device_type=props.get("type", ""),
            properties=props,
        )
        with self._lock:
            self._found[descriptor.ip_address] = descriptor

    def update_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        self.add_service(zc, type_, name)

    def remove_service(self, zc: Zeroconf, type_: str, name: str) -> None:
        logger.debug("Device service removed: %s", name)

    def results(self) -> list[DeviceDescriptor]:
        with self._lock:
            return list(self._found.values())
