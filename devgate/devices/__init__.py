"""Driver factory and device types for devgate.

Usage::

    from devgate.devices import get_driver
    driver = get_driver("http", base_url="http://192.168.1.40")
    driver = get_driver("memory")
"""

from __future__ import annotations

from typing import Any

from .base import DeviceDriver, DriverError
from .catalog import CATALOG, ActionSpec, DeviceType, find_action
from .http import HttpDeviceDriver
from .memory import MemoryDeviceDriver
from .registry import Device, DeviceRegistry

__all__ = [
    "ActionSpec",
    "CATALOG",
    "Device",
    "DeviceDriver",
    "DeviceRegistry",
    "DeviceType",
    "DriverError",
    "HttpDeviceDriver",
    "MemoryDeviceDriver",
    "find_action",
    "get_driver",
]

_DRIVERS = {
    "http": HttpDeviceDriver,
    "memory": MemoryDeviceDriver,
}


def get_driver(driver_name: str, **kwargs: Any) -> DeviceDriver:
    """Return a configured :class:`DeviceDriver`.

    *kwargs* are passed to the driver's constructor unchanged.
    """
    driver_name = driver_name.lower().replace("-", "_")
    cls = _DRIVERS.get(driver_name)
    if cls is None:
        raise ValueError(
            f"Unknown driver '{driver_name}'. "
            f"Choose from: {list(_DRIVERS)}"
        )
    return cls(**kwargs)
