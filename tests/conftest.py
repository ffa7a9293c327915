"""pytest configuration for devgate tests."""

from __future__ import annotations

import pytest

from devgate.devices import Device, DeviceType, MemoryDeviceDriver
from devgate.state import SharedState

PASSWORD = "secret123"


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


@pytest.fixture()
def sessions_file(tmp_path):
    return tmp_path / "data" / "sessions.json"


@pytest.fixture()
def devices():
    return [
        Device("kitchen-plug", DeviceType.ENERGY_PLUG, MemoryDeviceDriver(model="P110")),
        Device("desk-lamp", DeviceType.COLOR_BULB, MemoryDeviceDriver(model="L530")),
    ]


@pytest.fixture()
def shared(devices, sessions_file):
    return SharedState.init(credential=PASSWORD, devices=devices, sessions_file=sessions_file)
