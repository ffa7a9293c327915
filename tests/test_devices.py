"""Tests for device drivers, the driver factory and the device registry."""

from __future__ import annotations

import json

import httpx
import pytest

from devgate.devices import (
    CATALOG,
    Device,
    DeviceRegistry,
    DeviceType,
    DriverError,
    HttpDeviceDriver,
    MemoryDeviceDriver,
    find_action,
    get_driver,
)
from devgate.errors import ConfigError


class TestGetDriver:
    def test_http(self):
        driver = get_driver("http", base_url="http://192.168.1.40/")
        assert isinstance(driver, HttpDeviceDriver)
        assert driver.base_url == "http://192.168.1.40"

    def test_memory(self):
        assert isinstance(get_driver("Memory"), MemoryDeviceDriver)

    def test_unknown_driver_raises(self):
        with pytest.raises(ValueError, match="Unknown driver"):
            get_driver("zigbee")

    def test_bad_kwargs_raise_type_error(self):
        with pytest.raises(TypeError):
            get_driver("memory", base_url="http://x")


class TestCatalog:
    def test_every_type_has_basic_actions(self):
        for device_type in DeviceType:
            names = [a.name for a in CATALOG[device_type]]
            assert {"on", "off", "get-device-info"} <= set(names)
            assert len(names) == len(set(names))

    def test_find_action(self):
        assert find_action(DeviceType.LIGHT_STRIP, "set-lighting-effect").mutating
        assert not find_action(DeviceType.ENERGY_PLUG, "get-energy-usage").mutating
        assert find_action(DeviceType.PLUG, "set-brightness") is None


class TestDeviceRegistry:
    def test_mapping_interface(self):
        devices = [Device(f"d{i}", DeviceType.PLUG, MemoryDeviceDriver()) for i in range(3)]
        registry = DeviceRegistry(devices)
        assert len(registry) == 3
        assert registry["d1"] is devices[1]
        assert registry.get("missing") is None
        assert set(registry) == {"d0", "d1", "d2"}

    def test_duplicates_rejected(self):
        with pytest.raises(ConfigError):
            DeviceRegistry([
                Device("a", DeviceType.PLUG, MemoryDeviceDriver()),
                Device("a", DeviceType.BULB, MemoryDeviceDriver()),
            ])

    @pytest.mark.asyncio
    async def test_close_survives_driver_errors(self):
        class BrokenClose(MemoryDeviceDriver):
            async def close(self) -> None:
                raise RuntimeError("already closed")

        ok = MemoryDeviceDriver()
        registry = DeviceRegistry([
            Device("broken", DeviceType.PLUG, BrokenClose()),
            Device("ok", DeviceType.PLUG, ok),
        ])
        await registry.close()


class TestDevice:
    @pytest.mark.asyncio
    async def test_refresh_records_time_only_on_success(self):
        device = Device("lamp", DeviceType.BULB, MemoryDeviceDriver(fail=True))
        with pytest.raises(DriverError):
            await device.refresh_session()
        assert device.session_refreshed_at is None

        device.driver.fail = False
        await device.refresh_session()
        assert device.session_refreshed_at is not None
        assert device.to_dict()["has_session"] is True


class TestMemoryDeviceDriver:
    @pytest.mark.asyncio
    async def test_requires_session(self):
        driver = MemoryDeviceDriver()
        with pytest.raises(DriverError, match="refresh the session"):
            await driver.invoke("on", {})

    @pytest.mark.asyncio
    async def test_state_changes(self):
        driver = MemoryDeviceDriver(model="L900")
        await driver.refresh_session()
        await driver.invoke("on", {})
        await driver.invoke("set-lighting-effect", {"effect": "aurora"})
        info = await driver.invoke("get-device-info", {})
        assert info["device_on"] is True
        assert info["lighting_effect"] == "aurora"
        assert info["model"] == "L900"

    @pytest.mark.asyncio
    async def test_unknown_action(self):
        driver = MemoryDeviceDriver()
        await driver.refresh_session()
        with pytest.raises(DriverError, match="Unsupported"):
            await driver.invoke("self-destruct", {})


# ── HTTP driver ───────────────────────────────────────────────────

def _driver(handler) -> HttpDeviceDriver:
    client = httpx.AsyncClient(base_url="http://device.local", transport=httpx.MockTransport(handler))
    return HttpDeviceDriver("http://device.local", username="user", password="pw", client=client)


class TestHttpDeviceDriver:
    @pytest.mark.asyncio
    async def test_refresh_then_invoke(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            if request.url.path == "/session":
                assert json.loads(request.content) == {"username": "user", "password": "pw"}
                return httpx.Response(200, json={"token": "tok-1"})
            body = json.loads(request.content)
            return httpx.Response(200, json={"result": {"echo": body["method"], **body["params"]}})

        driver = _driver(handler)
        await driver.refresh_session()
        assert driver.has_session
        result = await driver.invoke("set-brightness", {"level": 10})
        assert result == {"echo": "set-brightness", "level": 10}
        assert seen[-1].headers["Authorization"] == "Bearer tok-1"
        await driver.close()

    @pytest.mark.asyncio
    async def test_invoke_without_session(self):
        driver = _driver(lambda request: httpx.Response(500))
        with pytest.raises(DriverError, match="No active device session"):
            await driver.invoke("on", {})

    @pytest.mark.asyncio
    async def test_login_refused(self):
        driver = _driver(lambda request: httpx.Response(403))
        with pytest.raises(DriverError, match="refused login"):
            await driver.refresh_session()
        assert not driver.has_session

    @pytest.mark.asyncio
    async def test_missing_token(self):
        driver = _driver(lambda request: httpx.Response(200, json={}))
        with pytest.raises(DriverError, match="no session token"):
            await driver.refresh_session()

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        driver = _driver(handler)
        with pytest.raises(DriverError, match="unreachable"):
            await driver.refresh_session()

    @pytest.mark.asyncio
    async def test_expired_session(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/session":
                return httpx.Response(200, json={"token": "tok"})
            return httpx.Response(401)

        driver = _driver(handler)
        await driver.refresh_session()
        with pytest.raises(DriverError, match="expired"):
            await driver.invoke("on", {})

    @pytest.mark.asyncio
    async def test_device_error_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/session":
                return httpx.Response(200, json={"token": "tok"})
            return httpx.Response(200, json={"error": {"code": -1008, "message": "bad params"}})

        driver = _driver(handler)
        await driver.refresh_session()
        with pytest.raises(DriverError, match=r"bad params \(-1008\)"):
            await driver.invoke("set-brightness", {"level": 1})
