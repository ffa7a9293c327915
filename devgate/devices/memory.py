"""In-process simulated device.

Keeps device state in a dict and answers every catalog action.  Used for
demos (``"driver": "memory"`` in the config file) and in tests.
"""

from __future__ import annotations

import secrets
from typing import Any

from .base import DeviceDriver, DriverError


class MemoryDeviceDriver(DeviceDriver):
    def __init__(self, model: str = "simulated", fail: bool = False) -> None:
        self.model = model
        self.fail = fail
        self.refresh_count = 0
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self._session: str | None = None
        self._state: dict[str, Any] = {
            "device_on": False,
            "brightness": 100,
            "color_temp": 2700,
            "hue": 0,
            "saturation": 100,
            "lighting_effect": None,
            "current_power_mw": 0,
            "today_energy_wh": 0,
        }

    @property
    def has_session(self) -> bool:
        return self._session is not None

    @property
    def state(self) -> dict[str, Any]:
        return dict(self._state)

    async def refresh_session(self) -> None:
        self.refresh_count += 1
        if self.fail:
            raise DriverError("Simulated device is offline")
        self._session = secrets.token_hex(8)

    async def invoke(self, action: str, params: dict[str, Any]) -> Any:
        self.calls.append((action, params))
        if self.fail:
            raise DriverError("Simulated device is offline")
        if self._session is None:
            raise DriverError("No active device session; refresh the session first")

        if action == "on":
            self._state["device_on"] = True
            self._state["current_power_mw"] = 5200
        elif action == "off":
            self._state["device_on"] = False
            self._state["current_power_mw"] = 0
        elif action == "get-device-info":
            return {"model": self.model, **self._state}
        elif action == "get-current-power":
            return {"current_power_mw": self._state["current_power_mw"]}
        elif action == "get-energy-usage":
            return {"today_energy_wh": self._state["today_energy_wh"]}
        elif action == "set-brightness":
            self._state["brightness"] = params["level"]
        elif action == "set-color-temperature":
            self._state["color_temp"] = params["kelvin"]
        elif action == "set-hue-saturation":
            self._state["hue"] = params["hue"]
            self._state["saturation"] = params["saturation"]
        elif action == "set-lighting-effect":
            self._state["lighting_effect"] = params["effect"]
        else:
            raise DriverError(f"Unsupported action: {action}")
        return None
