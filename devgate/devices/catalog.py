"""Device types and the actions each one supports.

The HTTP action routes are generated from :data:`CATALOG`, one route per
(device type, action) pair.  Actions that change device state take their
parameters from a pydantic model.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field


class DeviceType(str, Enum):
    PLUG = "plug"
    ENERGY_PLUG = "energy-plug"
    BULB = "bulb"
    COLOR_BULB = "color-bulb"
    LIGHT_STRIP = "light-strip"


# ── Action parameters ─────────────────────────────────────────────

class SetBrightnessParams(BaseModel):
    level: int = Field(ge=1, le=100)


class SetColorTemperatureParams(BaseModel):
    kelvin: int = Field(ge=2500, le=6500)


class SetHueSaturationParams(BaseModel):
    hue: int = Field(ge=0, le=360)
    saturation: int = Field(ge=1, le=100)


class SetLightingEffectParams(BaseModel):
    effect: str = Field(min_length=1)


@dataclass(frozen=True)
class ActionSpec:
    name: str
    method: str = "GET"
    params: type[BaseModel] | None = None
    description: str = ""

    @property
    def mutating(self) -> bool:
        return self.method != "GET"


ON = ActionSpec("on", "POST", description="Turn the device on")
OFF = ActionSpec("off", "POST", description="Turn the device off")
GET_DEVICE_INFO = ActionSpec("get-device-info", description="Device state and metadata")
GET_CURRENT_POWER = ActionSpec("get-current-power", description="Instantaneous power draw")
GET_ENERGY_USAGE = ActionSpec("get-energy-usage", description="Accumulated energy usage")
SET_BRIGHTNESS = ActionSpec("set-brightness", "POST", SetBrightnessParams)
SET_COLOR_TEMPERATURE = ActionSpec("set-color-temperature", "POST", SetColorTemperatureParams)
SET_HUE_SATURATION = ActionSpec("set-hue-saturation", "POST", SetHueSaturationParams)
SET_LIGHTING_EFFECT = ActionSpec("set-lighting-effect", "POST", SetLightingEffectParams)

_PLUG = (ON, OFF, GET_DEVICE_INFO)
_BULB = _PLUG + (SET_BRIGHTNESS,)
_COLOR_BULB = _BULB + (SET_COLOR_TEMPERATURE, SET_HUE_SATURATION)

CATALOG: dict[DeviceType, tuple[ActionSpec, ...]] = {
    DeviceType.PLUG: _PLUG,
    DeviceType.ENERGY_PLUG: _PLUG + (GET_CURRENT_POWER, GET_ENERGY_USAGE),
    DeviceType.BULB: _BULB,
    DeviceType.COLOR_BULB: _COLOR_BULB,
    DeviceType.LIGHT_STRIP: _COLOR_BULB + (SET_LIGHTING_EFFECT,),
}


def find_action(device_type: DeviceType, name: str) -> ActionSpec | None:
    for spec in CATALOG[device_type]:
        if spec.name == name:
            return spec
    return None
