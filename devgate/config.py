"""Configuration for devgate.

Settings come from three places, later ones winning:

1. the JSON config file (devices, CORS origins, discovery settings),
2. ``DEVGATE_*`` environment variables,
3. explicit overrides (the command line).

Example config file::

    {
      "devices": [
        {"name": "living-room-plug", "device_type": "energy-plug",
         "driver": "http", "options": {"base_url": "http://192.168.1.40"}}
      ],
      "cors_origins": ["*"]
    }
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from devgate.devices import Device, DeviceType, get_driver
from devgate.discovery import DEFAULT_TIMEOUT, DEVICE_SERVICE
from devgate.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "./devgate.json"
DEFAULT_SESSIONS_FILE = "./data/sessions.json"


# ── Config file schema ────────────────────────────────────────────

class DeviceConfig(BaseModel):
    name: str = Field(min_length=1)
    device_type: DeviceType
    driver: str = "http"
    options: dict[str, Any] = Field(default_factory=dict)


class DiscoveryConfig(BaseModel):
    service_type: str = DEVICE_SERVICE
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, le=30)


class ConfigFile(BaseModel):
    devices: list[DeviceConfig] = Field(default_factory=list)
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    sessions_file: str | None = None


# ── Resolved configuration ────────────────────────────────────────

@dataclass
class GatewayConfig:
    """Everything the gateway needs before the core starts."""

    host: str = "0.0.0.0"
    port: int = 8000
    auth_password: str | None = None
    password_file: Path | None = None
    sessions_file: Path = Path(DEFAULT_SESSIONS_FILE)
    devices: list[DeviceConfig] = field(default_factory=list)
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    discovery: DiscoveryConfig = field(default_factory=DiscoveryConfig)

    @classmethod
    def load(cls, path: str | Path | None = None, **overrides: Any) -> GatewayConfig:
        """Merge the config file at *path*, the environment and *overrides*.

        ``None`` overrides are ignored so argparse defaults don't mask the
        environment.  A missing file is only an error when *path* was given
        explicitly.
        """
        explicit = path is not None
        path = Path(path or os.environ.get("DEVGATE_CONFIG", DEFAULT_CONFIG_PATH))
        file_cfg = _read_config_file(path, required=explicit)

        cfg = cls(
            devices=file_cfg.devices,
            cors_origins=file_cfg.cors_origins,
            discovery=file_cfg.discovery,
        )
        if file_cfg.sessions_file:
            cfg.sessions_file = Path(file_cfg.sessions_file)

        env = os.environ
        if "DEVGATE_HOST" in env:
            cfg.host = env["DEVGATE_HOST"]
        if "DEVGATE_PORT" in env:
            cfg.port = _parse_port(env["DEVGATE_PORT"])
        if "DEVGATE_PASSWORD" in env:
            cfg.auth_password = env["DEVGATE_PASSWORD"]
        if "DEVGATE_PASSWORD_FILE" in env:
            cfg.password_file = Path(env["DEVGATE_PASSWORD_FILE"])
        if "DEVGATE_SESSIONS_FILE" in env:
            cfg.sessions_file = Path(env["DEVGATE_SESSIONS_FILE"])

        for key, value in overrides.items():
            if value is None:
                continue
            if not hasattr(cfg, key):
                raise ConfigError(f"Unknown config option: {key}")
            if key == "port":
                value = _parse_port(value)
            elif key in ("password_file", "sessions_file"):
                value = Path(value)
            setattr(cfg, key, value)

        return cfg

    def build_devices(self) -> list[Device]:
        """Instantiate a :class:`Device` (and its driver) per configured entry."""
        devices = []
        for entry in self.devices:
            try:
                driver = get_driver(entry.driver, **entry.options)
            except (ValueError, TypeError) as e:
                raise ConfigError(f"Invalid driver config for device {entry.name}: {e}") from e
            devices.append(Device(entry.name, entry.device_type, driver))
        return devices


def _read_config_file(path: Path, required: bool) -> ConfigFile:
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        logger.warning("Config not found at %s, starting with no devices", path)
        return ConfigFile()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    try:
        return ConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid config file {path}: {e}") from e


def _parse_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid port: {value!r}")
    if not 0 < port < 65536:
        raise ConfigError(f"Port out of range: {port}")
    return port
