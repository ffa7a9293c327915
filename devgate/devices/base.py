"""Abstract device driver interface for devgate.

A driver owns everything about talking to one physical device: its
transport, its session with the device and any retry policy.  devgate only
asks it to refresh that session and to run named actions.
"""

from __future__ import annotations

import abc
from typing import Any


class DriverError(Exception):
    """A device could not be reached or rejected a request."""


class DeviceDriver(abc.ABC):
    """Abstract interface for any device backend."""

    @abc.abstractmethod
    async def refresh_session(self) -> None:
        """(Re-)establish the session with the device.

        Raises :class:`DriverError` on failure.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def invoke(self, action: str, params: dict[str, Any]) -> Any:
        """Run *action* on the device and return a JSON-serialisable result.

        ``None`` means the action has no payload to report.  Raises
        :class:`DriverError` on failure.
        """
        raise NotImplementedError

    async def close(self) -> None:
        """Release transport resources. Default: nothing to release."""
        return None

    @property
    def has_session(self) -> bool:
        """Whether a device session is currently established."""
        return False
