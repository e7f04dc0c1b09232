"""Deployment strategy contract.

A strategy owns the vendor-specific mechanics of pushing configuration to one
device: backup, apply, verify and, when anything goes wrong, rollback.
Callers pick a strategy once per vendor (see ``create_strategy``) and then
treat every device the same way.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..config.settings import DeploySettings
from ..devices.base import Device
from ..devices.transport import RemoteConnection, RemoteTransport
from .errors import PreconditionError, TransportError
from .schema import ConfigBackup

logger = logging.getLogger(__name__)

# Failures raised by transports while connecting or talking to a device
TRANSPORT_EXCEPTIONS = (OSError, EOFError, asyncio.TimeoutError)


class DeploymentStrategy(ABC):
    """Abstract base class for configuration deployment strategies.

    Each ``deploy`` call is strictly sequential: at most one connection to the
    device is open at any time. Strategies hold no per-device state between
    calls, but nothing prevents two callers from targeting the same device at
    once; serializing that is the caller's job.
    """

    #: Vendor tags this strategy accepts
    vendors: tuple[str, ...] = ()

    def __init__(
        self,
        transport: RemoteTransport,
        settings: Optional[DeploySettings] = None,
    ):
        self.transport = transport
        self.settings = settings or DeploySettings()

    @property
    def timeout(self) -> float:
        return self.settings.timeout

    def supports(self, device: Device) -> bool:
        return device.vendor in self.vendors

    def _check_vendor(self, device: Device) -> None:
        if not self.supports(device):
            raise PreconditionError(
                f"{type(self).__name__} only supports {', '.join(self.vendors)} devices, "
                f"{device.id} is {device.vendor!r}",
                device_id=device.id,
                step="precondition",
            )

    @abstractmethod
    async def deploy(self, device: Device, desired_config: str) -> Optional[ConfigBackup]:
        """Push ``desired_config`` to ``device`` and verify it.

        Returns:
            The backup captured before the change, or None when the strategy
            relies on a device-side snapshot instead.

        Raises:
            DeploymentError: on any failure. Once the device has been touched,
                the error is a ``RolledBackError`` or ``RollbackFailedError``.
        """
        pass

    @abstractmethod
    async def rollback(self, device: Device, backup_config: str) -> None:
        """Restore a previously captured configuration.

        Raises:
            RollbackError: if the device could not be restored.
        """
        pass

    # Connection helpers

    async def _connect(self, device: Device, step: str) -> RemoteConnection:
        """Open a connection, translating transport failures."""
        try:
            return await self.transport.connect(
                device.management_address,
                self.settings.credentials,
                self.timeout,
                attempts=self.settings.connect_attempts,
            )
        except TRANSPORT_EXCEPTIONS as e:
            raise TransportError(
                f"failed to connect to {device.management_address}: {e}",
                device_id=device.id,
                step=step,
            ) from e

    async def _run(
        self,
        connection: RemoteConnection,
        device: Device,
        command: str,
        step: str,
    ) -> tuple[bool, str]:
        """Run one command, translating transport failures."""
        logger.debug(f"[{device.id}] {step}: {command}")
        try:
            return await connection.run(command)
        except TRANSPORT_EXCEPTIONS as e:
            raise TransportError(
                f"command execution failed during {step}: {e}",
                device_id=device.id,
                step=step,
            ) from e
