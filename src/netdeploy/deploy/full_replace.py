"""Full-replacement deployment for devices that accept a whole-config replace.

Workflow per ``deploy`` call, each step on its own connection:
1. Backup: ``show running-config`` captured as a ``ConfigBackup``
2. Apply: ``configure replace terminal`` + every config line + ``end`` +
   ``write memory``, streamed with ``line_delay`` between lines
3. Settle, then verify: re-read the running config and compare critical lines
4. On apply or verify failure: replay the backup the same way as step 2

A failure during backup aborts before anything changed on the device.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import NoReturn

from ..devices.base import Device
from ..utils.logging_config import timed_section
from .comparator import config_matches
from .errors import (
    ApplyError,
    DeploymentError,
    PreconditionError,
    RollbackError,
    RollbackFailedError,
    RolledBackError,
    TransportError,
    VerificationError,
)
from .schema import ConfigBackup
from .strategy import DeploymentStrategy, TRANSPORT_EXCEPTIONS

logger = logging.getLogger(__name__)

SHOW_CONFIG_COMMANDS = {
    "cisco": "show running-config",
    "juniper": "show configuration",
}

ROLLED_BACK_MESSAGES = {
    "deployment": "deployment failed, successfully rolled back",
    "verification": "verification failed, rolled back",
}


def build_replace_commands(config: str) -> list[str]:
    """Lines streamed into the CLI to replace the running configuration."""
    return [
        "configure replace terminal",
        *config.splitlines(),
        "",
        "end",
        "write memory",
        "exit",
    ]


class FullReplaceStrategy(DeploymentStrategy):
    """Atomically replace the entire running configuration."""

    vendors = ("cisco",)

    @property
    def line_delay(self) -> float:
        return self.settings.line_delay

    @property
    def settle_time(self) -> float:
        return self.settings.settle_time

    async def backup_current_config(self, device: Device) -> ConfigBackup:
        """Capture the device's running configuration."""
        command = SHOW_CONFIG_COMMANDS.get(device.vendor)
        if command is None:
            raise PreconditionError(
                f"unsupported vendor: {device.vendor}", device_id=device.id, step="backup"
            )

        async with timed_section("backup", device_id=device.id):
            connection = await self._connect(device, "backup")
            async with connection:
                success, output = await self._run(connection, device, command, "backup")

        if not success:
            raise TransportError(
                f"failed to backup configuration: {output}", device_id=device.id, step="backup"
            )

        return ConfigBackup(
            device_id=device.id,
            timestamp=datetime.now(timezone.utc),
            config=output,
        )

    async def deploy(self, device: Device, desired_config: str) -> ConfigBackup:
        self._check_vendor(device)

        backup = await self.backup_current_config(device)
        logger.info(f"Created backup for device {device.id} at {backup.timestamp.isoformat()}")

        logger.info(
            f"Deploying full configuration to {device.hostname} ({device.management_address})"
        )
        try:
            await self._push(device, desired_config, "apply")
        except DeploymentError as e:
            await self._rollback_after_failure(device, backup, e, "deployment")

        try:
            await self._verify(device, desired_config)
        except DeploymentError as e:
            await self._rollback_after_failure(device, backup, e, "verification")

        logger.info(f"Configuration successfully deployed to {device.hostname}")
        return backup

    async def rollback(self, device: Device, backup_config: str) -> None:
        self._check_vendor(device)
        logger.info(f"Rolling back configuration on {device.hostname}")

        try:
            await self._push(device, backup_config, "rollback")
        except DeploymentError as e:
            raise RollbackError(
                f"rollback failed: {e}", device_id=device.id, step="rollback"
            ) from e

        logger.info(f"Configuration successfully rolled back on {device.hostname}")

    async def _push(self, device: Device, config: str, step: str) -> None:
        """Stream a full configuration replace over an interactive shell."""
        lines = build_replace_commands(config)

        async with timed_section(step, device_id=device.id, lines=len(lines)):
            connection = await self._connect(device, step)
            async with connection:
                try:
                    success, output = await connection.send_lines(lines, self.line_delay)
                except TRANSPORT_EXCEPTIONS as e:
                    raise TransportError(
                        f"session error: {e}", device_id=device.id, step=step
                    ) from e

        logger.debug(f"[{device.id}] {step} output:\n{output}")
        if not success:
            raise ApplyError(
                f"session exited with an error: {output.strip()[-500:]}",
                device_id=device.id,
                step=step,
            )

    async def _verify(self, device: Device, expected_config: str) -> None:
        """Re-read the running config after the settle time and compare."""
        await asyncio.sleep(self.settle_time)

        command = SHOW_CONFIG_COMMANDS[device.vendor]
        async with timed_section("verify", device_id=device.id):
            connection = await self._connect(device, "verify")
            async with connection:
                success, current = await self._run(connection, device, command, "verify")

        if not success:
            raise TransportError(
                f"failed to retrieve current configuration: {current}",
                device_id=device.id,
                step="verify",
            )

        if not config_matches(current, expected_config):
            raise VerificationError(
                "configuration verification failed: deployed config does not match expected",
                device_id=device.id,
                step="verify",
            )

    async def _rollback_after_failure(
        self,
        device: Device,
        backup: ConfigBackup,
        error: DeploymentError,
        stage: str,
    ) -> NoReturn:
        """Restore the backup after ``error`` and raise the combined outcome."""
        logger.warning(f"{stage.capitalize()} failed on {device.id}, attempting rollback: {error}")

        try:
            await self.rollback(device, backup.config)
        except DeploymentError as rollback_error:
            logger.critical(
                f"{device.id} may be in an inconsistent state, manual recovery required: "
                f"{rollback_error}"
            )
            raise RollbackFailedError(
                f"{stage} failed and rollback failed",
                error,
                rollback_error,
                device_id=device.id,
                step=error.step,
                backup=backup,
            ) from error

        raise RolledBackError(
            f"{ROLLED_BACK_MESSAGES[stage]}: {error}",
            error,
            device_id=device.id,
            step=error.step,
            backup=backup,
        ) from error
