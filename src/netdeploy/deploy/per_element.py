"""Per-element deployment for devices with a transactional candidate config.

The desired state of a ``Device`` is decomposed into small ``ConfigElement``
changes. Each one is applied and checked on its own channel; the first
failure stops the run and rolls the candidate back to the snapshot taken at
the start. Only when every element passed is the candidate committed.

Element order is fixed: interfaces, services, VLANs, static routes.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional

from ..config.settings import DeploySettings
from ..devices.base import Device
from ..devices.transport import RemoteConnection, RemoteTransport
from ..utils.logging_config import timed_section
from .classifier import ResponseClassifier, SubstringClassifier
from .errors import (
    ApplyError,
    DeploymentError,
    PreconditionError,
    RollbackError,
    RollbackFailedError,
    RolledBackError,
    TransportError,
)
from .schema import (
    ConfigElement,
    ElementOperation,
    ElementUpdateResult,
    SnapshotHandle,
)
from .strategy import DeploymentStrategy

logger = logging.getLogger(__name__)

SNAPSHOT_COMMAND = "request system snapshot slice alternate media internal"
SNAPSHOT_ROLLBACK_COMMAND = "configure; rollback; commit and-quit"
COMMIT_COMMAND = "configure; commit and-quit"

# Unrecognized masks fall back to a host route
MASK_PREFIX_LENGTHS = {
    "255.255.255.252": 30,
    "255.255.255.0": 24,
    "255.255.0.0": 16,
    "255.0.0.0": 8,
}
DEFAULT_PREFIX_LENGTH = 32


def mask_to_prefix_length(mask: str) -> int:
    return MASK_PREFIX_LENGTHS.get(mask, DEFAULT_PREFIX_LENGTH)


def decompose_device(device: Device) -> list[ConfigElement]:
    """Derive the ordered list of configuration elements for a device.

    Enabled interfaces produce no element for their admin state; only
    disabled ones get a ``disable`` element.
    """
    elements: list[ConfigElement] = []
    SET = ElementOperation.SET

    for iface in device.interfaces:
        path = f"interfaces {iface.name}"
        if iface.description:
            elements.append(ConfigElement(
                type="interface",
                path=path,
                operation=SET,
                value=f'description "{iface.description}"',
                description=f"Set description for {iface.name}",
            ))
        if iface.ip_address:
            prefix = mask_to_prefix_length(iface.subnet_mask)
            elements.append(ConfigElement(
                type="interface",
                path=f"{path} unit 0 family inet",
                operation=SET,
                value=f"address {iface.ip_address}/{prefix}",
                description=f"Set IP address for {iface.name}",
            ))
        if iface.mtu > 0:
            elements.append(ConfigElement(
                type="interface",
                path=path,
                operation=SET,
                value=f"mtu {iface.mtu}",
                description=f"Set MTU for {iface.name}",
            ))
        if not iface.enabled:
            elements.append(ConfigElement(
                type="interface",
                path=path,
                operation=SET,
                value="disable",
                description=f"Disable {iface.name}",
            ))

    ntp = device.services.ntp
    if ntp.enabled:
        for server in ntp.servers:
            elements.append(ConfigElement(
                type="service",
                path="system ntp",
                operation=SET,
                value=f"server {server}",
                description=f"Add NTP server {server}",
            ))

    snmp = device.services.snmp
    if snmp.enabled:
        elements.extend([
            ConfigElement(
                type="service",
                path=f"snmp community {snmp.community}",
                operation=SET,
                value="authorization read-only",
                description="Configure SNMP community",
            ),
            ConfigElement(
                type="service",
                path="snmp",
                operation=SET,
                value=f'location "{snmp.location}"',
                description="Set SNMP location",
            ),
            ConfigElement(
                type="service",
                path="snmp",
                operation=SET,
                value=f'contact "{snmp.contact}"',
                description="Set SNMP contact",
            ),
        ])

    for vlan in device.vlans:
        elements.append(ConfigElement(
            type="vlan",
            path=f"vlans {vlan.name}",
            operation=SET,
            value=f"vlan-id {vlan.id}",
            description=f"Configure VLAN {vlan.name}",
        ))
        if vlan.description:
            elements.append(ConfigElement(
                type="vlan",
                path=f"vlans {vlan.name}",
                operation=SET,
                value=f'description "{vlan.description}"',
                description=f"Set VLAN {vlan.name} description",
            ))

    if device.routing is not None:
        for route in device.routing.static_routes:
            elements.append(ConfigElement(
                type="routing",
                path="routing-options static",
                operation=SET,
                value=f"route {route.destination} next-hop {route.next_hop}",
                description=f"Add static route to {route.destination}",
            ))

    return elements


def build_element_command(element: ConfigElement) -> str:
    """Translate an element into a configure / check / exit command."""
    if element.operation == ElementOperation.SET:
        change = f"set {element.path} {element.value}"
    elif element.operation == ElementOperation.DELETE:
        change = f"delete {element.path}"
    elif element.operation == ElementOperation.EDIT:
        change = f"edit {element.path}; set {element.value}; top"
    else:
        raise PreconditionError(f"unsupported operation: {element.operation}")
    return f"configure; {change}; commit check; exit"


def build_commands(elements: list[ConfigElement]) -> list[str]:
    """Render elements as a single candidate-configuration script."""
    commands = ["configure"]
    for element in elements:
        if element.operation == ElementOperation.SET:
            commands.append(f"set {element.path} {element.value}")
        elif element.operation == ElementOperation.DELETE:
            commands.append(f"delete {element.path}")
        elif element.operation == ElementOperation.EDIT:
            commands.extend([f"edit {element.path}", f"set {element.value}", "up"])
    commands.append("commit and-quit")
    return commands


def interface_update_elements(interface_name: str, updates: dict[str, Any]) -> list[ConfigElement]:
    """Elements for an ad-hoc interface change.

    Recognized keys: ``description`` (str), ``mtu`` (int), ``enabled`` (bool).
    Unknown keys and values of the wrong type are ignored.
    """
    path = f"interfaces {interface_name}"
    elements = []

    description = updates.get("description")
    if isinstance(description, str):
        elements.append(ConfigElement(
            type="interface",
            path=path,
            operation=ElementOperation.SET,
            value=f'description "{description}"',
            description="Update interface description",
        ))

    mtu = updates.get("mtu")
    if isinstance(mtu, int) and not isinstance(mtu, bool):
        elements.append(ConfigElement(
            type="interface",
            path=path,
            operation=ElementOperation.SET,
            value=f"mtu {mtu}",
            description="Update interface MTU",
        ))

    enabled = updates.get("enabled")
    if enabled is False:
        elements.append(ConfigElement(
            type="interface",
            path=path,
            operation=ElementOperation.SET,
            value="disable",
            description="Disable interface",
        ))
    elif enabled is True:
        elements.append(ConfigElement(
            type="interface",
            path=f"{path} disable",
            operation=ElementOperation.DELETE,
            description="Enable interface",
        ))

    return elements


class PerElementStrategy(DeploymentStrategy):
    """Apply desired state one element at a time with snapshot rollback.

    Args:
        transport: Remote transport used to reach devices
        settings: Deployment settings (timeouts, credentials)
        classifier: Decides whether command output reports a failure
    """

    vendors = ("juniper",)

    def __init__(
        self,
        transport: RemoteTransport,
        settings: Optional[DeploySettings] = None,
        classifier: Optional[ResponseClassifier] = None,
    ):
        super().__init__(transport, settings)
        self.classifier = classifier or SubstringClassifier()

    def preview(self, device: Device) -> list[str]:
        """Commands a deployment of ``device`` would configure, without connecting."""
        self._check_vendor(device)
        return build_commands(decompose_device(device))

    async def deploy(self, device: Device, desired_config: str = "") -> None:
        """Deploy the device's desired state.

        ``desired_config`` is accepted for interface compatibility; elements
        are derived from ``device`` itself.
        """
        self._check_vendor(device)

        elements = decompose_device(device)
        if not elements:
            raise PreconditionError(
                "no configuration elements to deploy", device_id=device.id, step="precondition"
            )

        logger.info(
            f"Deploying {len(elements)} configuration elements to "
            f"{device.hostname} ({device.management_address})"
        )
        _, error = await self.deploy_elements(device, elements)
        if error is not None:
            raise error

        logger.info(f"Successfully deployed configuration to {device.hostname}")

    async def deploy_elements(
        self,
        device: Device,
        elements: list[ConfigElement],
    ) -> tuple[list[ElementUpdateResult], Optional[DeploymentError]]:
        """Apply elements in order, stopping at the first failure.

        Returns:
            Tuple of (one result per attempted element in order, terminal
            error or None). After a failure the last result is the failed
            element and the error says whether the rollback worked.

        Raises:
            PreconditionError: wrong vendor or nothing to apply; the device
                is not contacted.
        """
        self._check_vendor(device)
        if not elements:
            raise PreconditionError(
                "no configuration elements to deploy", device_id=device.id, step="precondition"
            )

        results: list[ElementUpdateResult] = []

        try:
            connection = await self._connect(device, "connect")
        except TransportError as e:
            return results, e

        async with connection:
            snapshot = await self._create_snapshot(connection, device)

            for index, element in enumerate(elements, start=1):
                logger.info(
                    f"Applying element {index}/{len(elements)}: "
                    f"{element.operation.value} {element.path}"
                )
                timestamp = datetime.now(timezone.utc)
                start = time.perf_counter()
                try:
                    await self._apply_element(connection, device, element)
                except DeploymentError as e:
                    results.append(ElementUpdateResult(
                        element=element,
                        success=False,
                        duration=time.perf_counter() - start,
                        timestamp=timestamp,
                        error=e,
                    ))
                    logger.error(f"Failed to apply element {element.path}: {e}")
                    failure = ApplyError(
                        f"failed to apply element {element.path}: {e}",
                        device_id=device.id,
                        step="apply",
                    )
                    failure.__cause__ = e
                    return results, await self._rollback_after_failure(
                        connection, device, snapshot, failure
                    )

                results.append(ElementUpdateResult(
                    element=element,
                    success=True,
                    duration=time.perf_counter() - start,
                    timestamp=timestamp,
                ))
                logger.debug(f"Successfully applied element {element.path}")

            try:
                await self._commit(connection, device)
            except DeploymentError as e:
                return results, await self._rollback_after_failure(
                    connection, device, snapshot, e
                )

        return results, None

    async def update_interface(
        self,
        device: Device,
        interface_name: str,
        updates: dict[str, Any],
    ) -> list[ElementUpdateResult]:
        """Change a single interface without deriving the full desired state.

        Raises:
            PreconditionError: if ``updates`` holds nothing applicable.
            DeploymentError: if applying or committing failed.
        """
        elements = interface_update_elements(interface_name, updates)
        if not elements:
            raise PreconditionError(
                "no valid updates provided", device_id=device.id, step="precondition"
            )

        results, error = await self.deploy_elements(device, elements)
        if error is not None:
            raise error
        return results

    async def rollback(self, device: Device, backup_config: str = "") -> None:
        """Discard uncommitted candidate changes on the device.

        The candidate database is rolled back on the device itself, so
        ``backup_config`` is not replayed.
        """
        self._check_vendor(device)
        logger.info(f"Rolling back configuration on {device.hostname}")

        try:
            connection = await self._connect(device, "rollback")
        except TransportError as e:
            raise RollbackError(
                f"rollback failed: {e}", device_id=device.id, step="rollback"
            ) from e

        async with connection:
            await self._rollback_candidate(connection, device)

    # Device steps

    async def _create_snapshot(
        self,
        connection: RemoteConnection,
        device: Device,
    ) -> Optional[SnapshotHandle]:
        """Take a device snapshot; failure is only a warning."""
        try:
            async with timed_section("snapshot", device_id=device.id):
                success, output = await self._run(connection, device, SNAPSHOT_COMMAND, "snapshot")
        except TransportError as e:
            logger.warning(f"Failed to create snapshot on {device.id}: {e}")
            return None

        if not success:
            logger.warning(f"Failed to create snapshot on {device.id}: {output}")
            return None

        snapshot = SnapshotHandle(
            snapshot_id=f"snapshot-{int(time.time())}",
            created_at=datetime.now(timezone.utc),
            output=output,
        )
        logger.info(f"Created configuration snapshot: {snapshot.snapshot_id}")
        return snapshot

    async def _apply_element(
        self,
        connection: RemoteConnection,
        device: Device,
        element: ConfigElement,
    ) -> None:
        command = build_element_command(element)
        success, output = await self._run(connection, device, command, "apply")

        if not success:
            raise ApplyError(
                f"command failed, output: {output}", device_id=device.id, step="apply"
            )
        # Devices often exit 0 while printing an error banner
        if self.classifier.is_failure(output):
            raise ApplyError(
                f"configuration check failed: {output}", device_id=device.id, step="apply"
            )

    async def _commit(self, connection: RemoteConnection, device: Device) -> None:
        async with timed_section("commit", device_id=device.id):
            success, output = await self._run(connection, device, COMMIT_COMMAND, "commit")

        if not success or self.classifier.is_failure(output):
            raise ApplyError(
                f"failed to commit configuration: {output}", device_id=device.id, step="commit"
            )
        logger.info(f"Configuration committed successfully on {device.id}")

    async def _rollback_candidate(self, connection: RemoteConnection, device: Device) -> None:
        try:
            async with timed_section("rollback", device_id=device.id):
                success, output = await self._run(
                    connection, device, SNAPSHOT_ROLLBACK_COMMAND, "rollback"
                )
        except TransportError as e:
            raise RollbackError(
                f"rollback failed: {e}", device_id=device.id, step="rollback"
            ) from e

        if not success or self.classifier.is_failure(output):
            raise RollbackError(
                f"rollback failed: {output}", device_id=device.id, step="rollback"
            )
        logger.info(f"Rolled back configuration on {device.id}")

    async def _rollback_after_failure(
        self,
        connection: RemoteConnection,
        device: Device,
        snapshot: Optional[SnapshotHandle],
        error: DeploymentError,
    ) -> DeploymentError:
        """Roll back to ``snapshot`` after ``error``; return the combined outcome."""
        logger.warning(f"Deployment failed on {device.id}, attempting rollback: {error}")

        rollback_error: Optional[DeploymentError] = None
        if snapshot is None:
            rollback_error = RollbackError(
                "no snapshot available to roll back to", device_id=device.id, step="rollback"
            )
        else:
            try:
                await self._rollback_candidate(connection, device)
            except RollbackError as e:
                rollback_error = e

        if rollback_error is not None:
            logger.critical(
                f"{device.id} may be in an inconsistent state, manual recovery required: "
                f"{rollback_error}"
            )
            outcome: DeploymentError = RollbackFailedError(
                "deployment failed and rollback failed",
                error,
                rollback_error,
                device_id=device.id,
                step=error.step,
            )
        else:
            outcome = RolledBackError(
                f"{error}, rolled back to {snapshot.snapshot_id}",
                error,
                device_id=device.id,
                step=error.step,
            )
        outcome.__cause__ = error
        return outcome
