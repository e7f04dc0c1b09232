"""Batch orchestration of deployments across devices.

Devices are deployed one after another in the order given. The first failed
device stops the batch: rollouts are expected to be ordered by dependency
(core before edge), so carrying on past a failure risks an inconsistent
topology. Callers that want parallelism run one deployer per independent
group of devices and merge the results themselves.
"""
import logging
import time
from datetime import datetime, timezone
from typing import Mapping, Optional, Sequence

from ..devices.base import Device
from ..utils.audit_log import record_deployment
from .schema import DeploymentResult
from .strategy import DeploymentStrategy

logger = logging.getLogger(__name__)


class ConfigDeployer:
    """
    Run a deployment strategy against one or many devices.

    Usage:
        deployer = ConfigDeployer(FullReplaceStrategy(SSHTransport()))
        results = await deployer.deploy_to_multiple_devices(devices, configs)
    """

    def __init__(self, strategy: DeploymentStrategy, user: Optional[str] = None):
        """
        Initialize the deployer.

        Args:
            strategy: Strategy used for every device
            user: User identifier for the audit log
        """
        self.strategy = strategy
        self.user = user or "system"

    async def deploy_to_device(self, device: Device, config: str) -> DeploymentResult:
        """Deploy to one device, capturing any failure in the result.

        Never raises: the strategy's exception is stored unchanged in
        ``DeploymentResult.error``.
        """
        timestamp = datetime.now(timezone.utc)
        start = time.perf_counter()
        logger.info(f"Starting deployment to device {device.id} ({device.hostname})")

        backup = None
        error: Optional[Exception] = None
        try:
            backup = await self.strategy.deploy(device, config)
        except Exception as e:
            error = e
            backup = getattr(e, "backup", None)

        duration = time.perf_counter() - start

        if error is not None:
            logger.error(f"Deployment failed for {device.id}: {error}")
        else:
            logger.info(f"Deployment completed successfully for {device.id} in {duration:.2f}s")

        result = DeploymentResult(
            device_id=device.id,
            success=error is None,
            duration=duration,
            timestamp=timestamp,
            error=error,
            backup=backup,
        )
        record_deployment(result, user=self.user)
        return result

    async def deploy_to_multiple_devices(
        self,
        devices: Sequence[Device],
        configs: Mapping[str, str],
    ) -> list[DeploymentResult]:
        """Deploy to devices in order, stopping at the first failure.

        Devices without an entry in ``configs`` are skipped and do not appear
        in the results. Fewer results than configured devices means the batch
        stopped early.
        """
        results: list[DeploymentResult] = []

        for device in devices:
            if device.id not in configs:
                logger.info(f"No configuration found for device {device.id}, skipping")
                continue

            result = await self.deploy_to_device(device, configs[device.id])
            results.append(result)

            if not result.success:
                logger.warning(f"Stopping deployment due to failure on {device.id}")
                break

        return results
