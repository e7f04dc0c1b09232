"""Deployment engine - push configuration with backup, verify and rollback.

Two strategies share one contract:
- ``FullReplaceStrategy``: snapshot the running config, replace it wholesale,
  verify critical lines, restore the snapshot on failure
- ``PerElementStrategy``: derive small elements from the device's desired
  state, apply and check each, roll the candidate back on the first failure

Usage:
    from netdeploy.deploy import ConfigDeployer, create_strategy
    from netdeploy.devices import SSHTransport

    strategy = create_strategy("cisco", SSHTransport(), settings)
    deployer = ConfigDeployer(strategy)
    results = await deployer.deploy_to_multiple_devices(devices, configs)
"""
from typing import Optional

from ..config.settings import DeploySettings
from ..devices.transport import RemoteTransport
from .schema import (
    ConfigBackup,
    ConfigElement,
    ElementOperation,
    ElementUpdateResult,
    DeploymentResult,
    SnapshotHandle,
)
from .errors import (
    DeploymentError,
    PreconditionError,
    TransportError,
    ApplyError,
    VerificationError,
    RollbackError,
    RolledBackError,
    RollbackFailedError,
)
from .classifier import ResponseClassifier, SubstringClassifier
from .comparator import normalize_config, is_critical_line, contains_line, config_matches
from .strategy import DeploymentStrategy
from .full_replace import FullReplaceStrategy
from .per_element import PerElementStrategy, decompose_device, build_commands
from .orchestrator import ConfigDeployer

__all__ = [
    # Orchestration
    "ConfigDeployer",
    "create_strategy",
    "STRATEGY_TYPES",
    # Strategies
    "DeploymentStrategy",
    "FullReplaceStrategy",
    "PerElementStrategy",
    "decompose_device",
    "build_commands",
    # Records
    "ConfigBackup",
    "ConfigElement",
    "ElementOperation",
    "ElementUpdateResult",
    "DeploymentResult",
    "SnapshotHandle",
    # Errors
    "DeploymentError",
    "PreconditionError",
    "TransportError",
    "ApplyError",
    "VerificationError",
    "RollbackError",
    "RolledBackError",
    "RollbackFailedError",
    # Verification helpers
    "ResponseClassifier",
    "SubstringClassifier",
    "normalize_config",
    "is_critical_line",
    "contains_line",
    "config_matches",
]

# Strategy registry, keyed by vendor tag
STRATEGY_TYPES: dict[str, type[DeploymentStrategy]] = {
    "cisco": FullReplaceStrategy,
    "juniper": PerElementStrategy,
}


def create_strategy(
    vendor: str,
    transport: RemoteTransport,
    settings: Optional[DeploySettings] = None,
) -> DeploymentStrategy:
    """Factory function to pick the strategy for a vendor."""
    vendor = vendor.lower()
    if vendor not in STRATEGY_TYPES:
        raise ValueError(f"No deployment strategy for vendor: {vendor}")

    strategy_class = STRATEGY_TYPES[vendor]
    return strategy_class(transport, settings)
