"""Exceptions raised by deployment strategies.

``RolledBackError`` and ``RollbackFailedError`` are the two outcomes of a
failed deployment once mutation has started. Only the latter needs a human:
the device may be left half-configured.
"""
from typing import Optional

from .schema import ConfigBackup


class DeploymentError(Exception):
    """Base class for all deployment failures."""

    def __init__(
        self,
        message: str,
        device_id: Optional[str] = None,
        step: Optional[str] = None,
        backup: Optional[ConfigBackup] = None,
    ):
        super().__init__(message)
        self.device_id = device_id
        self.step = step
        self.backup = backup


class PreconditionError(DeploymentError):
    """Deployment refused before contacting the device."""


class TransportError(DeploymentError):
    """Connecting to the device or running a command on it failed."""


class ApplyError(DeploymentError):
    """The device reported a failure while applying configuration."""


class VerificationError(DeploymentError):
    """The applied configuration does not match what was intended."""


class RollbackError(DeploymentError):
    """Restoring the previous configuration failed."""


class RolledBackError(DeploymentError):
    """Deployment failed and the device was restored successfully."""

    def __init__(self, message: str, cause: DeploymentError, **kwargs):
        super().__init__(message, **kwargs)
        self.cause = cause


class RollbackFailedError(DeploymentError):
    """Deployment failed and so did the rollback.

    The message embeds both underlying errors.
    """

    def __init__(
        self,
        message: str,
        deploy_error: DeploymentError,
        rollback_error: Exception,
        **kwargs,
    ):
        super().__init__(
            f"{message}: deploy error: {deploy_error}, rollback error: {rollback_error}",
            **kwargs,
        )
        self.deploy_error = deploy_error
        self.rollback_error = rollback_error
