"""Records produced and consumed by the deployment engine."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class ElementOperation(str, Enum):
    """Operation carried by a configuration element."""
    SET = "set"
    DELETE = "delete"
    EDIT = "edit"


@dataclass(frozen=True)
class ConfigBackup:
    """Configuration captured from a device before it was changed."""
    device_id: str
    timestamp: datetime
    config: str

    def to_dict(self) -> dict:
        return {
            "device_id": self.device_id,
            "timestamp": self.timestamp.isoformat(),
            "config": self.config,
        }


@dataclass(frozen=True)
class SnapshotHandle:
    """Identifier of a device-side snapshot taken before per-element changes."""
    snapshot_id: str
    created_at: datetime
    output: str = ""


@dataclass(frozen=True)
class ConfigElement:
    """One atomic, independently appliable configuration change."""
    type: str
    path: str
    operation: ElementOperation
    value: str = ""
    description: str = ""

    def to_dict(self) -> dict:
        return {
            "type": self.type,
            "path": self.path,
            "operation": self.operation.value,
            "value": self.value,
            "description": self.description,
        }


@dataclass(frozen=True)
class ElementUpdateResult:
    """Outcome of applying one ``ConfigElement``."""
    element: ConfigElement
    success: bool
    duration: float
    timestamp: datetime
    error: Optional[Exception] = None

    def to_dict(self) -> dict:
        return {
            "element": self.element.to_dict(),
            "success": self.success,
            "error": str(self.error) if self.error else None,
            "duration": self.duration,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class DeploymentResult:
    """Outcome of one device's deployment attempt.

    ``error`` holds the exception raised by the strategy, unchanged.
    """
    device_id: str
    success: bool
    duration: float
    timestamp: datetime
    error: Optional[Exception] = None
    backup: Optional[ConfigBackup] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "device_id": self.device_id,
            "success": self.success,
            "error": str(self.error) if self.error else None,
            "duration": self.duration,
            "timestamp": self.timestamp.isoformat(),
            "backup": self.backup.to_dict() if self.backup else None,
        }
