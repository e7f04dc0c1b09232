"""Audit logging for deployment attempts.

Every device the orchestrator attempts produces one JSON line in the audit
log, successful or not. Lines are written through the ``netdeploy.audit``
logger, which only has a file handler once ``setup_audit_logging`` ran.
"""
import json
import logging
import os
from dataclasses import dataclass, asdict
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from ..deploy.schema import DeploymentResult

audit_logger = logging.getLogger("netdeploy.audit")

DEFAULT_AUDIT_FILE = "~/.netdeploy/audit.log"


def setup_audit_logging(log_dir: Optional[str] = None) -> None:
    """Configure audit logging to file.

    Args:
        log_dir: Directory for audit logs. Defaults to ~/.netdeploy/
    """
    if log_dir is None:
        log_dir = os.path.dirname(os.path.expanduser(DEFAULT_AUDIT_FILE))

    Path(log_dir).mkdir(parents=True, exist_ok=True)
    audit_file = os.path.join(log_dir, "audit.log")

    audit_logger.setLevel(logging.INFO)
    audit_logger.handlers.clear()

    handler = RotatingFileHandler(
        audit_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=10,
    )
    # One JSON document per line
    handler.setFormatter(logging.Formatter("%(message)s"))
    audit_logger.addHandler(handler)
    audit_logger.propagate = False


@dataclass
class DeploymentRecord:
    """Audit record of one device deployment attempt."""
    timestamp: str
    device_id: str
    success: bool
    duration: float
    error: Optional[str] = None
    error_type: Optional[str] = None
    backup_timestamp: Optional[str] = None
    user: str = "system"

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=None)

    @classmethod
    def from_json(cls, json_str: str) -> "DeploymentRecord":
        return cls(**json.loads(json_str))


def record_deployment(result: "DeploymentResult", user: str = "system") -> DeploymentRecord:
    """Write a deployment result to the audit log and return the record."""
    record = DeploymentRecord(
        timestamp=result.timestamp.isoformat(),
        device_id=result.device_id,
        success=result.success,
        duration=round(result.duration, 3),
        error=str(result.error) if result.error else None,
        error_type=type(result.error).__name__ if result.error else None,
        backup_timestamp=result.backup.timestamp.isoformat() if result.backup else None,
        user=user,
    )
    audit_logger.info(record.to_json())
    return record


def get_recent_deployments(
    log_file: Optional[str] = None,
    device_id: Optional[str] = None,
    limit: int = 100,
) -> list[DeploymentRecord]:
    """Read recent deployment records from the audit log.

    Args:
        log_file: Path to audit log. Defaults to ~/.netdeploy/audit.log
        device_id: Filter by device ID
        limit: Maximum number of records to return

    Returns:
        List of DeploymentRecords, most recent first
    """
    if log_file is None:
        log_file = os.path.expanduser(DEFAULT_AUDIT_FILE)

    if not os.path.exists(log_file):
        return []

    records = []
    with open(log_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = DeploymentRecord.from_json(line)
            except (json.JSONDecodeError, TypeError):
                continue  # Skip malformed lines
            if device_id and record.device_id != device_id:
                continue
            records.append(record)

    return list(reversed(records[-limit:]))
