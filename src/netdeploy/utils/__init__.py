"""Logging, audit and connection helpers."""
from .connection import with_retry, RETRYABLE_EXCEPTIONS
from .logging_config import setup_logging, timed_section, perf_logger
from .audit_log import (
    setup_audit_logging,
    record_deployment,
    get_recent_deployments,
    DeploymentRecord,
)

__all__ = [
    "with_retry",
    "RETRYABLE_EXCEPTIONS",
    "setup_logging",
    "timed_section",
    "perf_logger",
    "setup_audit_logging",
    "record_deployment",
    "get_recent_deployments",
    "DeploymentRecord",
]
