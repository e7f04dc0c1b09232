"""Logging configuration for netdeploy.

Provides:
- Console output plus a rotating log file
- A separate ``netdeploy.perf`` logger with per-step deployment timings
- ``timed_section`` for timing backup/apply/verify/rollback steps

Environment Variables:
    NETDEPLOY_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    NETDEPLOY_LOG_FILE: Path to log file (default: ~/.netdeploy/netdeploy.log)
    NETDEPLOY_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    NETDEPLOY_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from netdeploy.utils.logging_config import setup_logging, timed_section

    setup_logging()  # Call once at startup

    async with timed_section("backup", device_id="core-rtr-01"):
        ...
"""
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from .audit_log import setup_audit_logging

perf_logger = logging.getLogger("netdeploy.perf")


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("NETDEPLOY_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".netdeploy" / "netdeploy.log"
    return Path(os.environ.get("NETDEPLOY_LOG_FILE", str(default_path)))


def setup_logging(audit: bool = True) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (respects NETDEPLOY_LOG_LEVEL)
    - File handler with rotation (DEBUG level, captures everything)
    - Performance log file next to the main log
    - Audit log in the same directory, unless ``audit`` is False
    """
    log_level = get_log_level()
    log_file = get_log_file()
    max_size_mb = int(os.environ.get("NETDEPLOY_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("NETDEPLOY_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "netdeploy-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    root_logger = logging.getLogger("netdeploy")
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
    root_logger.addHandler(console_handler)
    root_logger.addHandler(file_handler)

    # Timings go to their own file only
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.addHandler(perf_handler)
    perf_logger.propagate = False

    if audit:
        setup_audit_logging(str(log_file.parent))

    root_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")


@asynccontextmanager
async def timed_section(operation: str, device_id: Optional[str] = None, **extra):
    """Async context manager for timing deployment steps.

    Args:
        operation: Name of the step (e.g., "backup", "apply", "verify")
        device_id: Device identifier
        **extra: Additional context to log

    Usage:
        async with timed_section("apply", device_id="core-rtr-01", lines=120):
            await connection.send_lines(lines)
    """
    start = time.perf_counter()
    extra_str = " | ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""

    try:
        yield
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {device_id or 'N/A':15s} | {elapsed:8.2f}ms | OK"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.info(msg)
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        msg = f"{operation:20s} | {device_id or 'N/A':15s} | {elapsed:8.2f}ms | FAIL: {e}"
        if extra_str:
            msg += f" | {extra_str}"
        perf_logger.warning(msg)
        raise
