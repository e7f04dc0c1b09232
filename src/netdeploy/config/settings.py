"""Deployment settings shared by all strategies."""
import os
from dataclasses import dataclass, fields
from typing import Any, Optional

from ..devices.transport import Credentials


@dataclass
class DeploySettings:
    """Timing and login settings for deployments.

    ``line_delay`` paces the streaming write of a full replacement for CLIs
    without flow control; ``settle_time`` is the pause before verifying.
    """
    username: str = "admin"
    password: Optional[str] = None
    password_env: str = "NETWORK_PASSWORD"
    port: int = 22
    timeout: float = 30
    line_delay: float = 0.5
    settle_time: float = 2
    connect_attempts: int = 1

    def __post_init__(self):
        if self.timeout <= 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.line_delay < 0 or self.settle_time < 0:
            raise ValueError("line_delay and settle_time cannot be negative")
        if self.connect_attempts < 1:
            raise ValueError(f"connect_attempts must be at least 1, got {self.connect_attempts}")

    @property
    def credentials(self) -> Credentials:
        return Credentials(
            username=self.username,
            password=self.password,
            password_env=self.password_env,
            port=self.port,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeploySettings":
        """Build settings from a mapping, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_env(cls, base: Optional[dict[str, Any]] = None) -> "DeploySettings":
        """Build settings from ``base`` overridden by NETDEPLOY_* variables.

        NETDEPLOY_USERNAME, NETDEPLOY_PORT, NETDEPLOY_TIMEOUT,
        NETDEPLOY_LINE_DELAY, NETDEPLOY_SETTLE_TIME, NETDEPLOY_CONNECT_ATTEMPTS
        """
        data = dict(base or {})
        casts = {
            "username": str,
            "port": int,
            "timeout": float,
            "line_delay": float,
            "settle_time": float,
            "connect_attempts": int,
        }
        for key, cast in casts.items():
            value = os.environ.get(f"NETDEPLOY_{key.upper()}")
            if value is not None:
                data[key] = cast(value)
        return cls.from_dict(data)
