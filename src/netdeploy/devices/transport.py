"""Remote command-execution contract used by deployment strategies.

Strategies never talk to a socket directly. They ask a ``RemoteTransport`` for
a ``RemoteConnection`` and then run commands on it, one at a time.
"""
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional


@dataclass
class Credentials:
    """Login credentials for a management session."""
    username: str
    password: Optional[str] = None
    password_env: str = "NETWORK_PASSWORD"
    port: int = 22

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


class RemoteConnection(ABC):
    """An open management connection to one device."""

    def __init__(self, address: str):
        self.address = address

    @abstractmethod
    async def run(self, command: str) -> tuple[bool, str]:
        """Run a command on a fresh channel.

        Returns:
            Tuple of (success, combined stdout/stderr output). Success reflects
            the remote exit status only; callers decide what the output means.

        Raises:
            ConnectionError, OSError: when the session or channel breaks.
        """
        pass

    @abstractmethod
    async def send_lines(self, lines: list[str], line_delay: float = 0.0) -> tuple[bool, str]:
        """Stream lines into an interactive shell, pausing after each one.

        Returns:
            Tuple of (success, output) once the shell has exited.
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
        return False


class RemoteTransport(ABC):
    """Factory for ``RemoteConnection`` objects."""

    @abstractmethod
    async def connect(
        self,
        address: str,
        credentials: Credentials,
        timeout: float,
        attempts: int = 1,
    ) -> RemoteConnection:
        """Open a connection, bounded by ``timeout`` seconds per attempt.

        ``attempts`` caps how many times establishing the session is tried.

        Raises:
            ConnectionError, OSError, TimeoutError: when the device is
            unreachable or refuses the login.
        """
        pass
