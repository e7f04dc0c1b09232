"""Paramiko-backed SSH transport.

Blocking paramiko calls run in the default executor so that strategies can
await them. Technical details:
- Password auth only (no agent, no key lookup)
- Unknown host keys are accepted; host key policy belongs to the caller's
  environment, not to the deployment engine
- ``run`` opens a new exec channel per command
- ``send_lines`` uses ``invoke_shell()`` for devices that only accept
  configuration over an interactive CLI
- paramiko's own exceptions surface as ``ConnectionError``
"""
import asyncio
import logging
import re
from typing import Optional

import paramiko

from .transport import Credentials, RemoteConnection, RemoteTransport
from ..utils.connection import with_retry

logger = logging.getLogger(__name__)

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;?]*[a-zA-Z]")


class SSHConnection(RemoteConnection):
    """One paramiko client connected to a device."""

    def __init__(self, address: str, client: paramiko.SSHClient, timeout: float):
        super().__init__(address)
        self._client: Optional[paramiko.SSHClient] = client
        self.timeout = timeout

    async def run(self, command: str) -> tuple[bool, str]:
        """Execute a command on a new exec channel."""
        if not self._client:
            raise ConnectionError("Not connected")

        client = self._client
        loop = asyncio.get_event_loop()

        def _exec():
            stdin, stdout, stderr = client.exec_command(command, timeout=self.timeout)
            out = stdout.read().decode("utf-8", errors="ignore")
            err = stderr.read().decode("utf-8", errors="ignore")
            exit_code = stdout.channel.recv_exit_status()
            return exit_code, out, err

        try:
            exit_code, out, err = await loop.run_in_executor(None, _exec)
        except paramiko.SSHException as e:
            raise ConnectionError(f"SSH channel to {self.address} failed: {e}") from e
        output = f"{out}\n{err}".strip()

        if exit_code != 0:
            logger.debug(f"Command '{command}' on {self.address} failed (exit {exit_code}): {err}")
            return False, output
        return True, output

    async def send_lines(self, lines: list[str], line_delay: float = 0.0) -> tuple[bool, str]:
        """Stream lines into an interactive shell and wait for it to exit."""
        if not self._client:
            raise ConnectionError("Not connected")

        try:
            exit_code, output = await self._stream_shell(self._client, lines, line_delay)
        except paramiko.SSHException as e:
            raise ConnectionError(f"SSH shell on {self.address} failed: {e}") from e

        if exit_code != 0:
            logger.debug(f"Shell session on {self.address} exited with status {exit_code}")
            return False, output
        return True, output

    async def _stream_shell(
        self,
        client: paramiko.SSHClient,
        lines: list[str],
        line_delay: float,
    ) -> tuple[int, str]:
        loop = asyncio.get_event_loop()

        def _open_shell():
            shell = client.invoke_shell()
            shell.settimeout(self.timeout)
            return shell

        shell = await loop.run_in_executor(None, _open_shell)
        chunks: list[str] = []

        def _drain():
            while shell.recv_ready():
                data = shell.recv(65535)
                chunks.append(ANSI_PATTERN.sub("", data.decode("utf-8", errors="ignore")))

        try:
            for line in lines:
                await loop.run_in_executor(None, shell.sendall, f"{line}\n".encode())
                if line_delay:
                    await asyncio.sleep(line_delay)
                await loop.run_in_executor(None, _drain)

            def _wait_exit():
                exit_code = shell.recv_exit_status()
                _drain()
                return exit_code

            exit_code = await loop.run_in_executor(None, _wait_exit)
        finally:
            shell.close()

        return exit_code, "".join(chunks)

    async def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
            logger.debug(f"Disconnected from {self.address}")


class SSHTransport(RemoteTransport):
    """Open SSH connections with paramiko.

    Args:
        min_wait: Minimum backoff between connection attempts (seconds)
        max_wait: Maximum backoff between connection attempts (seconds)
    """

    def __init__(self, min_wait: float = 1, max_wait: float = 10):
        self.min_wait = min_wait
        self.max_wait = max_wait

    async def connect(
        self,
        address: str,
        credentials: Credentials,
        timeout: float,
        attempts: int = 1,
    ) -> SSHConnection:
        @with_retry(max_attempts=max(1, attempts), min_wait=self.min_wait, max_wait=self.max_wait)
        async def _connect_with_retry() -> SSHConnection:
            return await self._connect(address, credentials, timeout)

        return await _connect_with_retry()

    async def _connect(
        self,
        address: str,
        credentials: Credentials,
        timeout: float,
    ) -> SSHConnection:
        logger.info(f"Connecting to {address}:{credentials.port}")
        loop = asyncio.get_event_loop()

        def _open():
            client = paramiko.SSHClient()
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
            try:
                client.connect(
                    hostname=address,
                    port=credentials.port,
                    username=credentials.username,
                    password=credentials.get_password(),
                    timeout=timeout,
                    banner_timeout=timeout,
                    auth_timeout=timeout,
                    allow_agent=False,
                    look_for_keys=False,
                )
            except paramiko.SSHException as e:
                client.close()
                raise ConnectionError(f"SSH negotiation with {address} failed: {e}") from e
            return client

        client = await loop.run_in_executor(None, _open)
        logger.info(f"Connected to {address}")
        return SSHConnection(address, client, timeout)
