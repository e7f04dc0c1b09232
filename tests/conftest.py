"""Shared fixtures: an in-memory transport and sample devices."""
import pytest

from netdeploy.config.settings import DeploySettings
from netdeploy.devices.base import (
    Device,
    Interface,
    NTPService,
    SNMPService,
    Services,
    VLAN,
    StaticRoute,
    Routing,
)
from netdeploy.devices.transport import RemoteConnection, RemoteTransport


class FakeConnection(RemoteConnection):
    """Connection that answers from the owning FakeTransport's scripts."""

    def __init__(self, transport: "FakeTransport", address: str):
        super().__init__(address)
        self.transport = transport
        self.closed = False

    async def run(self, command: str) -> tuple[bool, str]:
        self.transport.commands.append(command)
        return self.transport.next_response(command)

    async def send_lines(self, lines: list[str], line_delay: float = 0.0) -> tuple[bool, str]:
        self.transport.shell_sessions.append(list(lines))
        self.transport.line_delays.append(line_delay)
        return self.transport.next_shell_response()

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.transport.open_connections -= 1


class FakeTransport(RemoteTransport):
    """Scriptable transport.

    ``responses`` maps a command to a result, or to a list of results consumed
    in order (the last one repeats). A result is ``(success, output)`` or an
    exception to raise. ``shell_responses`` and ``connect_errors`` are queues
    consumed once per shell session / connect attempt.
    """

    def __init__(self):
        self.responses: dict = {}
        self.shell_responses: list = []
        self.connect_errors: list = []
        self.commands: list[str] = []
        self.shell_sessions: list[list[str]] = []
        self.line_delays: list[float] = []
        self.connects = 0
        self.open_connections = 0
        self.max_open_connections = 0
        self.last_credentials = None
        self.last_timeout = None
        self.last_attempts = None

    async def connect(self, address, credentials, timeout, attempts=1) -> FakeConnection:
        self.connects += 1
        self.last_credentials = credentials
        self.last_timeout = timeout
        self.last_attempts = attempts
        if self.connect_errors:
            error = self.connect_errors.pop(0)
            if error is not None:
                raise error
        self.open_connections += 1
        self.max_open_connections = max(self.max_open_connections, self.open_connections)
        return FakeConnection(self, address)

    def next_response(self, command: str) -> tuple[bool, str]:
        result = self.responses.get(command, (True, ""))
        if isinstance(result, list):
            result = result.pop(0) if len(result) > 1 else result[0]
        if isinstance(result, Exception):
            raise result
        return result

    def next_shell_response(self) -> tuple[bool, str]:
        result = self.shell_responses.pop(0) if self.shell_responses else (True, "")
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def settings():
    """Settings without pacing or settle delays."""
    return DeploySettings(
        username="admin",
        password="secret",
        timeout=5,
        line_delay=0,
        settle_time=0,
    )


@pytest.fixture
def cisco_device():
    return Device(
        id="core-rtr-01",
        hostname="r1",
        vendor="cisco",
        management_ip="192.168.1.1",
        device_type="router",
        model="ISR4451",
    )


@pytest.fixture
def juniper_device():
    return Device(
        id="juniper-test-01",
        hostname="test-juniper-switch",
        vendor="juniper",
        management_ip="10.0.1.20",
        device_type="switch",
        model="EX4300",
        interfaces=(
            Interface(
                name="ge-0/0/0",
                description="Test interface",
                ip_address="192.168.1.1",
                subnet_mask="255.255.255.252",
                enabled=True,
                mtu=1500,
                speed="1000",
                duplex="full",
            ),
            Interface(
                name="ge-0/0/1",
                description="Disabled interface",
                enabled=False,
                speed="1000",
                duplex="auto",
            ),
        ),
        services=Services(
            ntp=NTPService(enabled=True, servers=("10.0.0.1", "10.0.0.2")),
            snmp=SNMPService(
                enabled=True,
                community="public",
                location="Test Lab",
                contact="admin@test.com",
            ),
        ),
        vlans=(
            VLAN(id=100, name="test-vlan", description="Test VLAN"),
            VLAN(id=200, name="mgmt-vlan", description="Management VLAN"),
        ),
        routing=Routing(
            static_routes=(StaticRoute(destination="10.0.0.0/8", next_hop="192.168.1.2"),),
        ),
    )
