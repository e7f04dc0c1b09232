"""Device records and the remote transports used to reach them."""
from .base import (
    Device,
    Interface,
    Location,
    NTPService,
    SNMPService,
    SyslogServer,
    SyslogService,
    Services,
    VLAN,
    StaticRoute,
    OSPFArea,
    BGPNeighbor,
    RoutingProtocol,
    Routing,
)
from .transport import Credentials, RemoteConnection, RemoteTransport
from .ssh import SSHConnection, SSHTransport

__all__ = [
    "Device",
    "Interface",
    "Location",
    "NTPService",
    "SNMPService",
    "SyslogServer",
    "SyslogService",
    "Services",
    "VLAN",
    "StaticRoute",
    "OSPFArea",
    "BGPNeighbor",
    "RoutingProtocol",
    "Routing",
    "Credentials",
    "RemoteConnection",
    "RemoteTransport",
    "SSHConnection",
    "SSHTransport",
]
