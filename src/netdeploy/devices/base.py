"""Infrastructure model records consumed by the deployment engine.

A ``Device`` is an immutable snapshot of one device's identity and desired
state. Strategies read it, derive commands or elements from it, and never
mutate it: build a new record with ``dataclasses.replace`` instead.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    """Physical placement of a device."""
    datacenter: str = ""
    rack: str = ""
    position: str = ""


@dataclass(frozen=True)
class Interface:
    """Desired state of a single interface."""
    name: str
    description: str = ""
    ip_address: str = ""
    subnet_mask: str = ""
    enabled: bool = True
    mtu: int = 0
    speed: str = ""
    duplex: str = ""
    switchport_mode: str = ""
    vlan: int = 0
    allowed_vlans: tuple[int, ...] = ()


@dataclass(frozen=True)
class NTPService:
    enabled: bool = False
    servers: tuple[str, ...] = ()


@dataclass(frozen=True)
class SNMPService:
    enabled: bool = False
    community: str = ""
    location: str = ""
    contact: str = ""


@dataclass(frozen=True)
class SyslogServer:
    host: str
    port: int = 514
    severity: str = "informational"


@dataclass(frozen=True)
class SyslogService:
    enabled: bool = False
    servers: tuple[SyslogServer, ...] = ()


@dataclass(frozen=True)
class Services:
    """Management-plane services configured on a device."""
    ntp: NTPService = field(default_factory=NTPService)
    snmp: SNMPService = field(default_factory=SNMPService)
    syslog: SyslogService = field(default_factory=SyslogService)


@dataclass(frozen=True)
class VLAN:
    id: int
    name: str
    description: str = ""


@dataclass(frozen=True)
class StaticRoute:
    destination: str
    next_hop: str
    administrative_distance: int = 1


@dataclass(frozen=True)
class OSPFArea:
    area_id: str
    networks: tuple[str, ...] = ()


@dataclass(frozen=True)
class BGPNeighbor:
    ip: str
    remote_as: str
    description: str = ""


@dataclass(frozen=True)
class RoutingProtocol:
    """Dynamic routing process (``ospf`` or ``bgp``)."""
    protocol: str
    process_id: str = ""
    router_id: str = ""
    as_number: str = ""
    areas: tuple[OSPFArea, ...] = ()
    neighbors: tuple[BGPNeighbor, ...] = ()


@dataclass(frozen=True)
class Routing:
    protocols: tuple[RoutingProtocol, ...] = ()
    static_routes: tuple[StaticRoute, ...] = ()


@dataclass(frozen=True)
class Device:
    """Identity plus desired state of one network device."""
    id: str
    hostname: str
    vendor: str
    management_ip: str
    device_type: str = ""
    model: str = ""
    location: Location = field(default_factory=Location)
    interfaces: tuple[Interface, ...] = ()
    services: Services = field(default_factory=Services)
    vlans: tuple[VLAN, ...] = ()
    # None means "no routing block", which is different from an empty one
    routing: Optional[Routing] = None

    @property
    def management_address(self) -> str:
        return self.management_ip

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Device":
        """Build a device from the infrastructure model's JSON/YAML shape.

        Unknown keys are ignored so that records exported by newer model
        versions still load.
        """
        missing = [k for k in ("id", "hostname", "vendor", "management_ip") if not data.get(k)]
        if missing:
            raise ValueError(f"Device record missing required fields: {', '.join(missing)}")

        services = data.get("services") or {}
        ntp = services.get("ntp") or {}
        snmp = services.get("snmp") or {}
        syslog = services.get("syslog") or {}

        routing = None
        if data.get("routing") is not None:
            routing = _routing_from_dict(data["routing"])

        return cls(
            id=str(data["id"]),
            hostname=data["hostname"],
            vendor=str(data["vendor"]).lower(),
            management_ip=data["management_ip"],
            device_type=data.get("device_type", ""),
            model=data.get("model", ""),
            location=Location(**(data.get("location") or {})),
            interfaces=tuple(
                Interface(
                    name=i["name"],
                    description=i.get("description", ""),
                    ip_address=i.get("ip_address", ""),
                    subnet_mask=i.get("subnet_mask", ""),
                    enabled=i.get("enabled", True),
                    mtu=int(i.get("mtu", 0) or 0),
                    speed=str(i.get("speed", "")),
                    duplex=i.get("duplex", ""),
                    switchport_mode=i.get("switchport_mode", ""),
                    vlan=int(i.get("vlan", 0) or 0),
                    allowed_vlans=tuple(i.get("allowed_vlans") or ()),
                )
                for i in data.get("interfaces") or []
            ),
            services=Services(
                ntp=NTPService(
                    enabled=ntp.get("enabled", False),
                    servers=tuple(ntp.get("servers") or ()),
                ),
                snmp=SNMPService(
                    enabled=snmp.get("enabled", False),
                    community=snmp.get("community", ""),
                    location=snmp.get("location", ""),
                    contact=snmp.get("contact", ""),
                ),
                syslog=SyslogService(
                    enabled=syslog.get("enabled", False),
                    servers=tuple(SyslogServer(**s) for s in syslog.get("servers") or []),
                ),
            ),
            vlans=tuple(
                VLAN(id=int(v["id"]), name=v["name"], description=v.get("description", ""))
                for v in data.get("vlans") or []
            ),
            routing=routing,
        )


def _routing_from_dict(data: dict[str, Any]) -> Routing:
    protocols = []
    for p in data.get("protocols") or []:
        protocols.append(RoutingProtocol(
            protocol=p["protocol"],
            process_id=str(p.get("process_id", "")),
            router_id=p.get("router_id", ""),
            as_number=str(p.get("as_number", "")),
            areas=tuple(
                OSPFArea(area_id=str(a["area_id"]), networks=tuple(a.get("networks") or ()))
                for a in p.get("areas") or []
            ),
            neighbors=tuple(
                BGPNeighbor(
                    ip=n["ip"],
                    remote_as=str(n["remote_as"]),
                    description=n.get("description", ""),
                )
                for n in p.get("neighbors") or []
            ),
        ))

    return Routing(
        protocols=tuple(protocols),
        static_routes=tuple(
            StaticRoute(
                destination=r["destination"],
                next_hop=r["next_hop"],
                administrative_distance=int(r.get("administrative_distance", 1)),
            )
            for r in data.get("static_routes") or []
        ),
    )
