import ipaddress
from datetime import timedelta
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from leasewatch.models.reservation import FriendlyName, Reservation
from leasewatch.normalizer.duration import parse_duration
from leasewatch.pool.ippool import AddressPool, AddressRange, parse_ip


def _prefix_len(netmask: str, max_prefixlen: int) -> Optional[int]:
    """Длина префикса из маски ("255.255.255.0", "ffff:ffff::" или "24"); None: маска невалидна."""
    s = str(netmask).strip()
    if s.isdigit():
        n = int(s)
        return n if 0 < n <= max_prefixlen else None

    mask = parse_ip(s)
    if mask is None or mask.max_prefixlen != max_prefixlen:
        return None
    value = int(mask)
    ones = bin(value).count("1")
    expected = ((1 << ones) - 1) << (max_prefixlen - ones)
    if ones == 0 or value != expected:
        return None
    return ones


class DhcpPoolConfig(BaseModel):
    interface: str = ""
    start: str
    end: str
    gateway: Optional[str] = None
    netmask: Optional[str] = None

    def to_range(self) -> AddressRange:
        return AddressRange.from_strings(self.start, self.end)

    def describe(self) -> str:
        return (f"Interface: {self.interface}, Start: {self.start}, End: {self.end}, "
                f"Gateway: {self.gateway}, Netmask: {self.netmask}")

    def check_network(self) -> None:
        """
        Проверка связности сети, если заданы gateway и netmask:
        - все адреса приватные (RFC 1918 / RFC 4193);
        - start и end в одной сети;
        - gateway внутри этой сети.
        """
        if not self.gateway or not self.netmask:
            return

        start, end, gateway = parse_ip(self.start), parse_ip(self.end), parse_ip(self.gateway)
        if gateway is None or gateway.version != start.version:
            raise ValueError(f"invalid gateway in DHCP network [{self.describe()}]")

        if not (start.is_private and end.is_private and gateway.is_private):
            raise ValueError(
                f"invalid DHCP network [{self.describe()}]: "
                "only private IPs are allowed (RFC 1918 and RFC 4193)"
            )

        prefix = _prefix_len(self.netmask, start.max_prefixlen)
        if prefix is None:
            raise ValueError(f"invalid netmask in DHCP network [{self.describe()}]")

        network = ipaddress.ip_network(f"{start}/{prefix}", strict=False)
        if end not in network:
            raise ValueError(
                f"invalid DHCP network [{self.describe()}]: start and end IPs must be within the same network"
            )
        if gateway not in network:
            raise ValueError(
                f"invalid DHCP network [{self.describe()}]: the gateway must be inside the network"
            )


class DhcpServerConfig(BaseModel):
    lease_file: str = "/data/dnsmasq.leases"
    tracker_db: str = "/data/trackerdb.sqlite3"
    start_epoch_file: str = "/data/startepoch"
    forget_past_clients_after: Optional[timedelta] = None
    purge_interval_sec: int = Field(3600, gt=0)
    poll_interval_sec: float = Field(1.0, gt=0)

    @field_validator("forget_past_clients_after", mode="before")
    @classmethod
    def parse_retention(cls, v):
        return parse_duration(v)


class DnsServerConfig(BaseModel):
    enable: bool = False
    dns_domain: str = ""
    port: int = Field(53, gt=0, le=65535)


class SnapshotConfig(BaseModel):
    path: str = "data/snapshots/dhcp_clients_snapshot.json"
    refresh_interval_sec: int = Field(0, ge=0)  # 0: только по изменениям


class Options(BaseModel):
    dhcp_pools: List[DhcpPoolConfig] = Field(default_factory=list)
    dhcp_ip_address_reservations: List[Reservation] = Field(default_factory=list)
    dhcp_clients_friendly_names: List[FriendlyName] = Field(default_factory=list)
    dhcp_server: DhcpServerConfig = Field(default_factory=DhcpServerConfig)
    dns_server: DnsServerConfig = Field(default_factory=DnsServerConfig)
    snapshot: SnapshotConfig = Field(default_factory=SnapshotConfig)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid log level: {v}")
        return level

    @model_validator(mode="after")
    def check_pools(self) -> "Options":
        for p in self.dhcp_pools:
            if not p.to_range().is_valid():
                raise ValueError(f"invalid DHCP range {p.start}-{p.end} found in config file")
            p.check_network()
        return self

    def address_pool(self) -> AddressPool:
        return AddressPool(ranges=tuple(p.to_range() for p in self.dhcp_pools))
