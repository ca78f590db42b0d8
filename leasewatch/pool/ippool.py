import ipaddress
from typing import Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, IPvAnyAddress

IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

# размер пула ограничен int64, всё что больше считается переполнением
MAX_POOL_SIZE = 2 ** 63 - 1

_V4_MAPPED_PREFIX = b"\x00" * 10 + b"\xff\xff"


def parse_ip(value) -> Optional[IPAddress]:
    """Разбирает IP-литерал; None, если это не IPv4/IPv6."""
    if isinstance(value, (ipaddress.IPv4Address, ipaddress.IPv6Address)):
        return value
    if value is None:
        return None
    try:
        return ipaddress.ip_address(str(value).strip())
    except ValueError:
        return None


def to16(ip: IPAddress) -> bytes:
    """
    16-байтное представление адреса: IPv4 отображается в ::ffff:a.b.c.d,
    поэтому IPv4 и IPv6 сравниваются побайтно одинаково.
    """
    if ip.version == 4:
        return _V4_MAPPED_PREFIX + ip.packed
    return ip.packed


def ip_sort_key(value) -> bytes:
    ip = parse_ip(value)
    if ip is None:
        # неразбираемые адреса в конец списка
        return b"\xff" * 17
    return to16(ip)


class AddressRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Optional[IPvAnyAddress] = None
    end: Optional[IPvAnyAddress] = None

    @classmethod
    def from_strings(cls, start: str, end: str) -> "AddressRange":
        # никаких исключений здесь: невалидный диапазон ловится через is_valid()
        return cls(start=parse_ip(start), end=parse_ip(end))

    def is_valid(self) -> bool:
        if self.start is None or self.end is None:
            return False
        return self.start.version == self.end.version

    def contains(self, value) -> bool:
        ip = parse_ip(value)
        if ip is None or not self.is_valid():
            return False
        key = to16(ip)
        return to16(self.start) <= key <= to16(self.end)

    def exact_size(self) -> int:
        if not self.is_valid():
            return 0
        count = int.from_bytes(to16(self.end), "big") - int.from_bytes(to16(self.start), "big") + 1
        return max(count, 0)

    def size(self) -> Optional[int]:
        """Число адресов в диапазоне или None, если оно не помещается в int64."""
        count = self.exact_size()
        if count > MAX_POOL_SIZE:
            return None
        return count

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


class AddressPool(BaseModel):
    model_config = ConfigDict(frozen=True)

    ranges: Tuple[AddressRange, ...] = ()

    @classmethod
    def from_strings(cls, start: str, end: str) -> "AddressPool":
        return cls(ranges=(AddressRange.from_strings(start, end),))

    def is_valid(self) -> bool:
        # пустой пул допустим: динамический диапазон может быть не задан
        return all(r.is_valid() for r in self.ranges)

    def contains(self, value) -> bool:
        return any(r.contains(value) for r in self.ranges)

    def size(self) -> Optional[int]:
        total = sum(r.exact_size() for r in self.ranges)
        if total > MAX_POOL_SIZE:
            return None
        return total
