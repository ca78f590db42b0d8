import logging
from types import MappingProxyType
from typing import Iterable, Optional

from leasewatch.models.reservation import FriendlyName, Reservation
from leasewatch.normalizer.mac import canonical_mac
from leasewatch.pool.ippool import parse_ip, to16

logger = logging.getLogger(__name__)


def _mac_key(mac: str) -> Optional[str]:
    try:
        return canonical_mac(mac)
    except ValueError:
        return None


def _ip_key(ip) -> Optional[bytes]:
    addr = parse_ip(ip)
    return to16(addr) if addr is not None else None


class ClientRegistry:
    """
    Справочники из конфигурации: резервации по IP и по MAC, friendly names по MAC.
    Строятся один раз при загрузке и дальше только читаются, поэтому без блокировок.
    """

    def __init__(self, reservations: Iterable[Reservation] = (), friendly_names: Iterable[FriendlyName] = ()):
        by_ip = {}
        by_mac = {}
        for r in reservations:
            ip_key = _ip_key(r.ip)

            # дубликат MAC: побеждает последняя запись, старый IP освобождаем
            previous = by_mac.get(r.mac)
            if previous is not None:
                logger.warning("[CONFIG] MAC %s reserved twice (%s and %s), keeping %s",
                               r.mac, previous.ip, r.ip, r.ip)
                prev_ip_key = _ip_key(previous.ip)
                if by_ip.get(prev_ip_key) is previous:
                    del by_ip[prev_ip_key]

            # дубликат IP: аналогично
            previous = by_ip.get(ip_key)
            if previous is not None and previous.mac != r.mac:
                logger.warning("[CONFIG] IP %s reserved twice (for %s and %s), keeping %s",
                               r.ip, previous.mac, r.mac, r.mac)
                if by_mac.get(previous.mac) is previous:
                    del by_mac[previous.mac]

            by_ip[ip_key] = r
            by_mac[r.mac] = r

        names = {}
        for f in friendly_names:
            names[f.mac] = f

        self._reservations_by_ip = MappingProxyType(by_ip)
        self._reservations_by_mac = MappingProxyType(by_mac)
        self._friendly_names = MappingProxyType(names)

    @property
    def reservation_count(self) -> int:
        return len(self._reservations_by_ip)

    @property
    def friendly_name_count(self) -> int:
        return len(self._friendly_names)

    def reservation_for_ip(self, ip) -> Optional[Reservation]:
        return self._reservations_by_ip.get(_ip_key(ip))

    def reservation_for_mac(self, mac: str) -> Optional[Reservation]:
        return self._reservations_by_mac.get(_mac_key(mac))

    def friendly_name_for(self, mac: str) -> Optional[FriendlyName]:
        return self._friendly_names.get(_mac_key(mac))
