import concurrent.futures
import logging
from datetime import datetime
from string import Template
from typing import Callable, Iterable, List
from urllib.parse import urlsplit

from leasewatch.errors import ConfigurationError, HistoryStoreError
from leasewatch.merge.registry import ClientRegistry
from leasewatch.models.dhcp import MISSING_HOSTNAME, Lease
from leasewatch.models.history import HistoryRecord
from leasewatch.models.host import LiveClient, PastClient
from leasewatch.normalizer.mac import canonical_mac, same_mac
from leasewatch.pool.ippool import AddressPool, ip_sort_key
from leasewatch.storage.history import HistoryStore, utcnow

logger = logging.getLogger(__name__)

NOT_AVAILABLE = "N/A"

NOTE_PREVIOUS_RUN = "Last seen in a previous run of the DHCP server"
NOTE_CURRENT_RUN = ("Seen after last DHCP server restart but it missed DHCP renewal "
                    "or it cannot reach the network anymore")
NOTE_INCONSISTENT_EPOCH = "Tagged with an inconsistent DHCP server start epoch"


def is_valid_uri(uri: str) -> bool:
    """Абсолютный URI: есть и схема, и хост."""
    if not uri or any(c.isspace() for c in uri):
        return False
    try:
        parsed = urlsplit(uri)
        host = parsed.hostname
    except ValueError:
        return False
    return bool(parsed.scheme) and bool(host)


def epoch_note(record_epoch: int, current_epoch: int) -> str:
    if record_epoch < current_epoch:
        # аренду выдал прошлый экземпляр dnsmasq, после рестарта клиента не было
        return NOTE_PREVIOUS_RUN
    if record_epoch == current_epoch:
        # типичный случай: клиент выключен или вне зоны WLAN
        return NOTE_CURRENT_RUN
    return NOTE_INCONSISTENT_EPOCH


class ClientReconciler:
    """
    Сводит три источника в одну картину:
    - текущие аренды (lease-файл dnsmasq);
    - статическую конфигурацию (резервации, friendly names, пул);
    - историю MAC-адресов (tracker DB), для списка прошлых клиентов.
    """

    def __init__(
        self,
        pool: AddressPool,
        registry: ClientRegistry,
        store: HistoryStore,
        current_epoch: int,
        dns_domain: str = "",
        clock: Callable[[], datetime] = utcnow,
        max_workers: int = 1,
    ):
        if not pool.is_valid():
            bad = ", ".join(str(r) for r in pool.ranges if not r.is_valid())
            raise ConfigurationError(f"invalid DHCP pool: {bad}")

        self.pool = pool
        self.registry = registry
        self.store = store
        self.current_epoch = int(current_epoch)
        self.dns_domain = dns_domain
        self.clock = clock
        self.max_workers = max(1, int(max_workers))

    # ----- Текущие клиенты -----

    def friendly_name_for(self, mac: str, hostname: str) -> str:
        entry = self.registry.friendly_name_for(mac)
        if entry is not None:
            return entry.name
        if hostname and hostname != MISSING_HOSTNAME:
            # имени в конфиге нет, берём hostname клиента
            return hostname
        return ""

    def has_static_ip(self, ip, mac: str) -> bool:
        reservation = self.registry.reservation_for_ip(ip)
        if reservation is None:
            return False
        if same_mac(reservation.mac, mac):
            return True
        logger.warning("[MERGE] IP %s was leased to MAC %s, but in configuration it is reserved for MAC %s",
                       ip, mac, reservation.mac)
        return False

    def evaluate_link(self, hostname: str, ip, mac: str) -> str:
        link = None
        friendly_name = ""

        # шаблон из friendly name приоритетнее шаблона резервации
        entry = self.registry.friendly_name_for(mac)
        if entry is not None:
            link = entry.link
            friendly_name = entry.name
        if not link:
            reservation = self.registry.reservation_for_ip(ip)
            if reservation is not None:
                link = reservation.link

        if not link:
            return ""

        try:
            rendered = Template(link).substitute(
                mac=mac,
                ip=str(ip),
                hostname=hostname,
                friendly_name=friendly_name,
                dns_domain=self.dns_domain,
                # fqdn должен резолвиться DNS-сервером dnsmasq
                fqdn=f"{hostname}.{self.dns_domain}",
            )
        except (KeyError, ValueError) as e:
            logger.warning("[MERGE] Failed to render the link template [%s] for %s: %s", link, mac, e)
            return ""

        if not is_valid_uri(rendered):
            logger.warning("[MERGE] Rendering [%s] produced an invalid URI [%s]", link, rendered)
            return ""
        return rendered

    def enrich_lease(self, lease: Lease) -> LiveClient:
        return LiveClient(
            lease=lease,
            friendly_name=self.friendly_name_for(lease.mac, lease.hostname),
            has_static_ip=self.has_static_ip(lease.ip, lease.mac),
            is_inside_pool=self.pool.contains(lease.ip),
            evaluated_link=self.evaluate_link(lease.hostname, lease.ip, lease.mac),
        )

    def enrich(self, leases: Iterable[Lease], track: bool = True) -> List[LiveClient]:
        """
        Полная пересборка списка текущих клиентов по пачке аренд.
        При track=True каждый живой MAC сразу записывается в tracker DB;
        координатор передаёт False и вызывает track() после публикации списка.
        """
        leases = list(leases)

        if self.max_workers > 1 and len(leases) > 1:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                clients = list(executor.map(self.enrich_lease, leases))
        else:
            clients = [self.enrich_lease(lease) for lease in leases]

        # сортировка по IP (побайтно), а не по строке
        clients.sort(key=lambda c: (ip_sort_key(c.lease.ip), c.lease.mac))

        if track:
            self.track(clients)
        return clients

    def track(self, clients: List[LiveClient]) -> None:
        now = self.clock()
        for c in clients:
            hostname = c.lease.hostname if c.lease.has_hostname() else ""
            try:
                self.store.upsert(c.lease.mac, hostname, now, self.current_epoch)
            except HistoryStoreError as e:
                logger.warning("[TRACKER DB] Failed to track %s: %s", c.lease.mac, e)

    # ----- Прошлые клиенты -----

    def past_clients(self, alive_macs: Iterable[str]) -> List[PastClient]:
        alive = set()
        for mac in alive_macs:
            try:
                alive.add(canonical_mac(mac))
            except ValueError:
                continue

        try:
            records = self.store.fetch_all()
        except HistoryStoreError as e:
            logger.warning("[TRACKER DB] Failed to get list of past DHCP clients: %s", e)
            return []

        # один MAC - одна строка, даже если в БД он записан в разном регистре
        dead = {}
        for record in records:
            if record.mac in alive:
                continue
            known = dead.get(record.mac)
            if known is None or record.last_seen > known.last_seen:
                dead[record.mac] = record

        past = [self._describe_past(record) for record in dead.values()]
        past.sort(key=lambda p: (p.past_info.last_seen, p.past_info.mac))
        return past

    def _describe_past(self, record: HistoryRecord) -> PastClient:
        reservation = self.registry.reservation_for_mac(record.mac)
        has_static_ip = reservation is not None

        friendly_name = self.friendly_name_for(record.mac, record.hostname)
        if has_static_ip and friendly_name == record.hostname:
            # имя из резервации лучше голого hostname
            friendly_name = reservation.name or friendly_name
        if not friendly_name:
            friendly_name = NOT_AVAILABLE

        if record.generation_epoch > self.current_epoch:
            logger.error("[TRACKER DB] Client %s is tagged with DHCP server start epoch %d while current epoch is %d",
                         record.mac, record.generation_epoch, self.current_epoch)

        return PastClient(
            past_info=record,
            has_static_ip=has_static_ip,
            friendly_name=friendly_name,
            notes=epoch_note(record.generation_epoch, self.current_epoch),
        )

