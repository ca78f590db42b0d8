import logging
from typing import Any, Dict, List

from leasewatch.normalizer.mac import canonical_mac
from leasewatch.parsers.base_parser import BaseParser
from leasewatch.parsers.registry import register_parser

logger = logging.getLogger(__name__)


class DnsmasqLeasesParser(BaseParser):
    """
    Lease-файл dnsmasq, по строке на аренду:
        <expiry> <mac> <ip> <hostname> <client-id>
    expiry - unix time (0 для бессрочной аренды); вместо пустых hostname и client-id пишется "*".
    Строка "duid ..." и аренды DHCPv6 (вместо MAC там IAID) пропускаются.
    """

    @classmethod
    def parse(cls, command: str, raw_text: str, source: str = None) -> Dict[str, Any]:
        if "dhcp_leases" not in command.lower():
            return {}

        entries: List[Dict] = []

        for lineno, line in cls.significant_lines(raw_text):
            if line.startswith("duid "):
                continue

            fields = line.split()
            if len(fields) < 4:
                logger.debug("[DHCP PARSER] Line %d: too few fields: %r", lineno, line)
                continue

            expiry, mac, ip, hostname = fields[:4]
            client_id = fields[4] if len(fields) > 4 else "*"

            try:
                expires = int(expiry)
                mac = canonical_mac(mac)
            except ValueError:
                logger.debug("[DHCP PARSER] Line %d: not an IPv4 lease: %r", lineno, line)
                continue

            entries.append({
                "expires": expires,
                "mac": mac,
                "ip": ip,
                "hostname": hostname,
                "client_id": None if client_id == "*" else client_id,
            })

        logger.debug("[DHCP PARSER] Parsed leases: %d", len(entries))
        return {"dhcp_leases": entries}


register_parser("dnsmasq", "dhcp_leases", DnsmasqLeasesParser.parse)
