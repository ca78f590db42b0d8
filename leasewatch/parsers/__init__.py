# leasewatch/parsers/__init__.py
from .registry import register_parser, get_parser
from .dnsmasq import DnsmasqLeasesParser  # импорт выполняет register_parser внутри dnsmasq.py
