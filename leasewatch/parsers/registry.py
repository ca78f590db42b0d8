import logging
from typing import Callable, Dict

logger = logging.getLogger(__name__)

# ключ "<source>_<command>", например "dnsmasq_dhcp_leases"
parser_registry: Dict[str, Callable] = {}


def _key(source: str, command_slug: str) -> str:
    return f"{source.lower()}_{command_slug.lower()}"


def register_parser(source: str, command_slug: str, parser_func: Callable):
    key = _key(source, command_slug)
    if key in parser_registry and parser_registry[key] != parser_func:
        logger.warning("[PARSERS] Parser for %s replaced by %s", key, getattr(parser_func, "__qualname__", parser_func))
    parser_registry[key] = parser_func


def get_parser(source: str, command_slug: str) -> Callable | None:
    return parser_registry.get(_key(source, command_slug))
