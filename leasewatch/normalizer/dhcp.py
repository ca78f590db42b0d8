import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from pydantic import ValidationError

from leasewatch.models.dhcp import Lease
from leasewatch.normalizer.base import BaseNormalizer

logger = logging.getLogger(__name__)


class DhcpNormalizer(BaseNormalizer):
    @classmethod
    def normalize(cls, parsed_data: Dict[str, Any], source: str) -> Dict[str, Any]:
        return cls.normalize_leases(parsed_data, source)

    @classmethod
    def normalize_leases(cls, parsed_data: Dict[str, Any], source: str = "dnsmasq") -> Dict[str, Any]:
        entries = parsed_data.get("dhcp_leases", [])
        normalized: List[Lease] = []

        for entry in entries:
            expires = entry.get("expires")
            try:
                lease = Lease(
                    mac=entry.get("mac"),
                    ip=entry.get("ip"),
                    hostname=entry.get("hostname"),
                    # 0: бессрочная аренда
                    expires=datetime.fromtimestamp(expires, tz=timezone.utc) if expires else None,
                    client_id=entry.get("client_id"),
                )
            except (ValidationError, ValueError, OverflowError, OSError) as e:
                logger.warning("[DHCP NORMALIZER] Skipping invalid %s lease %s: %s", source, entry, e)
                continue
            normalized.append(lease)

        return {"dhcp_leases_normalized": normalized}
