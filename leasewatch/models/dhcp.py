from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, IPvAnyAddress, field_validator

from leasewatch.normalizer.mac import canonical_mac

MAC_PATTERN = r"^([0-9a-f]{2}:){5}[0-9a-f]{2}$"

# dnsmasq пишет "*", если клиент не сообщил hostname
MISSING_HOSTNAME = "*"


class Lease(BaseModel):
    mac: str = Field(..., pattern=MAC_PATTERN)  # aa:bb:cc:dd:ee:ff
    ip: IPvAnyAddress
    hostname: str = MISSING_HOSTNAME
    expires: Optional[datetime] = None  # None: аренда бессрочная (0 в файле dnsmasq)
    client_id: Optional[str] = None

    @field_validator("mac", mode="before")
    @classmethod
    def normalize_mac(cls, v: str) -> str:
        return canonical_mac(v)

    @field_validator("hostname", mode="before")
    @classmethod
    def default_hostname(cls, v: Optional[str]) -> str:
        return v if v else MISSING_HOSTNAME

    def has_hostname(self) -> bool:
        return self.hostname != MISSING_HOSTNAME
