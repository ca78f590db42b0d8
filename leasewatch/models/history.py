from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from leasewatch.models.dhcp import MAC_PATTERN
from leasewatch.normalizer.mac import canonical_mac


class HistoryRecord(BaseModel):
    """
    Запись tracker DB: любой MAC, когда-либо получавший аренду.
    generation_epoch: номер запуска DHCP-сервера, в котором MAC видели последним.
    """
    mac: str = Field(..., pattern=MAC_PATTERN)
    hostname: str = ""
    last_seen: datetime
    generation_epoch: int = 0

    @field_validator("mac", mode="before")
    @classmethod
    def normalize_mac(cls, v: str) -> str:
        return canonical_mac(v)

    def __str__(self) -> str:
        return f"{self.mac} ({self.hostname or '?'})"
