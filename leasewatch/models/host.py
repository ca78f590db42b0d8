from datetime import datetime
from typing import List

from pydantic import BaseModel, Field

from leasewatch.models.dhcp import Lease
from leasewatch.models.history import HistoryRecord


class LiveClient(BaseModel):
    """Клиент с активной арендой, обогащённый данными из конфигурации."""
    lease: Lease
    has_static_ip: bool = False  # есть резервация и MAC совпадает
    is_inside_pool: bool = False  # IP из динамического пула
    friendly_name: str = ""
    evaluated_link: str = ""

    @property
    def mac(self) -> str:
        return self.lease.mac

    @property
    def ip(self):
        return self.lease.ip


class PastClient(BaseModel):
    """Клиент из истории, которого нет среди текущих аренд."""
    past_info: HistoryRecord
    has_static_ip: bool = False
    friendly_name: str = "N/A"
    notes: str = ""


class Snapshot(BaseModel):
    current_clients: List[LiveClient] = Field(default_factory=list)
    past_clients: List[PastClient] = Field(default_factory=list)
    generated_at: datetime
