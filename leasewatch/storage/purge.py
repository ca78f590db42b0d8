import logging
import threading
from datetime import timedelta
from typing import List, Optional

from leasewatch.errors import HistoryStoreError
from leasewatch.models.history import HistoryRecord
from leasewatch.normalizer.duration import format_duration
from leasewatch.storage.history import HistoryStore

logger = logging.getLogger(__name__)


class PurgeScheduler:
    """
    Периодически удаляет из tracker DB клиентов, не появлявшихся дольше retention.
    Работает только с блокировкой самого HistoryStore, список текущих клиентов не трогает.
    """

    def __init__(self, store: HistoryStore, retention: Optional[timedelta], interval: float = 3600.0):
        self.store = store
        self.retention = retention
        self.interval = interval

    @property
    def enabled(self) -> bool:
        return self.retention is not None and self.retention > timedelta(0)

    def purge_once(self) -> List[HistoryRecord]:
        if not self.enabled:
            return []
        try:
            purged = self.store.purge_older_than(self.retention)
        except HistoryStoreError as e:
            logger.warning("[TRACKER DB] Failed to purge past clients: %s", e)
            return []

        if purged:
            logger.info("[TRACKER DB] Purged %d past DHCP clients, last seen more than %s ago: %s",
                        len(purged), format_duration(self.retention), ", ".join(str(r) for r in purged))
        return purged

    def run(self, stop_event: threading.Event) -> None:
        if not self.enabled:
            logger.info("[TRACKER DB] Retention not configured, past clients are kept forever")
            return
        logger.info("[TRACKER DB] Purging past clients older than %s every %ss",
                    format_duration(self.retention), self.interval)
        while not stop_event.is_set():
            self.purge_once()
            stop_event.wait(self.interval)
