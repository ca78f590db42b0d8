"""
Tracker DB: история всех MAC-адресов, когда-либо получавших аренду.

Текущие аренды живут в lease-файле dnsmasq; если клиент не продлил аренду
или не появлялся после перезапуска dnsmasq, из lease-файла он пропадает.
Здесь же запись остаётся (с last_seen и epoch запуска сервера) до тех пор,
пока её не удалит purge по сроку хранения. На этом строится список
"прошлых" клиентов.
"""
import logging
import sqlite3
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from leasewatch.errors import HistoryStoreError
from leasewatch.models.history import HistoryRecord
from leasewatch.normalizer.mac import canonical_mac

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS dhcp_clients (
    mac_addr TEXT PRIMARY KEY,
    hostname TEXT,
    last_seen TEXT NOT NULL,
    generation_epoch INTEGER NOT NULL DEFAULT 0
);
CREATE INDEX IF NOT EXISTS idx_dhcp_clients_last_seen ON dhcp_clients(last_seen);
"""

UPSERT = """
INSERT INTO dhcp_clients (mac_addr, hostname, last_seen, generation_epoch)
VALUES (?, ?, ?, ?)
ON CONFLICT(mac_addr) DO UPDATE SET
    hostname=excluded.hostname,
    last_seen=excluded.last_seen,
    generation_epoch=excluded.generation_epoch
"""

SELECT_ALL = "SELECT mac_addr, hostname, last_seen, generation_epoch FROM dhcp_clients"

# IS, а не =: битая строка может иметь NULL в mac_addr
DELETE_ONE = "DELETE FROM dhcp_clients WHERE mac_addr IS ?"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_db_time(dt: datetime) -> str:
    # фиксированная точность, строки сравниваются хронологически
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def from_db_time(value: str) -> datetime:
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _row_to_record(row: sqlite3.Row) -> Optional[HistoryRecord]:
    try:
        return HistoryRecord(
            mac=row["mac_addr"],
            hostname=row["hostname"] or "",
            last_seen=from_db_time(row["last_seen"]),
            generation_epoch=row["generation_epoch"] or 0,
        )
    except (ValueError, TypeError, ValidationError) as e:
        logger.warning("[TRACKER DB] Skipping malformed row for %r: %s", row["mac_addr"], e)
        return None


class HistoryStore:
    """SQLite-хранилище истории. Все обращения сериализуются внутренней блокировкой."""

    def __init__(self, db_path: str | Path = ":memory:"):
        self.db_path = str(db_path)
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            raise HistoryStoreError(f"failed to open tracker DB {self.db_path}: {e}") from e

        logger.info("[TRACKER DB] Opened DHCP clients tracking DB at %s", self.db_path)

    def upsert(self, mac: str, hostname: str, last_seen: datetime, epoch: int) -> None:
        """Вставка или обновление по MAC: меняются только hostname, last_seen и epoch."""
        params = (canonical_mac(mac), hostname or "", to_db_time(last_seen), int(epoch))
        with self._lock:
            try:
                with self._conn:
                    self._conn.execute(UPSERT, params)
            except sqlite3.Error as e:
                raise HistoryStoreError(f"failed to upsert {mac}: {e}") from e

    def get(self, mac: str) -> Optional[HistoryRecord]:
        with self._lock:
            try:
                row = self._conn.execute(SELECT_ALL + " WHERE mac_addr = ?", (canonical_mac(mac),)).fetchone()
            except sqlite3.Error as e:
                raise HistoryStoreError(f"failed to query {mac}: {e}") from e
        if row is None:
            return None
        return _row_to_record(row)

    def fetch_all(self) -> List[HistoryRecord]:
        """Полный скан таблицы. Для пустой таблицы пустой список."""
        with self._lock:
            try:
                rows = self._conn.execute(SELECT_ALL).fetchall()
            except sqlite3.Error as e:
                raise HistoryStoreError(f"failed to query dhcp_clients: {e}") from e

        records = []
        for row in rows:
            record = _row_to_record(row)
            if record is not None:
                records.append(record)
        return records

    def purge_older_than(self, retention: Optional[timedelta], now: Optional[datetime] = None) -> List[HistoryRecord]:
        """
        Удаляет записи с last_seen старше now - retention и возвращает ровно их.
        При retention None или <= 0 ничего не удаляется.
        Нечитаемые строки (битый MAC или last_seen) удаляются тоже, но в результат не входят.
        """
        if retention is None or retention <= timedelta(0):
            return []

        cutoff = (now or utcnow()) - retention
        if cutoff.tzinfo is None:
            cutoff = cutoff.replace(tzinfo=timezone.utc)

        with self._lock:
            try:
                with self._conn:
                    rows = self._conn.execute(SELECT_ALL).fetchall()
                    purged = []
                    for row in rows:
                        record = _row_to_record(row)
                        if record is None:
                            logger.warning("[TRACKER DB] Dropping malformed row for %r", row["mac_addr"])
                            self._conn.execute(DELETE_ONE, (row["mac_addr"],))
                        elif record.last_seen < cutoff:
                            self._conn.execute(DELETE_ONE, (row["mac_addr"],))
                            purged.append(record)
            except sqlite3.Error as e:
                raise HistoryStoreError(f"failed to purge dhcp_clients: {e}") from e

        return purged

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
