import logging
import os
import threading
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from leasewatch.models.dhcp import Lease
from leasewatch.normalizer.dhcp import DhcpNormalizer
from leasewatch.parsers.registry import get_parser

logger = logging.getLogger(__name__)


def read_leases(path: str | Path) -> List[Lease]:
    """Читает lease-файл dnsmasq целиком. Нет файла - нет аренд."""
    path = Path(path)
    if not path.exists():
        logger.info("[LEASES] Lease file %s not found, assuming no leases", path)
        return []

    raw_text = path.read_text(encoding="utf-8", errors="replace")

    parser = get_parser("dnsmasq", "dhcp_leases")
    parsed = parser("dhcp_leases", raw_text, "dnsmasq")
    normalized = DhcpNormalizer.normalize_leases(parsed, "dnsmasq")
    return normalized.get("dhcp_leases_normalized", [])


class LeaseFileWatcher:
    """
    Следит за lease-файлом (mtime + размер) и отдаёт полную пачку аренд
    при каждом изменении и один раз на старте.
    """

    def __init__(self, path: str | Path, submit: Callable[[List[Lease]], None], poll_interval: float = 1.0):
        self.path = Path(path)
        self.submit = submit
        self.poll_interval = poll_interval
        self._last_state: Optional[Tuple[int, int]] = None
        self._changes = 0

    def _stat(self) -> Optional[Tuple[int, int]]:
        try:
            st = os.stat(self.path)
        except FileNotFoundError:
            return None
        return st.st_mtime_ns, st.st_size

    def check(self, force: bool = False) -> bool:
        """Отдаёт пачку, если файл изменился. True, если пачка была отправлена."""
        state = self._stat()
        if not force and state == self._last_state:
            return False

        try:
            leases = read_leases(self.path)
        except OSError as e:
            # состояние не запоминаем: на следующем опросе читаем снова
            logger.warning("[LEASES] Failed to read lease file %s, will retry: %s", self.path, e)
            return False
        self._last_state = state

        logger.info("[LEASES] Change #%d detected in lease file %s: %d leases",
                    self._changes, self.path, len(leases))
        self._changes += 1
        self.submit(leases)
        return True

    def run(self, stop_event: threading.Event) -> None:
        logger.info("[LEASES] Watching lease file %s every %.1fs", self.path, self.poll_interval)
        self.check(force=True)
        while not stop_event.wait(self.poll_interval):
            self.check()
