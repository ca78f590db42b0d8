import logging
import queue
import threading
from typing import Iterable, List, Optional

from leasewatch.merge.clients_merge import ClientReconciler
from leasewatch.models.dhcp import Lease
from leasewatch.models.host import LiveClient, Snapshot
from leasewatch.storage.history import utcnow

logger = logging.getLogger(__name__)


class UpdateCoordinator:
    """
    Владеет текущим списком клиентов.
    Один поток-потребитель применяет пачки аренд строго по порядку поступления,
    читатели получают копию через snapshot() и писателя не блокируют.
    """

    def __init__(self, reconciler: ClientReconciler):
        self.reconciler = reconciler

        self._clients: List[LiveClient] = []
        self._clients_lock = threading.Lock()

        # уведомление об изменениях: версия растёт на 1 за каждую пачку
        self._changed = threading.Condition()
        self._version = 0

        # передача пачек производитель -> потребитель, один слот
        self._batches: "queue.Queue[List[Lease]]" = queue.Queue(maxsize=1)
        self._applied = 0

    @property
    def version(self) -> int:
        with self._changed:
            return self._version

    def apply_batch(self, leases: Iterable[Lease]) -> List[LiveClient]:
        leases = list(leases)
        clients = self.reconciler.enrich(leases, track=False)

        with self._clients_lock:
            before = len(self._clients)
            self._clients = clients

        # история только после публикации: живой MAC не может оказаться среди прошлых
        self.reconciler.track(clients)

        logger.info("[COORDINATOR] Lease batch #%d applied: list size before=%d, after=%d clients",
                    self._applied, before, len(clients))
        self._applied += 1

        with self._changed:
            self._version += 1
            self._changed.notify_all()
        return clients

    def current_clients(self) -> List[LiveClient]:
        with self._clients_lock:
            return [c.model_copy(deep=True) for c in self._clients]

    def snapshot(self) -> Snapshot:
        """Копия текущих клиентов плюс прошлые клиенты из tracker DB. Без побочных эффектов."""
        current = self.current_clients()
        past = self.reconciler.past_clients(c.lease.mac for c in current)
        return Snapshot(current_clients=current, past_clients=past, generated_at=utcnow())

    def wait_for_change(self, last_version: int, timeout: Optional[float] = None) -> int:
        """Ждёт, пока версия станет больше last_version (или истечёт timeout). Возвращает текущую версию."""
        with self._changed:
            self._changed.wait_for(lambda: self._version > last_version, timeout=timeout)
            return self._version

    # ----- Очередь пачек -----

    def submit(self, leases: Iterable[Lease], timeout: Optional[float] = None) -> None:
        """Кладёт пачку в очередь; блокируется, пока потребитель не заберёт предыдущую."""
        self._batches.put(list(leases), timeout=timeout)

    def run(self, stop_event: threading.Event, poll_timeout: float = 0.5) -> None:
        logger.info("[COORDINATOR] Waiting for lease batches")
        while not stop_event.is_set():
            try:
                leases = self._batches.get(timeout=poll_timeout)
            except queue.Empty:
                continue
            try:
                self.apply_batch(leases)
            finally:
                self._batches.task_done()

    def join(self) -> None:
        self._batches.join()
