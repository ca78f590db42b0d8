import threading

from leasewatch.coordinator import UpdateCoordinator
from leasewatch.merge.clients_merge import ClientReconciler
from leasewatch.models.dhcp import Lease
from leasewatch.storage.history import HistoryStore


def test_version_increments_once_per_batch(reconciler, mock_leases):
    coordinator = UpdateCoordinator(reconciler)
    assert coordinator.version == 0
    coordinator.apply_batch(mock_leases)
    assert coordinator.version == 1
    coordinator.apply_batch(mock_leases)
    assert coordinator.version == 2


def test_current_clients_are_copies(reconciler, mock_leases):
    coordinator = UpdateCoordinator(reconciler)
    coordinator.apply_batch(mock_leases)

    copy = coordinator.current_clients()
    copy[0].friendly_name = "changed"
    copy.clear()

    clients = coordinator.current_clients()
    assert len(clients) == 4
    assert clients[0].friendly_name == "FriendlyClient1"


def test_client_removed_from_leases_becomes_past(reconciler, mock_leases):
    coordinator = UpdateCoordinator(reconciler)
    coordinator.apply_batch(mock_leases)
    coordinator.apply_batch(mock_leases[1:])

    snap = coordinator.snapshot()
    assert [c.lease.hostname for c in snap.current_clients] == ["client2", "client4", "client3"]
    assert [p.past_info.mac for p in snap.past_clients] == ["00:11:22:33:44:55"]
    assert snap.past_clients[0].friendly_name == "FriendlyClient1"


def test_empty_batch_clears_current_clients(reconciler, mock_leases):
    coordinator = UpdateCoordinator(reconciler)
    coordinator.apply_batch(mock_leases)
    coordinator.apply_batch([])

    snap = coordinator.snapshot()
    assert snap.current_clients == []
    assert len(snap.past_clients) == 4
    assert coordinator.version == 2


def test_snapshot_has_no_side_effects(reconciler, mock_leases):
    coordinator = UpdateCoordinator(reconciler)
    coordinator.apply_batch(mock_leases)
    first = coordinator.snapshot()
    second = coordinator.snapshot()
    assert first.current_clients == second.current_clients
    assert first.past_clients == second.past_clients
    assert coordinator.version == 1


def test_wait_for_change_times_out(reconciler):
    coordinator = UpdateCoordinator(reconciler)
    assert coordinator.wait_for_change(0, timeout=0.01) == 0


def test_batches_applied_in_arrival_order(reconciler, mock_leases):
    coordinator = UpdateCoordinator(reconciler)
    stop_event = threading.Event()
    consumer = threading.Thread(target=coordinator.run, args=(stop_event,), kwargs={"poll_timeout": 0.05})
    consumer.start()
    try:
        coordinator.submit(mock_leases, timeout=5)
        coordinator.submit(mock_leases[:1], timeout=5)
        coordinator.submit([Lease(mac="00:11:22:33:44:99", ip="192.168.0.9", hostname="last")], timeout=5)
        coordinator.join()
        assert coordinator.wait_for_change(2, timeout=5) == 3
    finally:
        stop_event.set()
        consumer.join(timeout=5)

    assert [c.lease.hostname for c in coordinator.current_clients()] == ["last"]


class SnapshotOnWriteStore(HistoryStore):
    """Снимает snapshot в момент записи в историю, как это сделал бы параллельный читатель."""

    def __init__(self):
        super().__init__(":memory:")
        self.coordinator = None
        self.seen_past = []

    def upsert(self, mac, hostname, last_seen, epoch):
        super().upsert(mac, hostname, last_seen, epoch)
        if self.coordinator is not None:
            snap = self.coordinator.snapshot()
            self.seen_past.extend(p.past_info.mac for p in snap.past_clients)


def test_new_client_never_seen_as_past_during_update(pool, registry, fixed_now):
    store = SnapshotOnWriteStore()
    reconciler = ClientReconciler(pool, registry, store, current_epoch=3, clock=lambda: fixed_now)
    coordinator = UpdateCoordinator(reconciler)
    store.coordinator = coordinator

    coordinator.apply_batch([Lease(mac="00:11:22:33:44:99", ip="192.168.0.9", hostname="newbie")])

    assert store.seen_past == []
    assert store.get("00:11:22:33:44:99").hostname == "newbie"
    assert [c.mac for c in coordinator.current_clients()] == ["00:11:22:33:44:99"]
    store.close()
