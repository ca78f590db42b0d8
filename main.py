import logging
import signal
import sys
import threading
import time

from dotenv import load_dotenv

from leasewatch.collectors.lease_watcher import LeaseFileWatcher
from leasewatch.config import build_registry, load_options, read_start_epoch
from leasewatch.coordinator import UpdateCoordinator
from leasewatch.errors import ConfigurationError, HistoryStoreError
from leasewatch.merge.clients_merge import ClientReconciler
from leasewatch.storage.file import save_snapshot
from leasewatch.storage.history import HistoryStore
from leasewatch.storage.purge import PurgeScheduler

logger = logging.getLogger("leasewatch")


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def export_snapshots(coordinator: UpdateCoordinator, path: str, refresh_interval: int,
                     pool_size, stop_event: threading.Event):
    """Пишет snapshot на каждое изменение списка клиентов и, если задано, по таймеру."""
    version = 0
    while not stop_event.is_set():
        timeout = refresh_interval if refresh_interval > 0 else 1.0
        new_version = coordinator.wait_for_change(version, timeout=timeout)
        if new_version == version and refresh_interval <= 0:
            continue
        version = new_version
        try:
            save_snapshot(coordinator.snapshot(), path, pool_size)
        except OSError as e:
            logger.warning("Failed to write snapshot %s: %s", path, e)


def build(options):
    registry = build_registry(options)
    pool = options.address_pool()
    epoch = read_start_epoch(options.dhcp_server.start_epoch_file)
    store = HistoryStore(options.dhcp_server.tracker_db)

    reconciler = ClientReconciler(
        pool=pool,
        registry=registry,
        store=store,
        current_epoch=epoch,
        dns_domain=options.dns_server.dns_domain,
    )
    return store, reconciler


def main():
    load_dotenv()
    setup_logging()

    try:
        options = load_options()
        logging.getLogger().setLevel(options.log_level)
        store, reconciler = build(options)
    except (ConfigurationError, HistoryStoreError) as e:
        logger.critical("Startup failed: %s", e)
        return 1

    pool_size = reconciler.pool.size()
    logger.info("DHCP pool: %d ranges, %s addresses", len(reconciler.pool.ranges),
                pool_size if pool_size is not None else "too many")

    coordinator = UpdateCoordinator(reconciler)
    watcher = LeaseFileWatcher(options.dhcp_server.lease_file, coordinator.submit,
                               poll_interval=options.dhcp_server.poll_interval_sec)
    purger = PurgeScheduler(store, options.dhcp_server.forget_past_clients_after,
                            interval=options.dhcp_server.purge_interval_sec)

    stop_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Received signal %d, shutting down", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    workers = [
        threading.Thread(target=coordinator.run, args=(stop_event,), name="coordinator", daemon=True),
        threading.Thread(target=watcher.run, args=(stop_event,), name="lease-watcher", daemon=True),
        threading.Thread(target=export_snapshots, name="snapshot-writer", daemon=True,
                         args=(coordinator, options.snapshot.path, options.snapshot.refresh_interval_sec,
                               pool_size, stop_event)),
    ]
    if purger.enabled:
        workers.append(threading.Thread(target=purger.run, args=(stop_event,), name="purge", daemon=True))

    start_time = time.time()
    for w in workers:
        w.start()

    while not stop_event.is_set():
        stop_event.wait(1.0)

    for w in workers:
        w.join(timeout=5)
    store.close()

    logger.info("Stopped after %.0f s", time.time() - start_time)
    return 0


if __name__ == "__main__":
    sys.exit(main())
