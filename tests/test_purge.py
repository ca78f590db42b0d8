import logging
import threading
from datetime import timedelta

import pytest

from leasewatch.errors import HistoryStoreError
from leasewatch.storage.purge import PurgeScheduler


@pytest.fixture
def populated(store, fixed_now):
    store.upsert("00:11:22:33:44:01", "fresh", fixed_now - timedelta(hours=1), 3)
    store.upsert("00:11:22:33:44:02", "week-old", fixed_now - timedelta(days=7), 2)
    store.upsert("00:11:22:33:44:03", "ancient", fixed_now - timedelta(days=400), 1)
    return store


@pytest.mark.parametrize("retention", [None, timedelta(0), timedelta(days=-1)])
def test_purge_disabled_deletes_nothing(populated, fixed_now, retention):
    assert populated.purge_older_than(retention, now=fixed_now) == []
    assert len(populated.fetch_all()) == 3


def test_purge_deletes_exactly_old_records(populated, fixed_now):
    purged = populated.purge_older_than(timedelta(days=3), now=fixed_now)
    assert sorted(r.hostname for r in purged) == ["ancient", "week-old"]
    assert [r.hostname for r in populated.fetch_all()] == ["fresh"]


def test_purge_boundary_is_strict(store, fixed_now):
    store.upsert("00:11:22:33:44:01", "edge", fixed_now - timedelta(days=3), 1)
    assert store.purge_older_than(timedelta(days=3), now=fixed_now) == []

    purged = store.purge_older_than(timedelta(days=3), now=fixed_now + timedelta(microseconds=1))
    assert [r.hostname for r in purged] == ["edge"]
    assert store.fetch_all() == []


def test_scheduler_disabled(store):
    scheduler = PurgeScheduler(store, None)
    assert not scheduler.enabled
    assert scheduler.purge_once() == []
    # без retention run() сразу возвращается
    scheduler.run(threading.Event())


def test_scheduler_purges(populated, caplog):
    # retention от реального времени: записи из 2024 года уже старые
    scheduler = PurgeScheduler(populated, timedelta(days=30))
    with caplog.at_level(logging.INFO):
        purged = scheduler.purge_once()
    assert len(purged) == 3
    assert "Purged 3 past DHCP clients" in caplog.text


def test_scheduler_run_stops(populated):
    stop_event = threading.Event()
    scheduler = PurgeScheduler(populated, timedelta(days=30), interval=0.01)
    worker = threading.Thread(target=scheduler.run, args=(stop_event,))
    worker.start()
    stop_event.set()
    worker.join(timeout=5)
    assert not worker.is_alive()


def test_scheduler_survives_store_errors(caplog):
    class BrokenStore:
        def purge_older_than(self, retention):
            raise HistoryStoreError("database is locked")

    scheduler = PurgeScheduler(BrokenStore(), timedelta(days=1))
    with caplog.at_level(logging.WARNING):
        assert scheduler.purge_once() == []
    assert "database is locked" in caplog.text


def test_purge_drops_malformed_rows(populated, fixed_now, caplog):
    with populated._conn:
        populated._conn.execute(
            "INSERT INTO dhcp_clients (mac_addr, hostname, last_seen, generation_epoch) VALUES (?, ?, ?, ?)",
            ("not-a-mac", "junk", "2024-05-01T00:00:00+00:00", 1),
        )
        populated._conn.execute(
            "INSERT INTO dhcp_clients (mac_addr, hostname, last_seen, generation_epoch) VALUES (?, ?, ?, ?)",
            ("00:11:22:33:44:04", "bad-time", "yesterday", 1),
        )

    with caplog.at_level(logging.WARNING):
        purged = populated.purge_older_than(timedelta(days=3), now=fixed_now)

    # в результате только настоящие записи, битые строки просто исчезают
    assert sorted(r.hostname for r in purged) == ["ancient", "week-old"]
    assert "Dropping malformed row" in caplog.text
    remaining = populated._conn.execute("SELECT mac_addr FROM dhcp_clients").fetchall()
    assert [row["mac_addr"] for row in remaining] == ["00:11:22:33:44:01"]
