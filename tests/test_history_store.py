from datetime import datetime, timedelta, timezone

import pytest

from leasewatch.errors import HistoryStoreError
from leasewatch.storage.history import HistoryStore, from_db_time, to_db_time

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


def test_empty_store(store):
    assert store.fetch_all() == []
    assert store.get("00:11:22:33:44:55") is None


def test_upsert_insert_then_update(store):
    store.upsert("00:11:22:33:44:55", "laptop", T0, 1)
    store.upsert("00-11-22-33-44-55", "laptop-renamed", T0 + timedelta(hours=1), 2)

    records = store.fetch_all()
    assert len(records) == 1
    record = records[0]
    assert record.mac == "00:11:22:33:44:55"
    assert record.hostname == "laptop-renamed"
    assert record.last_seen == T0 + timedelta(hours=1)
    assert record.generation_epoch == 2


def test_upsert_is_idempotent(store):
    for _ in range(3):
        store.upsert("00:11:22:33:44:55", "laptop", T0, 1)
    assert len(store.fetch_all()) == 1
    assert store.get("00:11:22:33:44:55").last_seen == T0


def test_upsert_rejects_invalid_mac(store):
    with pytest.raises(ValueError):
        store.upsert("bogus", "x", T0, 1)


def test_naive_datetime_is_utc(store):
    store.upsert("00:11:22:33:44:55", "", T0.replace(tzinfo=None), 1)
    assert store.get("00:11:22:33:44:55").last_seen == T0


def test_db_time_round_trip_keeps_order():
    earlier = to_db_time(T0)
    later = to_db_time(T0 + timedelta(microseconds=1))
    assert earlier < later
    assert from_db_time(earlier) == T0


def test_store_on_disk(tmp_path):
    db = tmp_path / "sub" / "trackerdb.sqlite3"
    with HistoryStore(db) as s:
        s.upsert("00:11:22:33:44:55", "laptop", T0, 1)
    with HistoryStore(db) as s:
        assert s.get("00:11:22:33:44:55").hostname == "laptop"


def test_closed_store_raises(store):
    store.close()
    with pytest.raises(HistoryStoreError):
        store.fetch_all()
