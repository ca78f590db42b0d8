from datetime import datetime, timezone

import pytest

from leasewatch.merge.clients_merge import ClientReconciler
from leasewatch.merge.registry import ClientRegistry
from leasewatch.models.dhcp import Lease
from leasewatch.models.reservation import FriendlyName, Reservation
from leasewatch.pool.ippool import AddressPool
from leasewatch.storage.history import HistoryStore

FIXED_NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def store():
    s = HistoryStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def registry():
    return ClientRegistry(
        reservations=[
            Reservation(name="test-friendly-name", mac="00:11:22:33:44:56", ip="192.168.0.3",
                        link="https://${ip}"),
        ],
        friendly_names=[
            FriendlyName(name="FriendlyClient1", mac="00:11:22:33:44:55", link="https://${ip}/client1-page"),
            FriendlyName(name="FriendlyClient4", mac="aa:bb:CC:DD:ee:FF", link="https://${hostname}/client4-page"),
        ],
    )


@pytest.fixture
def pool():
    return AddressPool.from_strings("192.168.0.1", "192.168.0.100")


@pytest.fixture
def reconciler(pool, registry, store):
    return ClientReconciler(
        pool=pool,
        registry=registry,
        store=store,
        current_epoch=3,
        dns_domain="lan",
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def mock_leases():
    return [
        Lease(mac="00:11:22:33:44:55", ip="192.168.0.2", hostname="client1"),
        Lease(mac="00:11:22:33:44:56", ip="192.168.0.3", hostname="client2"),
        Lease(mac="00:11:22:33:44:57", ip="192.168.0.101", hostname="client3"),
        Lease(mac="AA:BB:CC:DD:EE:FF", ip="192.168.0.66", hostname="client4"),
    ]
