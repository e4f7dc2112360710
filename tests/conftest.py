import pytest

from salonbook.services.local_cache import LocalCache
from salonbook.services.record_store import InMemoryRecordStore
from salonbook.services.salon import build_salon

BUSINESS_CONFIG = {
    "business_name": "Test Studio",
    "currency_symbol": "₹",
    "default_services": [
        {"name": "Bridal Makeup", "client_price": 3500, "description": "Bridal"},
        {"name": "Saree Draping", "client_price": 1200},
    ],
    "default_workers": [
        {"name": "Studio Owner", "role": "Makeup Artist", "payment_rate": 0, "is_owner": True},
        {"name": "Assistant", "role": "Makeup Assistant", "payment_rate": 800, "is_owner": False},
    ],
}


def make_salon(store, cache, **options):
    options.setdefault("business_config", BUSINESS_CONFIG)
    options.setdefault("timezone", "Asia/Kolkata")
    options.setdefault("allow_local_only", False)
    return build_salon(store, cache, **options)


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def cache(tmp_path):
    return LocalCache(str(tmp_path / "cache"))


@pytest.fixture
async def salon(store, cache):
    salon = make_salon(store, cache)
    await salon.load()
    return salon


def service_named(salon, name):
    return next(s for s in salon.catalog.list_services() if s.name == name)


def worker_named(salon, name):
    return next(w for w in salon.catalog.list_workers() if w.name == name)


async def completed_booking(salon, service_name="Bridal Makeup", client_name="Priya", day="2024-01-10", at="10:00"):
    """A booking in the past, already marked completed."""
    service = service_named(salon, service_name)
    result = await salon.bookings.create_booking(client_name, day, at, service.id)
    await salon.bookings.mark_completed(result.data.id)
    return salon.bookings.get_booking(result.data.id)
