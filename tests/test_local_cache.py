import os

import pytest

from salonbook.services.local_cache import LocalCache


def test_missing_key_returns_none(tmp_path):
    cache = LocalCache(str(tmp_path / "cache"))
    assert cache.get("salonbook_bookings") is None


def test_set_then_get(tmp_path):
    cache = LocalCache(str(tmp_path / "cache"))
    bookings = [{"id": "b1", "client_name": "Priya", "total_amount": 3500}]

    assert cache.set("salonbook_bookings", bookings) is True
    assert cache.get("salonbook_bookings") == bookings
    assert not os.path.exists(tmp_path / "cache" / "salonbook_bookings.json.tmp")


def test_corrupt_file_reads_as_miss(tmp_path):
    cache = LocalCache(str(tmp_path))
    (tmp_path / "salonbook_services.json").write_text("{not json", encoding="utf-8")
    assert cache.get("salonbook_services") is None


def test_unserializable_value_is_reported_not_raised(tmp_path):
    cache = LocalCache(str(tmp_path))
    assert cache.set("salonbook_services", {"when": object()}) is False


def test_key_cannot_escape_directory(tmp_path):
    cache = LocalCache(str(tmp_path))
    with pytest.raises(ValueError):
        cache.get("../secrets")
