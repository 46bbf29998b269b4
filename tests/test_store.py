import threading

import pytest

from control_importer.errors import StoreError
from control_importer.models import NormalizedRecord
from control_importer.reservation_factory import ReservationFactory
from control_importer.store import InMemoryStore


def reservation_for(store, guest, day):
    record = NormalizedRecord(
        guest_name=guest,
        check_in_date=f"2025-03-{day:02d}",
        check_out_date=f"2025-03-{day:02d}",
        num_guests=2,
        total_amount="300.00",
        platform="Direct",
        property_id=2,
    )
    return ReservationFactory().build(record, store.get_property(2))


def test_from_file_reports_unreadable_catalog(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(StoreError):
        InMemoryStore.from_file(str(path))


def test_save_and_reload(store, tmp_path):
    created = store.create_reservation(reservation_for(store, "Ana Costa", 3))
    path = tmp_path / "catalog.json"
    store.save(str(path))

    reloaded = InMemoryStore.from_file(str(path))
    assert [r.id for r in reloaded.reservations] == [1, created.id]
    assert reloaded.get_property(1).name == "Aroeira I"


def test_create_rejects_unknown_property(store):
    reservation = reservation_for(store, "Ana Costa", 3)
    store.properties.pop(2)
    with pytest.raises(StoreError):
        store.create_reservation(reservation)


def test_concurrent_creates_get_unique_ids(store):
    reservations = [reservation_for(store, f"Guest {i}", i % 28 + 1) for i in range(200)]
    start = threading.Barrier(4)

    def create(chunk):
        start.wait()
        for reservation in chunk:
            store.create_reservation(reservation)

    threads = [threading.Thread(target=create, args=(reservations[i::4],)) for i in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    ids = [r.id for r in store.reservations]
    assert len(ids) == 201
    assert len(set(ids)) == 201
    assert max(ids) == 201
