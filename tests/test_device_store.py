"""Tests for the latest-reading device store."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime

from meterwatch.ble.device_store import DeviceStateStore
from meterwatch.models import DeviceKind, Hub2Reading, MeterReading


def _meter(temperature: float = 21.0) -> MeterReading:
    return MeterReading(temperature=temperature, humidity=40, battery=90)


def test_upsert_creates_status(store: DeviceStateStore) -> None:
    ts = datetime(2026, 1, 1, 12, 0, 0)

    status = store.upsert("aa:bb:cc:dd:ee:01", _meter(), updated_at=ts)

    assert status.address == "AA:BB:CC:DD:EE:01"
    assert status.kind == DeviceKind.METER
    assert status.updated_at == ts
    assert store.get("AA:BB:CC:DD:EE:01", DeviceKind.METER) == status
    assert len(store) == 1


def test_upsert_defaults_timestamp(store: DeviceStateStore) -> None:
    before = datetime.now()

    status = store.upsert("AA:BB:CC:DD:EE:01", _meter())

    assert status.updated_at is not None
    assert status.updated_at >= before


def test_last_write_wins(store: DeviceStateStore) -> None:
    store.upsert("AA:BB:CC:DD:EE:01", _meter(20.0))
    store.upsert("AA:BB:CC:DD:EE:01", _meter(23.5))

    snapshot = store.snapshot()

    assert len(snapshot) == 1
    assert snapshot[0].temperature == 23.5


def test_same_reading_twice_is_idempotent(store: DeviceStateStore) -> None:
    ts = datetime(2026, 1, 1)
    store.upsert("AA:BB:CC:DD:EE:01", _meter(), updated_at=ts)
    once = store.snapshot()

    store.upsert("AA:BB:CC:DD:EE:01", _meter(), updated_at=ts)

    assert store.snapshot() == once


def test_families_are_stored_separately(store: DeviceStateStore) -> None:
    store.upsert("AA:BB:CC:DD:EE:01", _meter())
    store.upsert("AA:BB:CC:DD:EE:01", Hub2Reading(temperature=-1.5, humidity=60))

    assert len(store) == 2
    assert [s.kind for s in store.snapshot()] == [DeviceKind.HUB2, DeviceKind.METER]
    assert store.snapshot(DeviceKind.HUB2)[0].battery is None
    assert store.snapshot(DeviceKind.METER)[0].battery == 90
    assert store.addresses(DeviceKind.METER) == {"AA:BB:CC:DD:EE:01"}


def test_snapshot_is_a_copy(store: DeviceStateStore) -> None:
    store.upsert("AA:BB:CC:DD:EE:01", _meter())
    snapshot = store.snapshot()

    store.upsert("AA:BB:CC:DD:EE:02", _meter())

    assert len(snapshot) == 1
    assert len(store.snapshot()) == 2


def test_get_unknown_device(store: DeviceStateStore) -> None:
    assert store.get("AA:BB:CC:DD:EE:01", DeviceKind.METER) is None
    assert store.snapshot() == []


def test_concurrent_upserts_and_snapshots(store: DeviceStateStore) -> None:
    writers = 8
    per_writer = 500
    stop = threading.Event()
    snapshot_sizes: list[int] = []

    def write(worker: int) -> None:
        for i in range(per_writer):
            address = f"AA:BB:CC:DD:{worker:02X}:{i % 50:02X}"
            if i % 2:
                store.upsert(address, _meter(float(i % 40)))
            else:
                store.upsert(address, Hub2Reading(temperature=float(-i % 40), humidity=i % 100))

    def read() -> None:
        while True:
            snapshot = store.snapshot()
            snapshot_sizes.append(len(snapshot))
            for status in snapshot:
                assert status.address
            if stop.is_set():
                break

    with ThreadPoolExecutor(max_workers=writers + 2) as pool:
        readers = [pool.submit(read) for _ in range(2)]
        futures = [pool.submit(write, w) for w in range(writers)]
        for future in futures:
            future.result()
        stop.set()
        for future in readers:
            future.result()

    # 50 addresses per writer, split across two families
    assert len(store) == writers * 50
    assert snapshot_sizes
    assert max(snapshot_sizes) <= writers * 50
