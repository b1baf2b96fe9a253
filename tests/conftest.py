from __future__ import annotations

import pytest

from meterwatch.ble.device_store import DeviceStateStore
from meterwatch.models import Advertisement, ServiceData

SERVICE_UUID_DASHED = "cba20d00-224d-11e6-9fb8-0002a5d5c51b"
FD3D_FULL = "0000fd3d-0000-1000-8000-00805f9b34fb"
LEGACY_SERVICE_DATA_UUID = "00000d00-0000-1000-8000-00805f9b34fb"

# Meter: battery 100, 25.5 C, 50 %
METER_PAYLOAD = bytes([0x54, 0x00, 0x64, 0x05, 0x19, 0x32])


def hub2_manufacturer_data(frac: int = 0x02, whole: int = 0x96, humidity: int = 0x30) -> bytes:
    """18 bytes of Hub2 manufacturer data with the given temperature/humidity bytes."""
    data = bytearray(18)
    data[0:2] = (0x0969).to_bytes(2, "little")
    data[15] = frac
    data[16] = whole
    data[17] = humidity
    return bytes(data)


def meter_advertisement(address: str = "aa:bb:cc:dd:ee:01", payload: bytes = METER_PAYLOAD) -> Advertisement:
    return Advertisement(
        address=address,
        service_uuids=[SERVICE_UUID_DASHED],
        service_data=[ServiceData(uuid=LEGACY_SERVICE_DATA_UUID, data=payload)],
    )


def hub2_advertisement(address: str = "aa:bb:cc:dd:ee:02", manufacturer_data: bytes | None = None) -> Advertisement:
    return Advertisement(
        address=address,
        service_data=[ServiceData(uuid=FD3D_FULL, data=bytes([0x76, 0x00, 0x00]))],
        manufacturer_data=hub2_manufacturer_data() if manufacturer_data is None else manufacturer_data,
    )


@pytest.fixture
def store() -> DeviceStateStore:
    return DeviceStateStore()
