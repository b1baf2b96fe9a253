"""Demo mode: synthetic SwitchBot advertisements instead of a radio."""

from __future__ import annotations

import asyncio
import logging
import math
import random
from datetime import datetime
from typing import Optional

from .ble.classifier import SWITCHBOT_COMPANY_ID, SWITCHBOT_SERVICE_UUID
from .ble.scanner import BleScanner
from .models import Advertisement, ServiceData

logger = logging.getLogger(__name__)

# Reproducible output
_rng = random.Random(42)

SERVICE_DATA_UUID_FULL = "0000fd3d-0000-1000-8000-00805f9b34fb"

# ── Demo device definitions ──────────────────────────────────────────

DEMO_DEVICES = [
    {"mac": "D4:E5:F6:00:00:01", "type": "meter", "temp": 21.3, "amp": 0.8, "hum": 42, "bat": 87},
    {"mac": "D4:E5:F6:00:00:02", "type": "meter", "temp": 19.8, "amp": 0.6, "hum": 45, "bat": 72},
    {"mac": "D4:E5:F6:00:00:03", "type": "hub2", "temp": -3.2, "amp": 2.5, "hum": 89, "bat": None},
]


def _sinusoidal(base: float, amplitude: float, minutes: float) -> float:
    """Generate sinusoidal value with small random noise."""
    return base + amplitude * math.sin(2 * math.pi * minutes / 60.0) + _rng.gauss(0, 0.1)


def encode_meter(temperature: float, humidity: int, battery: int) -> bytes:
    """Build Meter service data. Only non-negative temperatures are representable."""
    tenths = round(abs(temperature) * 10)
    return bytes([
        0x54,
        0x00,
        battery & 0xFF,
        tenths % 10,
        (tenths // 10) & 0x7F,
        humidity & 0x7F,
    ])


def encode_hub2(mac: str, temperature: float, humidity: int) -> bytes:
    """Build Hub2 manufacturer data including the company id."""
    tenths = round(abs(temperature) * 10)
    whole = (tenths // 10) & 0x7F
    if temperature >= 0:
        whole |= 0x80

    data = bytearray(SWITCHBOT_COMPANY_ID.to_bytes(2, "little"))
    data += bytes.fromhex(mac.replace(":", ""))
    data += bytes(7)
    data += bytes([tenths % 10, whole, humidity & 0x7F])
    return bytes(data)


def demo_advertisement(device: dict, now: Optional[datetime] = None) -> Advertisement:
    """Generate one advertisement for a demo device."""
    now = now or datetime.now()
    minutes = now.hour * 60 + now.minute + now.second / 60.0
    temperature = _sinusoidal(device["temp"], device["amp"], minutes)
    humidity = max(0, min(99, device["hum"] + round(_rng.gauss(0, 1))))

    if device["type"] == "meter":
        return Advertisement(
            address=device["mac"],
            service_uuids=[SWITCHBOT_SERVICE_UUID],
            service_data=[
                ServiceData(
                    uuid=SERVICE_DATA_UUID_FULL,
                    data=encode_meter(temperature, humidity, device["bat"]),
                )
            ],
        )

    return Advertisement(
        address=device["mac"],
        service_data=[ServiceData(uuid=SERVICE_DATA_UUID_FULL, data=bytes([0x76, 0x00, 0x00]))],
        manufacturer_data=encode_hub2(device["mac"], temperature, humidity),
    )


class DemoScanSource:
    """Stand-in for the radio: pushes demo advertisements through a BleScanner."""

    def __init__(self, scanner: BleScanner, interval: float = 5.0) -> None:
        self._scanner = scanner
        self._interval = interval
        self._running = False
        self._stop_requested = False

    @property
    def is_running(self) -> bool:
        return self._running

    def emit_once(self) -> int:
        """Process one advertisement per demo device. Returns readings stored."""
        stored = 0
        for device in DEMO_DEVICES:
            stored += len(self._scanner.process(demo_advertisement(device)))
        return stored

    async def run_with_restart(self) -> None:
        """Emit advertisements until stopped or cancelled."""
        if self._stop_requested:
            return

        self._running = True
        logger.info("Demo advertisement source started (%d devices)", len(DEMO_DEVICES))

        try:
            while not self._stop_requested:
                self.emit_once()
                await asyncio.sleep(self._interval)
        except asyncio.CancelledError:
            logger.info("Demo advertisement source cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        self._stop_requested = True
        self._running = False
