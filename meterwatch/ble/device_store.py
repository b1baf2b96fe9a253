"""In-memory storage for the latest reading of each device."""

from __future__ import annotations

import logging
from datetime import datetime
from threading import Lock
from typing import Optional

from ..models import DeviceKind, DeviceStatus, Reading, kind_of

logger = logging.getLogger(__name__)


class DeviceStateStore:
    """Thread-safe latest-reading store, one mapping per device family.

    A new reading for an address replaces the previous one. Entries are
    never expired.
    """

    def __init__(self) -> None:
        self._latest: dict[DeviceKind, dict[str, DeviceStatus]] = {
            DeviceKind.METER: {},
            DeviceKind.HUB2: {},
        }
        self._lock = Lock()

    def upsert(
        self,
        address: str,
        reading: Reading,
        updated_at: Optional[datetime] = None,
    ) -> DeviceStatus:
        """Insert or overwrite the reading for a device."""
        address = address.upper()
        status = DeviceStatus(
            address=address,
            reading=reading,
            updated_at=updated_at or datetime.now(),
        )
        kind = kind_of(reading)

        with self._lock:
            self._latest[kind][address] = status

        logger.debug("Stored %s reading: %s = %.1f°C", kind.label, address, reading.temperature)
        return status

    def get(self, address: str, kind: DeviceKind) -> Optional[DeviceStatus]:
        """Get the latest status of a device."""
        address = address.upper()
        with self._lock:
            return self._latest.get(kind, {}).get(address)

    def snapshot(self, kind: Optional[DeviceKind] = None) -> list[DeviceStatus]:
        """Copy of the current entries, optionally limited to one family."""
        with self._lock:
            if kind is None:
                statuses = [s for family in self._latest.values() for s in family.values()]
            else:
                statuses = list(self._latest.get(kind, {}).values())

        return sorted(statuses, key=lambda s: (s.kind.label, s.address))

    def addresses(self, kind: DeviceKind) -> set[str]:
        """Get all addresses that have a reading in a family."""
        with self._lock:
            return set(self._latest.get(kind, {}))

    def __len__(self) -> int:
        with self._lock:
            return sum(len(family) for family in self._latest.values())
