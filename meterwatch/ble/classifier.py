"""Match advertisements to the SwitchBot family and route them to parsers."""

from __future__ import annotations

import logging

from ..models import (
    Advertisement,
    Decoded,
    DecodeResult,
    DeviceKind,
    DeviceReading,
    GateMode,
    Rejected,
    RejectReason,
)
from .parsers import PARSERS

logger = logging.getLogger(__name__)

# Advertised in the service UUID list of Meter devices
SWITCHBOT_SERVICE_UUID = "cba20d00224d11e69fb80002a5d5c51b"
# 16-bit service-data UUID used by newer firmware and the Hub2
SWITCHBOT_SERVICE_DATA_UUID = "fd3d"
# Bluetooth SIG company identifier of Wonderlabs (SwitchBot)
SWITCHBOT_COMPANY_ID = 0x0969

DEVICE_TYPE_MASK = 0x7F

# 16-bit UUIDs are reported expanded onto the Bluetooth base UUID
_BASE_UUID_SUFFIX = "00001000800000805f9b34fb"


def normalize_uuid(uuid: str) -> str:
    """Lower-case a UUID and strip its dashes."""
    return uuid.replace("-", "").lower()


def short_uuid(uuid: str) -> str:
    """Return the 16-bit form of a UUID when it is on the Bluetooth base UUID."""
    value = normalize_uuid(uuid)
    if len(value) == 32 and value.startswith("0000") and value.endswith(_BASE_UUID_SUFFIX):
        return value[4:8]
    return value


def device_kind(data: bytes) -> DeviceKind:
    """Read the device type from the first payload byte."""
    if not data:
        return DeviceKind.UNRECOGNIZED
    return DeviceKind.from_code(data[0] & DEVICE_TYPE_MASK)


class AdvertisementClassifier:
    """Decide which advertisements come from supported sensors and decode them."""

    def __init__(self, gate: GateMode = GateMode.EITHER) -> None:
        self._gate = gate

    @property
    def gate(self) -> GateMode:
        return self._gate

    def _has_service_uuid(self, advertisement: Advertisement) -> bool:
        return any(
            normalize_uuid(uuid) == SWITCHBOT_SERVICE_UUID
            for uuid in advertisement.service_uuids
        )

    def classify(self, advertisement: Advertisement) -> list[tuple[DeviceKind, DecodeResult]]:
        """Decode every matching service-data block of an advertisement.

        Blocks with an unknown device type are reported as rejected; empty
        blocks and blocks that fail the gate are skipped.
        """
        service_gate_open = False
        if self._gate in (GateMode.SERVICE_UUID, GateMode.EITHER):
            service_gate_open = self._has_service_uuid(advertisement)

        if self._gate == GateMode.SERVICE_UUID and not service_gate_open:
            return []

        results: list[tuple[DeviceKind, DecodeResult]] = []
        for block in advertisement.service_data:
            if not block.data:
                continue

            if not service_gate_open:
                if short_uuid(block.uuid) != SWITCHBOT_SERVICE_DATA_UUID:
                    continue

            kind = device_kind(block.data)
            parser = PARSERS.get(kind)
            if parser is None:
                results.append(
                    (
                        kind,
                        Rejected(
                            RejectReason.UNRECOGNIZED,
                            f"device type 0x{block.data[0] & DEVICE_TYPE_MASK:02x}",
                        ),
                    )
                )
                continue

            payload = advertisement.manufacturer_data if parser.uses_manufacturer_data else block.data
            results.append((kind, parser.decode(payload)))

        return results

    def readings(self, advertisement: Advertisement) -> list[DeviceReading]:
        """Return the successfully decoded readings of an advertisement."""
        readings = []
        for kind, result in self.classify(advertisement):
            if isinstance(result, Decoded):
                readings.append(DeviceReading(address=advertisement.address, reading=result.reading))
            elif result.reason != RejectReason.UNRECOGNIZED:
                logger.debug(
                    "Dropped %s payload from %s: %s %s",
                    kind.label,
                    advertisement.address,
                    result.reason.value,
                    result.detail,
                )
        return readings
