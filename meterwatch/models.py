"""Data models for MeterWatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class DeviceKind(Enum):
    """Supported device families, keyed by their device-type code."""

    METER = 0x54
    HUB2 = 0x76
    UNRECOGNIZED = -1

    @classmethod
    def from_code(cls, code: int) -> DeviceKind:
        """Map a masked device-type code to a device kind."""
        for kind in (cls.METER, cls.HUB2):
            if kind.value == code:
                return kind
        return cls.UNRECOGNIZED

    @property
    def label(self) -> str:
        return self.name.lower()


class GateMode(Enum):
    """How advertisements are matched to the sensor family."""

    SERVICE_UUID = "service_uuid"
    SERVICE_DATA_UUID = "service_data"
    EITHER = "either"


class RejectReason(Enum):
    """Why a payload was not decoded."""

    TRUNCATED = "truncated"
    UNRECOGNIZED = "unrecognized"
    NO_DATA = "no_data"


@dataclass(frozen=True)
class MeterReading:
    """Decoded Meter broadcast."""

    temperature: float
    humidity: int
    battery: int


@dataclass(frozen=True)
class Hub2Reading:
    """Decoded Hub2 broadcast. Hub2 is mains powered, so there is no battery."""

    temperature: float
    humidity: int


Reading = Union[MeterReading, Hub2Reading]


@dataclass(frozen=True)
class Decoded:
    reading: Reading


@dataclass(frozen=True)
class Rejected:
    reason: RejectReason
    detail: str = ""


DecodeResult = Union[Decoded, Rejected]


def kind_of(reading: Reading) -> DeviceKind:
    """Return the device family a reading belongs to."""
    if isinstance(reading, MeterReading):
        return DeviceKind.METER
    if isinstance(reading, Hub2Reading):
        return DeviceKind.HUB2
    raise TypeError(f"Unsupported reading type: {type(reading).__name__}")


@dataclass(frozen=True)
class ServiceData:
    """One service-data block of an advertisement."""

    uuid: str
    data: bytes


@dataclass
class Advertisement:
    """A single advertisement event as seen by the classifier."""

    address: str
    service_uuids: list[str] = field(default_factory=list)
    service_data: list[ServiceData] = field(default_factory=list)
    manufacturer_data: bytes = b""
    rssi: Optional[int] = None

    def __post_init__(self) -> None:
        self.address = self.address.upper()


@dataclass(frozen=True)
class DeviceReading:
    """A decoded reading together with the transmitter it came from."""

    address: str
    reading: Reading

    @property
    def kind(self) -> DeviceKind:
        return kind_of(self.reading)


@dataclass(frozen=True)
class DeviceStatus:
    """Latest known reading of one device."""

    address: str
    reading: Reading
    updated_at: Optional[datetime] = None

    @property
    def kind(self) -> DeviceKind:
        return kind_of(self.reading)

    @property
    def temperature(self) -> float:
        return self.reading.temperature

    @property
    def humidity(self) -> int:
        return self.reading.humidity

    @property
    def battery(self) -> Optional[int]:
        """Battery percentage, only reported by Meter devices."""
        return getattr(self.reading, "battery", None)


@dataclass
class ScannerConfig:
    """BLE scanning configuration."""

    gate: GateMode = GateMode.EITHER
    scanning_mode: str = "active"
    adapter: Optional[str] = None
    log_readings: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.gate, str):
            self.gate = GateMode(self.gate)


@dataclass
class MetricsConfig:
    """Metrics endpoint configuration."""

    path: str = "/metrics"
    namespace: str = "switchbot"


@dataclass
class AppConfig:
    """Application configuration."""

    listen_host: str = ""
    listen_port: int = 2112
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)

    @property
    def listen_address(self) -> str:
        host = self.listen_host
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{self.listen_port}"
