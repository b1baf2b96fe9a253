"""Prometheus collector rendering the device store as gauges."""

from __future__ import annotations

import logging
from typing import Iterator

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector, CollectorRegistry

from .ble.device_store import DeviceStateStore
from .models import DeviceKind

logger = logging.getLogger(__name__)

ADDRESS_LABEL = "addr"


class DeviceCollector(Collector):
    """Snapshot the store on every scrape and yield one gauge family per quantity.

    Meter and Hub2 devices are exported under separate metric prefixes,
    e.g. ``switchbot_meter_temperature`` and ``switchbot_hub2_temperature``.
    Battery is only exported for Meter devices.
    """

    def __init__(self, store: DeviceStateStore, namespace: str = "switchbot") -> None:
        self._store = store
        self._namespace = namespace

    def _name(self, kind: DeviceKind, quantity: str) -> str:
        prefix = f"{self._namespace}_" if self._namespace else ""
        return f"{prefix}{kind.label}_{quantity}"

    def collect(self) -> Iterator[GaugeMetricFamily]:
        for kind in (DeviceKind.METER, DeviceKind.HUB2):
            statuses = self._store.snapshot(kind)

            temperature = GaugeMetricFamily(
                self._name(kind, "temperature"),
                f"Temperature reported by {kind.label} devices in degrees Celsius",
                labels=[ADDRESS_LABEL],
            )
            humidity = GaugeMetricFamily(
                self._name(kind, "humidity"),
                f"Relative humidity reported by {kind.label} devices in percent",
                labels=[ADDRESS_LABEL],
            )
            last_update = GaugeMetricFamily(
                self._name(kind, "last_update_timestamp_seconds"),
                f"Unix time of the last decoded {kind.label} advertisement",
                labels=[ADDRESS_LABEL],
            )
            families = [temperature, humidity]

            battery = None
            if kind == DeviceKind.METER:
                battery = GaugeMetricFamily(
                    self._name(kind, "battery"),
                    "Battery level reported by meter devices in percent",
                    labels=[ADDRESS_LABEL],
                )
                families.append(battery)
            families.append(last_update)

            for status in statuses:
                labels = [status.address]
                temperature.add_metric(labels, status.temperature)
                humidity.add_metric(labels, float(status.humidity))
                if battery is not None and status.battery is not None:
                    battery.add_metric(labels, float(status.battery))
                if status.updated_at is not None:
                    last_update.add_metric(labels, status.updated_at.timestamp())

            yield from families


def create_registry(store: DeviceStateStore, namespace: str = "switchbot") -> CollectorRegistry:
    """Create a registry holding only the device collector."""
    registry = CollectorRegistry(auto_describe=True)
    registry.register(DeviceCollector(store, namespace))
    logger.debug("Registered device collector with namespace %r", namespace)
    return registry
