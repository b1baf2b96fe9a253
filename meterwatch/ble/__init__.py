"""BLE scanning, classification and state storage."""

from .classifier import AdvertisementClassifier
from .device_store import DeviceStateStore
from .scanner import BleScanner

__all__ = ["AdvertisementClassifier", "BleScanner", "DeviceStateStore"]
