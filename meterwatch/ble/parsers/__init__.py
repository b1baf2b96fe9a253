"""SwitchBot advertisement payload parsers."""

from ...models import DeviceKind
from .base import BaseParser
from .hub2 import Hub2Parser, decode_hub2
from .meter import MeterParser, decode_meter

PARSERS: dict[DeviceKind, BaseParser] = {
    DeviceKind.METER: MeterParser(),
    DeviceKind.HUB2: Hub2Parser(),
}

__all__ = [
    "BaseParser",
    "Hub2Parser",
    "MeterParser",
    "PARSERS",
    "decode_hub2",
    "decode_meter",
]
