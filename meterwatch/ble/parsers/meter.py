"""SwitchBot Meter (temperature/humidity) service-data parser."""

from ...models import DecodeResult, DeviceKind, MeterReading
from .base import BaseParser

METER_MIN_LENGTH = 6


class MeterParser(BaseParser):
    """Parser for the Meter broadcast message carried in service data."""

    kind = DeviceKind.METER
    min_length = METER_MIN_LENGTH

    def _decode(self, data: bytes) -> MeterReading:
        """
        Decode Meter service data (6 bytes).

        Format:
        - Byte 0: Device type (0x54, bit 7 is a flag)
        - Byte 1: Status flags
        - Byte 2: Battery (%)
        - Byte 3: Temperature fraction (tenths of a degree)
        - Byte 4: Temperature integer part (bit 7 is a flag)
        - Byte 5: Humidity (%, bit 7 reserved)

        The flag bit of byte 4 is discarded, so negative temperatures are
        reported as their magnitude.
        """
        battery = data[2]
        temperature = (data[4] & 0x7F) + data[3] / 10.0
        humidity = data[5] & 0x7F

        return MeterReading(
            temperature=temperature,
            humidity=humidity,
            battery=battery,
        )


_parser = MeterParser()


def decode_meter(data: bytes) -> DecodeResult:
    """Decode Meter service data into a MeterReading."""
    return _parser.decode(data)
