"""SwitchBot Hub2 manufacturer-data parser."""

from ...models import DecodeResult, DeviceKind, Hub2Reading
from .base import BaseParser

HUB2_MIN_LENGTH = 18

# Set when the reading is above freezing
ABOVE_FREEZING_BIT = 0x80


class Hub2Parser(BaseParser):
    """Parser for the Hub2 temperature/humidity sensor.

    The Hub2 is recognized from its service data but its readings live in
    the manufacturer-specific data field.
    """

    kind = DeviceKind.HUB2
    min_length = HUB2_MIN_LENGTH
    uses_manufacturer_data = True

    def _decode(self, data: bytes) -> Hub2Reading:
        """
        Decode Hub2 manufacturer data (18+ bytes).

        Format (offsets include the 2-byte company id):
        - Bytes 0-1: Company id (little-endian)
        - Bytes 2-7: MAC address
        - Bytes 8-14: Sequence and status
        - Byte 15: Temperature fraction (low nibble, tenths of a degree)
        - Byte 16: Temperature integer part (bit 7 set = above freezing)
        - Byte 17: Humidity (%, bit 7 reserved)
        """
        fraction = (data[15] & 0x0F) / 10.0
        whole = data[16] & 0x7F
        temperature = fraction + whole
        if not data[16] & ABOVE_FREEZING_BIT:
            temperature = -temperature

        humidity = data[17] & 0x7F

        return Hub2Reading(temperature=temperature, humidity=humidity)


_parser = Hub2Parser()


def decode_hub2(manufacturer_data: bytes) -> DecodeResult:
    """Decode Hub2 manufacturer data into a Hub2Reading."""
    return _parser.decode(manufacturer_data)
