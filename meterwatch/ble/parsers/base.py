"""Base parser class for SwitchBot broadcast payloads."""

from abc import ABC, abstractmethod

from ...models import Decoded, DecodeResult, DeviceKind, Reading, Rejected, RejectReason


class BaseParser(ABC):
    """Abstract base class for device-type specific payload decoders.

    Subclasses declare the device kind they handle and the minimum payload
    length; shorter payloads are rejected before any byte is read.
    """

    kind: DeviceKind
    min_length: int
    # Which advertisement field the payload comes from
    uses_manufacturer_data: bool = False

    def decode(self, data: bytes) -> DecodeResult:
        """
        Decode a raw payload.

        Args:
            data: Payload bytes, untrusted length

        Returns:
            Decoded with the reading, or Rejected with the reason
        """
        if not data:
            return Rejected(RejectReason.NO_DATA)

        if len(data) < self.min_length:
            return Rejected(
                RejectReason.TRUNCATED,
                f"{self.kind.label} payload is {len(data)} bytes, need {self.min_length}",
            )

        return Decoded(self._decode(data))

    @abstractmethod
    def _decode(self, data: bytes) -> Reading:
        """Decode a payload that already passed the length check."""
        pass
