"""BLE scanner using Bleak with periodic restart."""

from __future__ import annotations

import asyncio
import logging
import sys
from datetime import datetime
from typing import Callable, Optional

from bleak import BleakScanner as BleakScannerLib
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from ..models import Advertisement, DeviceReading, ScannerConfig, ServiceData
from .classifier import SWITCHBOT_COMPANY_ID, AdvertisementClassifier
from .device_store import DeviceStateStore

logger = logging.getLogger(__name__)

IS_MACOS = sys.platform == "darwin"


def advertisement_from_bleak(
    device: BLEDevice,
    advertisement_data: AdvertisementData,
) -> Advertisement:
    """Convert a Bleak detection callback into an Advertisement event.

    Bleak strips the company id from manufacturer data; it is put back in
    front of the payload (little-endian) so byte offsets match the raw
    advertisement field. The SwitchBot entry is preferred when BlueZ reports
    entries of several vendors for one device.
    """
    manufacturer_data = b""
    entries = advertisement_data.manufacturer_data
    if entries:
        company_id = SWITCHBOT_COMPANY_ID if SWITCHBOT_COMPANY_ID in entries else next(iter(entries))
        manufacturer_data = company_id.to_bytes(2, "little") + bytes(entries[company_id])

    return Advertisement(
        address=device.address,
        service_uuids=list(advertisement_data.service_uuids),
        service_data=[
            ServiceData(uuid=uuid, data=bytes(data))
            for uuid, data in advertisement_data.service_data.items()
        ],
        manufacturer_data=manufacturer_data,
        rssi=advertisement_data.rssi,
    )


class BleScanner:
    """BLE scanner that feeds SwitchBot advertisements into a DeviceStateStore.

    Restarts periodically to work around BlueZ/Bleak issues on Linux.
    """

    # Proactive restart interval
    # BlueZ often silently stops after ~30-60s; macOS Core Bluetooth is more stable
    RESTART_INTERVAL_SECONDS = 300 if IS_MACOS else 60

    # Watchdog timeout - force restart if no advertisement received
    WATCHDOG_TIMEOUT_SECONDS = 120 if IS_MACOS else 45

    # Timeout for stop() operation - don't let it hang forever
    STOP_TIMEOUT_SECONDS = 10

    CHECK_INTERVAL_SECONDS = 10

    def __init__(
        self,
        config: ScannerConfig,
        store: DeviceStateStore,
        classifier: Optional[AdvertisementClassifier] = None,
        on_reading: Optional[Callable[[DeviceReading], None]] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._classifier = classifier or AdvertisementClassifier(config.gate)
        self._on_reading = on_reading
        self._scanner: Optional[BleakScannerLib] = None
        self._running = False
        self._stop_requested = False
        self._last_data_time: Optional[datetime] = None
        self._reading_level = logging.INFO if config.log_readings else logging.DEBUG

        logger.info(
            "BLE Scanner initialized (gate: %s, mode: %s)",
            self._classifier.gate.value,
            config.scanning_mode,
        )

    def process(self, advertisement: Advertisement) -> list[DeviceReading]:
        """Classify, decode and store one advertisement."""
        readings = self._classifier.readings(advertisement)

        for device_reading in readings:
            status = self._store.upsert(device_reading.address, device_reading.reading)
            logger.log(
                self._reading_level,
                "[%s] temperature: %.1f, humidity: %d, battery: %s",
                status.address,
                status.temperature,
                status.humidity,
                "n/a" if status.battery is None else status.battery,
            )

            if self._on_reading:
                self._on_reading(device_reading)

        return readings

    def _detection_callback(
        self,
        device: BLEDevice,
        advertisement_data: AdvertisementData,
    ) -> None:
        """Handle detected BLE advertisement."""
        self._last_data_time = datetime.now()

        try:
            self.process(advertisement_from_bleak(device, advertisement_data))
        except Exception as e:
            logger.warning("Error parsing data from %s: %s", device.address, e)

    async def _create_scanner(self) -> BleakScannerLib:
        """Create a fresh scanner instance."""
        kwargs = {}
        if self._config.adapter:
            kwargs["adapter"] = self._config.adapter

        return BleakScannerLib(
            detection_callback=self._detection_callback,
            scanning_mode=self._config.scanning_mode,
            **kwargs,
        )

    async def _stop_scanner_safe(self) -> None:
        """Stop scanner with timeout protection."""
        if self._scanner is None:
            return

        try:
            await asyncio.wait_for(
                self._scanner.stop(),
                timeout=self.STOP_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.warning("Scanner stop() timed out after %ds", self.STOP_TIMEOUT_SECONDS)
        except Exception as e:
            logger.debug("Error stopping scanner: %s", e)
        finally:
            self._scanner = None

    async def _run_command(self, args: list[str], timeout: float) -> tuple[int, bytes]:
        """Run an external command without blocking the event loop.

        Returns (returncode, stderr). Raises asyncio.TimeoutError after killing
        the process if it does not finish in time.
        """
        proc = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise
        return proc.returncode, stderr or b""

    async def _reset_bluetooth_adapter(self) -> None:
        """Reset Bluetooth adapter to recover from stuck state.

        Uses bluetoothctl (D-Bus) which works without sudo when user
        is in bluetooth group, or hciconfig with CAP_NET_ADMIN.
        Skipped on macOS where Core Bluetooth manages the adapter.
        """
        if IS_MACOS:
            logger.debug("Skipping adapter reset on macOS")
            return

        try:
            for state in ("off", "on"):
                await self._run_command(["bluetoothctl", "power", state], timeout=5)
                await asyncio.sleep(1 if state == "off" else 2)

            logger.info("Bluetooth adapter power cycled via bluetoothctl")
            return
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug("bluetoothctl failed: %s", e)

        # Fallback to hciconfig (requires CAP_NET_ADMIN or sudo)
        try:
            returncode, stderr = await self._run_command(
                ["hciconfig", self._config.adapter or "hci0", "reset"],
                timeout=10,
            )
            if returncode == 0:
                logger.info("Bluetooth adapter reset via hciconfig")
                await asyncio.sleep(2)
            else:
                logger.debug("hciconfig reset failed: %s", stderr.decode().strip())
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug("hciconfig failed: %s", e)

    @property
    def is_running(self) -> bool:
        """Check if scanner is running."""
        return self._running

    async def start(self) -> None:
        """Start BLE scanning once, without the restart loop."""
        if self._running:
            logger.warning("Scanner already running")
            return

        logger.info("Starting BLE scanner...")
        self._stop_requested = False
        self._scanner = await self._create_scanner()
        await self._scanner.start()
        self._running = True
        self._last_data_time = datetime.now()
        logger.info("BLE scanner started")

    async def stop(self) -> None:
        """Stop BLE scanning.

        The stop request sticks even between restart cycles; the restart
        loop exits at its next check instead of starting a new scanner.
        """
        self._stop_requested = True

        if not self._running and self._scanner is None:
            return

        logger.info("Stopping BLE scanner...")
        self._running = False
        await self._stop_scanner_safe()
        logger.info("BLE scanner stopped")

    def _should_restart(self) -> tuple[bool, str]:
        """Check if scanner should be restarted.

        Returns (should_restart, reason).
        """
        if self._last_data_time:
            elapsed = (datetime.now() - self._last_data_time).total_seconds()
            if elapsed > self.WATCHDOG_TIMEOUT_SECONDS:
                return True, f"no data for {elapsed:.0f}s"

        return False, ""

    async def run_with_restart(self) -> None:
        """Run scanner with periodic restarts.

        Restarts every RESTART_INTERVAL_SECONDS to work around
        BlueZ issues, and also restarts on watchdog timeout.
        Returns once stop() has been called.
        """
        restart_count = 0

        while not self._stop_requested:
            try:
                restart_count += 1

                # Reset adapter before starting (helps with stuck state)
                if restart_count > 1:
                    await self._reset_bluetooth_adapter()
                    if self._stop_requested:
                        break

                self._scanner = await self._create_scanner()
                await self._scanner.start()
                self._last_data_time = datetime.now()
                self._running = True

                logger.info("BLE scanner running (cycle %d)", restart_count)

                cycle_start = datetime.now()

                while not self._stop_requested:
                    await asyncio.sleep(self.CHECK_INTERVAL_SECONDS)

                    cycle_elapsed = (datetime.now() - cycle_start).total_seconds()
                    if cycle_elapsed >= self.RESTART_INTERVAL_SECONDS:
                        logger.debug("Proactive restart after %.0fs", cycle_elapsed)
                        break

                    should_restart, reason = self._should_restart()
                    if should_restart:
                        logger.warning("Watchdog restart: %s", reason)
                        break

                self._running = False
                await self._stop_scanner_safe()

                if self._stop_requested:
                    break

                await asyncio.sleep(1)

            except asyncio.CancelledError:
                logger.info("BLE scanner cancelled")
                self._running = False
                await self._stop_scanner_safe()
                return

            except Exception as e:
                # A radio that never came up is a startup failure
                if restart_count == 1:
                    raise

                logger.error("BLE scanner error: %s", e)
                self._running = False
                await self._stop_scanner_safe()

                if self._stop_requested:
                    break

                # Error recovery - reset adapter and wait
                await self._reset_bluetooth_adapter()
                await asyncio.sleep(3)

        self._running = False
        await self._stop_scanner_safe()
        logger.info("BLE scanner stopped")
