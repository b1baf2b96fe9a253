"""Main application coordinator."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional, Union

from .api import MetricsServer
from .ble.classifier import AdvertisementClassifier
from .ble.device_store import DeviceStateStore
from .ble.scanner import BleScanner
from .demo import DemoScanSource
from .models import AppConfig

logger = logging.getLogger(__name__)


class MeterWatchApp:
    """Main application that coordinates scanning and the metrics endpoint."""

    def __init__(
        self,
        config: AppConfig,
        store: Optional[DeviceStateStore] = None,
        demo: bool = False,
    ) -> None:
        self._config = config
        self._store = store or DeviceStateStore()
        self._demo = demo
        self._scanner: Optional[BleScanner] = None
        self._source: Optional[Union[BleScanner, DemoScanSource]] = None
        self._server: Optional[MetricsServer] = None
        self._running = False
        self._shutdown_event: Optional[asyncio.Event] = None
        self._scanner_task: Optional[asyncio.Task] = None
        self._fatal_error: Optional[BaseException] = None

    @property
    def store(self) -> DeviceStateStore:
        return self._store

    async def start(self) -> None:
        """Start all components."""
        logger.info("Starting MeterWatch...")

        classifier = AdvertisementClassifier(self._config.scanner.gate)
        self._scanner = BleScanner(self._config.scanner, self._store, classifier=classifier)

        if self._demo:
            self._source = DemoScanSource(self._scanner)
            logger.info("Demo mode, no Bluetooth adapter is used")
        else:
            self._source = self._scanner

        # Bind before scanning
        self._server = MetricsServer(self._config, self._store)
        await self._server.start()

        self._scanner_task = asyncio.create_task(
            self._source.run_with_restart(),
            name="ble_scanner",
        )

        self._running = True
        logger.info("MeterWatch started successfully")

    async def stop(self) -> None:
        """Stop all components."""
        if not self._running:
            return

        logger.info("Stopping MeterWatch...")
        self._running = False

        if self._source:
            await self._source.stop()

        if self._scanner_task:
            self._scanner_task.cancel()
            try:
                await self._scanner_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug("Scanner task ended with error: %s", e)
            self._scanner_task = None

        if self._server:
            await self._server.stop()

        logger.info("MeterWatch stopped")

    async def run(self) -> None:
        """Run the application until shutdown signal.

        Raises the scanner's error if the radio could not be started.
        """
        self._shutdown_event = asyncio.Event()

        loop = asyncio.get_running_loop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(
                sig,
                lambda: asyncio.create_task(self._handle_shutdown()),
            )

        try:
            await self.start()

            while not self._shutdown_event.is_set():
                self._monitor_tasks()
                try:
                    await asyncio.wait_for(self._shutdown_event.wait(), timeout=1)
                except asyncio.TimeoutError:
                    pass

        finally:
            await self.stop()

        if self._fatal_error is not None:
            raise self._fatal_error

    def _monitor_tasks(self) -> None:
        """Shut down if the scanner task failed."""
        if not self._scanner_task or not self._scanner_task.done():
            return

        if self._scanner_task.cancelled():
            return

        exc = self._scanner_task.exception()
        if exc:
            logger.error("BLE scanner task failed: %s", exc)
            self._fatal_error = exc
            self._shutdown_event.set()

    async def _handle_shutdown(self) -> None:
        """Handle shutdown signal."""
        logger.info("Shutdown signal received")
        self._shutdown_event.set()
