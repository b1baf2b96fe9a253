"""HTTP server exposing device readings as Prometheus metrics."""

from __future__ import annotations

import logging
from typing import Optional

from aiohttp import web
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from prometheus_client.registry import CollectorRegistry

from . import __version__
from .ble.device_store import DeviceStateStore
from .metrics import create_registry
from .models import AppConfig

logger = logging.getLogger(__name__)


class MetricsServer:
    """aiohttp web server serving the scrape endpoint."""

    def __init__(
        self,
        config: AppConfig,
        store: DeviceStateStore,
        registry: Optional[CollectorRegistry] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._registry = registry or create_registry(store, config.metrics.namespace)
        self._runner: Optional[web.AppRunner] = None

    def build_app(self) -> web.Application:
        """Create the aiohttp application with all routes."""
        app = web.Application()
        app.router.add_get(self._config.metrics.path, self._handle_metrics)
        app.router.add_get("/health", self._handle_health)
        return app

    async def start(self) -> None:
        """Start the HTTP server. Bind failures propagate to the caller."""
        self._runner = web.AppRunner(self.build_app())
        await self._runner.setup()
        site = web.TCPSite(
            self._runner,
            self._config.listen_host or None,
            self._config.listen_port,
        )
        await site.start()
        logger.info(
            "Metrics server listening on %s%s",
            self._config.listen_address,
            self._config.metrics.path,
        )

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Metrics server stopped")

    async def _handle_health(self, request: web.Request) -> web.Response:
        """Health check endpoint."""
        return web.json_response(
            {"status": "ok", "version": __version__, "devices": len(self._store)}
        )

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        """Render the current device readings."""
        body = generate_latest(self._registry)
        return web.Response(body=body, headers={"Content-Type": CONTENT_TYPE_LATEST})
