"""Configuration loading from YAML."""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from .models import AppConfig, GateMode, MetricsConfig, ScannerConfig

logger = logging.getLogger(__name__)

DEFAULT_LISTEN_ADDRESS = ":2112"
SCANNING_MODES = ("active", "passive")


class ConfigError(ValueError):
    """Raised for configuration values that cannot be used."""


def parse_listen_address(address: str) -> tuple[str, int]:
    """Split a "host:port" listen address.

    An empty host (":2112") means all interfaces. IPv6 hosts must be
    bracketed ("[::1]:2112").
    """
    host, sep, port_str = address.rpartition(":")
    if not sep:
        raise ConfigError(f"Listen address must be host:port, got {address!r}")

    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]

    try:
        port = int(port_str)
    except ValueError:
        raise ConfigError(f"Invalid port in listen address {address!r}") from None

    if not 0 <= port <= 65535:
        raise ConfigError(f"Port out of range in listen address {address!r}")

    return host, port


def parse_gate(value: str) -> GateMode:
    """Parse a gate mode name."""
    try:
        return GateMode(str(value).lower())
    except ValueError:
        choices = ", ".join(m.value for m in GateMode)
        raise ConfigError(f"Invalid gate {value!r}, expected one of: {choices}") from None


def _load_scanner(data: dict[str, Any]) -> ScannerConfig:
    scanner = ScannerConfig()

    if "gate" in data:
        scanner.gate = parse_gate(data["gate"])

    mode = str(data.get("scanning_mode", scanner.scanning_mode)).lower()
    if mode not in SCANNING_MODES:
        raise ConfigError(f"Invalid scanning_mode {mode!r}, expected active or passive")
    scanner.scanning_mode = mode

    adapter = data.get("adapter")
    scanner.adapter = str(adapter) if adapter else None
    scanner.log_readings = bool(data.get("log_readings", scanner.log_readings))
    return scanner


def _load_metrics(data: dict[str, Any]) -> MetricsConfig:
    metrics = MetricsConfig()

    path = str(data.get("path", metrics.path))
    if not path.startswith("/"):
        path = "/" + path
    metrics.path = path

    metrics.namespace = str(data.get("namespace", metrics.namespace))
    return metrics


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a nested mapping, empty when absent."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"Configuration section {name!r} must be a mapping, got {type(section).__name__}")
    return section


def config_from_dict(data: Optional[dict[str, Any]]) -> AppConfig:
    """Build configuration from already parsed YAML data."""
    if not data:
        data = {}
    elif not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    host, port = parse_listen_address(str(data.get("listen_address", DEFAULT_LISTEN_ADDRESS)))

    config = AppConfig(
        listen_host=host,
        listen_port=port,
        metrics=_load_metrics(_section(data, "metrics")),
        scanner=_load_scanner(_section(data, "scanner")),
    )
    logger.debug(
        "Configuration: listen %s, gate %s, scanning %s",
        config.listen_address,
        config.scanner.gate.value,
        config.scanner.scanning_mode,
    )
    return config


def load_config(config_path: Path) -> AppConfig:
    """Load configuration from a YAML file."""
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is not None and not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")

    config = config_from_dict(data)
    logger.info("Loaded configuration from %s", config_path)
    return config
