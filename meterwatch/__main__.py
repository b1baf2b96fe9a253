"""Entry point for MeterWatch: python -m meterwatch."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from .app import MeterWatchApp
from .config import ConfigError, config_from_dict, load_config, parse_gate, parse_listen_address
from .models import AppConfig

DEFAULT_CONFIG_PATH = Path("config.yaml")


def setup_logging(verbose: bool) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    format_str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    # Reduce noise from libraries
    logging.getLogger("bleak").setLevel(logging.WARNING)
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="meterwatch",
        description="Export SwitchBot Meter and Hub2 BLE readings as Prometheus metrics",
    )

    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help=f"Path to configuration file (default: {DEFAULT_CONFIG_PATH} if present)",
    )

    parser.add_argument(
        "--listen-address",
        default=None,
        metavar="HOST:PORT",
        help="Address for the metrics endpoint (default: :2112)",
    )

    parser.add_argument(
        "--gate",
        choices=["service_uuid", "service_data", "either"],
        default=None,
        help="How advertisements are matched to SwitchBot devices (default: either)",
    )

    parser.add_argument(
        "--adapter",
        default=None,
        help="Bluetooth adapter to scan with, e.g. hci0",
    )

    parser.add_argument(
        "--passive",
        action="store_true",
        help="Use passive scanning instead of active scanning",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    parser.add_argument(
        "--demo",
        action="store_true",
        help="Feed synthetic advertisements instead of scanning (no Bluetooth needed)",
    )

    return parser


def resolve_config(args: argparse.Namespace) -> AppConfig:
    """Load the configuration file and apply command line overrides."""
    if args.config is not None:
        config = load_config(args.config.resolve())
    elif DEFAULT_CONFIG_PATH.exists():
        config = load_config(DEFAULT_CONFIG_PATH.resolve())
    else:
        config = config_from_dict(None)

    if args.listen_address is not None:
        config.listen_host, config.listen_port = parse_listen_address(args.listen_address)
    if args.gate is not None:
        config.scanner.gate = parse_gate(args.gate)
    if args.adapter is not None:
        config.scanner.adapter = args.adapter
    if args.passive:
        config.scanner.scanning_mode = "passive"

    return config


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = resolve_config(args)
    except (FileNotFoundError, ConfigError) as e:
        logger.error("%s", e)
        return 1

    try:
        app = MeterWatchApp(config, demo=args.demo)
        asyncio.run(app.run())
        return 0
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
