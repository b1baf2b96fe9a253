"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from meterwatch.config import ConfigError, config_from_dict, load_config, parse_gate, parse_listen_address
from meterwatch.models import GateMode


class TestListenAddress:
    @pytest.mark.parametrize(
        ("address", "expected"),
        [
            (":2112", ("", 2112)),
            ("127.0.0.1:9000", ("127.0.0.1", 9000)),
            ("[::1]:80", ("::1", 80)),
            ("localhost:0", ("localhost", 0)),
        ],
    )
    def test_valid(self, address: str, expected: tuple[str, int]) -> None:
        assert parse_listen_address(address) == expected

    @pytest.mark.parametrize("address", ["2112", "host:port", ":70000"])
    def test_invalid(self, address: str) -> None:
        with pytest.raises(ConfigError):
            parse_listen_address(address)


def test_defaults() -> None:
    config = config_from_dict(None)

    assert config.listen_host == ""
    assert config.listen_port == 2112
    assert config.listen_address == ":2112"
    assert config.metrics.path == "/metrics"
    assert config.metrics.namespace == "switchbot"
    assert config.scanner.gate == GateMode.EITHER
    assert config.scanner.scanning_mode == "active"
    assert config.scanner.adapter is None


def test_load_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(
        "listen_address: '[::1]:9100'\n"
        "metrics:\n"
        "  path: scrape\n"
        "  namespace: home\n"
        "scanner:\n"
        "  gate: SERVICE_UUID\n"
        "  scanning_mode: passive\n"
        "  adapter: hci1\n"
        "  log_readings: false\n",
        encoding="utf-8",
    )

    config = load_config(path)

    assert config.listen_address == "[::1]:9100"
    assert config.metrics.path == "/scrape"
    assert config.metrics.namespace == "home"
    assert config.scanner.gate == GateMode.SERVICE_UUID
    assert config.scanner.scanning_mode == "passive"
    assert config.scanner.adapter == "hci1"
    assert config.scanner.log_readings is False


def test_empty_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")

    assert load_config(path).listen_port == 2112


def test_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_non_mapping_file(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(path)


def test_invalid_values() -> None:
    with pytest.raises(ConfigError):
        parse_gate("bluetooth")
    with pytest.raises(ConfigError):
        config_from_dict({"scanner": {"scanning_mode": "aggressive"}})
    with pytest.raises(ConfigError):
        config_from_dict({"scanner": {"gate": "nope"}})


def test_malformed_yaml(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text("metrics: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        load_config(path)


@pytest.mark.parametrize("section", ["metrics", "scanner"])
def test_non_mapping_section(tmp_path: Path, section: str) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(f"{section}: foo\n", encoding="utf-8")

    with pytest.raises(ConfigError, match=section):
        load_config(path)
