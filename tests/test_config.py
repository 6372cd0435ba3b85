"""Tests de configuración."""

import os

import pytest

from hwmon_publisher.config import (
    DEFAULT_COMPONENTS,
    DEFAULT_KINDS,
    get_settings,
    parse_kind_map,
)
from hwmon_publisher.domain.reading import Component, SensorKind
from hwmon_publisher.errors import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Aísla cada test de variables HWMON_* y de cualquier .env real."""
    for key in list(os.environ):
        if key.startswith("HWMON_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HWMON_ENV_FILE", str(tmp_path / "missing.env"))


class TestDefaults:

    def test_defaults(self):
        settings = get_settings(machine="host")

        assert settings.kinds == DEFAULT_KINDS
        assert settings.components == DEFAULT_COMPONENTS
        assert settings.id_patterns == ()
        assert settings.thresholds == {}
        assert settings.polling is False
        assert settings.poll_interval == 5.0
        assert settings.mqtt.port == 1883
        assert settings.mqtt.keepalive == 10
        assert settings.mqtt.validate_tls_cert is True
        assert settings.mqtt.client_id == "hwmon-host"
        assert settings.discovery.enabled is False
        assert settings.discovery.status_topic == "homeassistant/status"

    def test_expire_after(self):
        settings = get_settings(machine="host", poll_interval=5, min_publish_interval=60)
        assert settings.expire_after == 80


class TestSources:

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("HWMON_SENSOR_TYPES", "temperature,clock")
        monkeypatch.setenv("HWMON_THRESHOLDS", "Temperature=1.0, Clock=50")
        monkeypatch.setenv("HWMON_POLLING", "yes")

        settings = get_settings(machine="host")

        assert settings.kinds == {SensorKind.TEMPERATURE, SensorKind.CLOCK}
        assert settings.thresholds == {SensorKind.TEMPERATURE: 1.0, SensorKind.CLOCK: 50.0}
        assert settings.polling is True

    def test_overrides_win_over_environment(self, monkeypatch):
        monkeypatch.setenv("HWMON_POLL_INTERVAL", "30")
        settings = get_settings(machine="host", poll_interval=2.5)
        assert settings.poll_interval == 2.5

    def test_none_overrides_are_ignored(self, monkeypatch):
        monkeypatch.setenv("HWMON_MQTT_PORT", "8883")
        settings = get_settings(machine="host", port=None)
        assert settings.mqtt.port == 8883

    def test_dotenv_file(self, monkeypatch, tmp_path):
        # registra la variable en monkeypatch para que se restaure al final
        monkeypatch.setenv("HWMON_COMPONENTS", "cpu")
        monkeypatch.delenv("HWMON_COMPONENTS")
        env_file = tmp_path / ".env"
        env_file.write_text("HWMON_COMPONENTS=cpu,ram\n")
        monkeypatch.setenv("HWMON_ENV_FILE", str(env_file))

        settings = get_settings(machine="host")

        assert settings.components == {Component.CPU, Component.RAM}

    def test_env_patterns_one_per_line_keep_commas(self, monkeypatch):
        monkeypatch.setenv("HWMON_ID_PATTERNS", "^cpu/\\d{1,2}/\n^/ram/")

        settings = get_settings(machine="host")

        assert settings.id_patterns == ("^cpu/\\d{1,2}/", "^/ram/")

    def test_patterns_from_list_keep_commas(self):
        settings = get_settings(machine="host", id_patterns=["^cpu/\\d{1,2}/"])
        assert settings.id_patterns == ("^cpu/\\d{1,2}/",)


class TestValidation:

    @pytest.mark.parametrize(
        "overrides",
        [
            {"kinds": ""},
            {"kinds": "temperature,warpdrive"},
            {"components": ""},
            {"thresholds": "Temperature=abc"},
            {"thresholds": "Temperature=-1"},
            {"thresholds": "Temperature"},
            {"multipliers": "Bogus=2"},
            {"poll_interval": 0},
            {"port": 0},
            {"protocol_version": "4"},
            {"polling": "maybe"},
        ],
    )
    def test_invalid_values(self, overrides):
        with pytest.raises(ConfigurationError):
            get_settings(machine="host", **overrides)

    def test_kind_map_accepts_mapping(self):
        assert parse_kind_map({"load": "0.01"}, "multipliers") == {SensorKind.LOAD: 0.01}
