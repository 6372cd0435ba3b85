"""Tests del registro de auto-discovery.

Ejecutar:
    pytest tests/test_discovery.py -v
"""

import json
from dataclasses import replace

import pytest

from hwmon_publisher.discovery import ConsumerState, DiscoveryRegistry, build_config, config_topic
from hwmon_publisher.domain.reading import SensorKind
from hwmon_publisher.transport.base import QoS

from .conftest import RecordingSink


@pytest.fixture
def registry(fixed_clock) -> DiscoveryRegistry:
    return DiscoveryRegistry(prefix="homeassistant", expire_after=80, clock=fixed_clock)


# =============================================================================
# REGISTRO
# =============================================================================

class TestAnnounce:

    def test_first_reading_announces_once(self, registry, recording_sink, published_cpu_temp):
        """Primera lectura: exactamente un mensaje de configuración."""
        result = registry.announce(published_cpu_temp, recording_sink)

        assert result is not None and result.success
        assert len(recording_sink.published) == 1
        topic, payload, qos = recording_sink.published[0]
        assert topic == "homeassistant/sensor/desktop-01/desktop-01_intelcpu_0_0_temperature/config"
        assert qos is QoS.AT_LEAST_ONCE
        assert registry.is_registered("desktop-01_intelcpu_0_0_temperature")

    def test_second_reading_does_not_announce(self, registry, recording_sink, published_cpu_temp):
        registry.announce(published_cpu_temp, recording_sink)
        again = replace(published_cpu_temp, value=50.0)

        assert registry.announce(again, recording_sink) is None
        assert len(recording_sink.published) == 1

    def test_failed_announce_is_retried(self, registry, published_cpu_temp):
        topic = config_topic("homeassistant", published_cpu_temp)
        sink = RecordingSink(fail_topics={topic})

        result = registry.announce(published_cpu_temp, sink)
        assert result is not None and not result.success
        assert registry.registered_count == 0

        sink.fail_topics.clear()
        assert registry.announce(published_cpu_temp, sink).success
        assert registry.registered_count == 1

    def test_registry_keyed_by_unique_id(self, registry, recording_sink, published_cpu_temp):
        """Ids crudos que normalizan distinto no comparten entrada."""
        other = replace(published_cpu_temp, id="/intelcpu/0/temperature/1", name="Core #1")
        registry.announce(published_cpu_temp, recording_sink)
        registry.announce(other, recording_sink)

        assert registry.registered_count == 2
        assert len(recording_sink.discovery_messages()) == 2


# =============================================================================
# CANAL DE ESTADO
# =============================================================================

class TestConsumerStatus:

    def test_online_clears_registry(self, registry, recording_sink, published_cpu_temp):
        registry.announce(published_cpu_temp, recording_sink)
        registry.submit_status("homeassistant/status", b"online")

        # Se aplica recién en drain (hilo del scheduler)
        assert registry.registered_count == 1
        assert registry.drain() == 1

        assert registry.registered_count == 0
        assert registry.state is ConsumerState.ONLINE
        assert registry.epoch == 1

        registry.announce(published_cpu_temp, recording_sink)
        assert len(recording_sink.discovery_messages()) == 2

    def test_offline_without_quit(self, registry):
        registry.submit_status("homeassistant/status", b"offline")
        registry.drain()

        assert registry.state is ConsumerState.OFFLINE
        assert registry.quit_requested is False

    def test_offline_with_quit_requests_stop(self, fixed_clock):
        registry = DiscoveryRegistry("homeassistant", 80, quit_with_consumer=True, clock=fixed_clock)
        registry.submit_status("homeassistant/status", b"offline")
        registry.drain()

        assert registry.quit_requested is True

    def test_unexpected_payload_ignored(self, registry, recording_sink, published_cpu_temp, caplog):
        registry.announce(published_cpu_temp, recording_sink)
        registry.submit_status("homeassistant/status", b"restarting")
        registry.drain()

        assert registry.registered_count == 1
        assert registry.state is ConsumerState.UNKNOWN
        assert "Unexpected status payload" in caplog.text

    def test_attach_registers_status_handler(self, registry, recording_sink):
        registry.attach(recording_sink)
        assert "homeassistant/status" in recording_sink.handlers


# =============================================================================
# MENSAJE DE CONFIGURACIÓN
# =============================================================================

class TestConfigMessage:

    @pytest.mark.parametrize(
        "machine, node",
        [
            ("host.lan", "host_lan"),
            ("My Desktop", "my_desktop"),
            ("rig-01", "rig-01"),
        ],
    )
    def test_config_topic_node_is_sanitized(self, published_cpu_temp, machine, node):
        reading = replace(published_cpu_temp, machine=machine)

        topic = config_topic("homeassistant", reading)

        assert topic.split("/")[2] == node
        assert topic.endswith("/config")

    def test_wire_fields(self, published_cpu_temp):
        config = json.loads(build_config(published_cpu_temp, expire_after=80).model_dump_json())

        assert config["device"] == {"name": "Desktop-01", "identifiers": ["ohmp_desktop-01"]}
        assert config["name"] == "CPU Package"
        assert config["state_topic"] == "desktop-01/ohmp/intelcpu/0/0/temperature"
        assert config["device_class"] == "temperature"
        assert config["expire_after"] == 80
        assert config["unique_id"] == "desktop-01_intelcpu_0_0_temperature"
        assert config["suggested_display_precision"] == 1
        assert config["state_class"] == "measurement"
        assert config["unit_of_measurement"] == "°C"
        assert config["value_template"] == "{{ value_json.value }}"

    def test_nullable_fields_serialized_as_null(self, published_cpu_temp):
        load = replace(published_cpu_temp, kind=SensorKind.FACTOR, id="/cpu/0/factor/0")
        config = json.loads(build_config(load, expire_after=80).model_dump_json())

        assert config["device_class"] is None
        assert config["unit_of_measurement"] is None
