"""Tests de nombres de topics e ids."""

import pytest

from hwmon_publisher.domain.reading import SensorKind
from hwmon_publisher.domain.topics import (
    normalize_id,
    reading_topic,
    topic_for,
    unique_id_for,
)


class TestNormalizeId:

    @pytest.mark.parametrize(
        "raw_id, kind, expected",
        [
            ("/intelcpu/0/temperature/0", SensorKind.TEMPERATURE, "intelcpu/0/0"),
            ("cpu/0/temperature", SensorKind.TEMPERATURE, "cpu/0"),
            ("/NVidiaGPU/0/Load/1", SensorKind.LOAD, "nvidiagpu/0/1"),
            ("-/ram/data/0\\", SensorKind.DATA, "ram/0"),
            ("/lpc/nct6798d/fan/2", SensorKind.FAN, "lpc/nct6798d/2"),
        ],
    )
    def test_normalized_ids(self, raw_id, kind, expected):
        assert normalize_id(kind, raw_id) == expected

    def test_idempotent(self):
        once = normalize_id(SensorKind.TEMPERATURE, "/intelcpu/0/temperature/0")
        assert normalize_id(SensorKind.TEMPERATURE, once) == once

    def test_kind_name_removed_even_when_nested(self):
        assert "load" not in normalize_id(SensorKind.LOAD, "/loloadad/0")


class TestTopic:

    def test_topic_layout(self):
        topic = topic_for("Desktop-01", SensorKind.TEMPERATURE, "/intelcpu/0/temperature/0")
        assert topic == "desktop-01/ohmp/intelcpu/0/0/temperature"

    def test_deterministic(self):
        a = topic_for("HOST", SensorKind.POWER, "/amdcpu/0/power/0")
        b = topic_for("HOST", SensorKind.POWER, "/amdcpu/0/power/0")
        assert a == b

    def test_no_empty_segments(self):
        topic = topic_for("host", SensorKind.LEVEL, "level")
        assert "//" not in topic
        assert topic == "host/ohmp/level"

    def test_reading_topic(self, published_cpu_temp):
        assert reading_topic(published_cpu_temp) == "desktop-01/ohmp/intelcpu/0/0/temperature"


class TestUniqueId:

    def test_unique_id_layout(self):
        uid = unique_id_for("Desktop 01", SensorKind.TEMPERATURE, "/intelcpu/0/temperature/0")
        assert uid == "desktop01_intelcpu_0_0_temperature"

    def test_distinct_kinds_get_distinct_ids(self):
        a = unique_id_for("host", SensorKind.LOAD, "/cpu/0/load/0")
        b = unique_id_for("host", SensorKind.CLOCK, "/cpu/0/clock/0")
        assert a != b
