"""Fixtures compartidas."""

import threading
from datetime import datetime, timezone
from typing import List, Optional

import pytest

from hwmon_publisher.domain.reading import PublishedReading, RawReading, SensorKind
from hwmon_publisher.transport.base import PublishResult, QoS, Sink

FIXED_MOMENT = datetime(2026, 1, 31, 8, 0, 0, tzinfo=timezone.utc)


class RecordingSink(Sink):
    """Sink en memoria que registra cada publicación."""

    supports_discovery = True

    def __init__(self, fail_topics: Optional[set] = None):
        self.published: List[tuple] = []
        self.handlers = {}
        self.prepared = False
        self.torn_down = False
        self.fail_topics = fail_topics or set()

    @property
    def sink_name(self) -> str:
        return "recording"

    def add_message_handler(self, topic, handler):
        self.handlers[topic] = handler

    def prepare(self, cancel: threading.Event) -> None:
        self.prepared = True

    def publish(self, topic, payload, qos=QoS.AT_MOST_ONCE, reading=None) -> PublishResult:
        self.published.append((topic, payload, qos))
        if topic in self.fail_topics:
            return PublishResult.failed("boom")
        return PublishResult.ok()

    def teardown(self) -> None:
        self.torn_down = True

    def topics(self) -> List[str]:
        return [t for t, _, _ in self.published]

    def discovery_messages(self) -> List[tuple]:
        return [p for p in self.published if p[0].endswith("/config")]

    def data_messages(self) -> List[tuple]:
        return [p for p in self.published if not p[0].endswith("/config")]


class ScriptedSource:
    """Fuente que devuelve una lista de lecturas distinta en cada poll."""

    def __init__(self, polls):
        self._polls = list(polls)
        self.calls = 0

    def enumerate_readings(self):
        index = min(self.calls, len(self._polls) - 1)
        self.calls += 1
        return iter(self._polls[index])


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_MOMENT


@pytest.fixture
def recording_sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def cancel() -> threading.Event:
    return threading.Event()


@pytest.fixture
def cpu_temp() -> RawReading:
    return RawReading("cpu/0/temperature", SensorKind.TEMPERATURE, "CPU Package", 45.0)


@pytest.fixture
def published_cpu_temp() -> PublishedReading:
    return PublishedReading(
        id="/intelcpu/0/temperature/0",
        kind=SensorKind.TEMPERATURE,
        name="CPU Package",
        machine="Desktop-01",
        moment=FIXED_MOMENT,
        value=45.0,
    )
