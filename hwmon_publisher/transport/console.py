"""Sink de consola: imprime las lecturas."""

from __future__ import annotations

import sys
import threading
from typing import Optional, TextIO

from ..domain.reading import PublishedReading
from .base import PublishResult, QoS, Sink


class ConsoleSink(Sink):
    def __init__(self, stream: Optional[TextIO] = None):
        self._stream = stream

    @property
    def sink_name(self) -> str:
        return "show"

    def prepare(self, cancel: threading.Event) -> None:
        if self._stream is None:
            self._stream = sys.stdout

    def publish(
        self,
        topic: str,
        payload: str,
        qos: QoS = QoS.AT_MOST_ONCE,
        reading: Optional[PublishedReading] = None,
    ) -> PublishResult:
        out = self._stream or sys.stdout
        if reading is None:
            print(f"{topic}: {payload}", file=out)
            return PublishResult.ok()

        local_time = reading.moment.astimezone().strftime("%H:%M:%S")
        print(f"{local_time}: {reading.kind.value}: {reading.name}", file=out)
        print(f"  {reading.id}", file=out)
        print(f"  {topic}", file=out)
        print(f"    Value: {reading.value!r}", file=out)
        print(file=out)
        return PublishResult.ok()

    def teardown(self) -> None:
        if self._stream is not None:
            self._stream.flush()
