"""Bucle de polling: lectura → filtro → discovery → publicación."""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Optional

from .discovery.registry import DiscoveryRegistry
from .domain.reading import RawReading
from .domain.topics import reading_topic
from .monitoring.stats import Stats
from .pipeline.processor import ReadingProcessor
from .sources.base import SensorSource
from .transport.base import QoS, Sink

logger = logging.getLogger(__name__)


class RunOutcome(Enum):
    """Cómo terminó el scheduler."""
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    CONSUMER_OFFLINE = "consumer_offline"


class PollingScheduler:
    """Ejecuta el ciclo de publicación a intervalo fijo.

    Estados: Idle → Sampling → (Waiting → Sampling)* → Stopped

    La cancelación es cooperativa: se revisa al entrar al bucle, antes de
    cada lectura y durante la espera. Una lectura en curso siempre
    termina su paso por el pipeline.
    """

    WAIT_SLICE_SECONDS = 0.5
    STATS_LOG_EVERY = 100

    def __init__(
        self,
        source: SensorSource,
        processor: ReadingProcessor,
        sink: Sink,
        cancel: threading.Event,
        registry: Optional[DiscoveryRegistry] = None,
        polling: bool = False,
        poll_interval: float = 5.0,
        machine: str = "",
    ):
        self._source = source
        self._processor = processor
        self._sink = sink
        self._cancel = cancel
        self._registry = registry
        self._polling = polling
        self._poll_interval = poll_interval
        self._machine = machine
        self._stats = Stats()

    @property
    def stats(self) -> Stats:
        return self._stats

    @property
    def registry(self) -> Optional[DiscoveryRegistry]:
        return self._registry

    def run(self) -> RunOutcome:
        """Prepara el sink, ejecuta las iteraciones y lo cierra siempre."""
        self._sink.prepare(self._cancel)
        logger.info("[SCHEDULER] Sink %s ready", self._sink.sink_name)
        if self._registry is not None:
            self._registry.attach(self._sink)
        try:
            return self._loop()
        finally:
            self._sink.teardown()
            logger.info("[SCHEDULER] Stopped. %s", self._stats)

    def _loop(self) -> RunOutcome:
        if self._polling:
            logger.info("[SCHEDULER] Polling every %.1fs. Ctrl+C to cancel.", self._poll_interval)

        while True:
            outcome = self._stop_outcome()
            if outcome is not None:
                return outcome

            self.run_once()

            if not self._polling:
                return self._stop_outcome() or RunOutcome.COMPLETED

            logger.debug("[SCHEDULER] Waiting %.1fs for the next sensor reading", self._poll_interval)
            self._wait(self._poll_interval)

    def run_once(self) -> None:
        """Una iteración: todos los sensores, una vez."""
        self._stats.iterations += 1
        logger.debug(
            "[SCHEDULER] Reading sensors on %s at %s...",
            self._machine,
            time.strftime("%Y-%m-%d %H:%M:%S"),
        )
        for raw in self._source.enumerate_readings():
            if self._stop_outcome() is not None:
                return
            self._drain_status()
            self._route(raw)

    def _route(self, raw: RawReading) -> None:
        self._stats.received += 1
        logger.debug("[SCHEDULER] S %s: %s: %s = %s", raw.kind.value, raw.id, raw.name, raw.value)

        reading = self._processor.process(raw)
        if reading is None:
            reason = self._processor.last_reason
            self._stats.suppressed[reason.value if reason else "unknown"] += 1
            return

        if self._registry is not None:
            result = self._registry.announce(reading, self._sink)
            if result is not None and result.success:
                self._stats.discovery_published += 1

        result = self._sink.publish(reading_topic(reading), reading.to_payload(), QoS.AT_MOST_ONCE, reading)
        if result.success:
            self._stats.published += 1
            if self._stats.published % self.STATS_LOG_EVERY == 0:
                logger.info("[SCHEDULER] %s", self._stats)
        else:
            self._stats.failed += 1

    def _wait(self, seconds: float) -> None:
        """Espera interrumpible por cancelación o por pedido de parada."""
        deadline = time.monotonic() + seconds
        while self._stop_outcome() is None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            self._cancel.wait(min(self.WAIT_SLICE_SECONDS, remaining))
            self._drain_status()

    def _drain_status(self) -> None:
        if self._registry is not None:
            self._registry.drain()

    def _stop_outcome(self) -> Optional[RunOutcome]:
        if self._cancel.is_set():
            return RunOutcome.CANCELLED
        if self._registry is not None and self._registry.quit_requested:
            return RunOutcome.CONSUMER_OFFLINE
        return None
