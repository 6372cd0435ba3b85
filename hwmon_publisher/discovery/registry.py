"""Registro de auto-discovery.

Estados por sensor:   no registrado → registrado
Estado del consumidor: desconocido → online → offline

- Primera lectura publicada de un sensor no registrado: se envía su
  configuración (QoS 1) antes del dato y, si llega, queda registrado.
- "online" en el topic de estado: el consumidor olvidó todo, se vacía
  el registro completo.
- "offline": si está configurado, se pide al scheduler que termine.

Los mensajes de estado llegan por el hilo de red de MQTT; se encolan y
se aplican en `drain()`, que llama el scheduler desde su propio hilo.
"""

from __future__ import annotations

import logging
import queue
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from ..domain.reading import PublishedReading
from ..domain.topics import reading_unique_id
from ..transport.base import PublishResult, QoS, Sink
from .messages import build_config, config_topic

logger = logging.getLogger(__name__)

STATUS_ONLINE = "online"
STATUS_OFFLINE = "offline"


class ConsumerState(Enum):
    UNKNOWN = "unknown"
    ONLINE = "online"
    OFFLINE = "offline"


class DiscoveryRegistry:
    """Sensores ya anunciados al consumidor de discovery.

    La clave es el unique_id final (máquina + id normalizado + tipo),
    de modo que dos sensores distintos nunca comparten entrada.
    """

    def __init__(
        self,
        prefix: str,
        expire_after: int,
        quit_with_consumer: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._prefix = prefix
        self._expire_after = expire_after
        self._quit_with_consumer = quit_with_consumer
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._registered: dict[str, datetime] = {}
        self._pending: "queue.Queue[str]" = queue.Queue()
        self._state = ConsumerState.UNKNOWN
        self._epoch = 0
        self._quit_requested = False

    @classmethod
    def from_settings(cls, settings) -> "DiscoveryRegistry":
        return cls(
            prefix=settings.discovery.prefix,
            expire_after=settings.expire_after,
            quit_with_consumer=settings.discovery.quit_with_consumer,
        )

    @property
    def status_topic(self) -> str:
        return f"{self._prefix}/status"

    @property
    def expire_after(self) -> int:
        return self._expire_after

    def attach(self, sink) -> None:
        """Suscribe el registro al canal de estado del sink."""
        sink.add_message_handler(self.status_topic, self.submit_status)

    def submit_status(self, topic: str, payload: bytes) -> None:
        """Handler del topic de estado (hilo de red): sólo encola."""
        if isinstance(payload, bytes):
            text = payload.decode("utf-8", errors="replace")
        else:
            text = str(payload)
        self._pending.put(text.strip())

    def drain(self) -> int:
        """Aplica los mensajes de estado pendientes. Devuelve cuántos."""
        applied = 0
        while True:
            try:
                text = self._pending.get_nowait()
            except queue.Empty:
                return applied
            self._apply_status(text)
            applied += 1

    def _apply_status(self, text: str) -> None:
        status = text.lower()
        if status == STATUS_ONLINE:
            forgotten = len(self._registered)
            self._registered.clear()
            self._state = ConsumerState.ONLINE
            self._epoch += 1
            logger.info(
                "[DISCOVERY] Consumer online, registry cleared (%d sensors, epoch=%d)",
                forgotten,
                self._epoch,
            )
        elif status == STATUS_OFFLINE:
            self._state = ConsumerState.OFFLINE
            logger.info("[DISCOVERY] Consumer offline")
            if self._quit_with_consumer:
                logger.info("[DISCOVERY] Quit with consumer requested")
                self._quit_requested = True
        else:
            logger.warning("[DISCOVERY] Unexpected status payload: %r", text)

    def announce(self, reading: PublishedReading, sink: Sink) -> Optional[PublishResult]:
        """Publica la configuración si el sensor aún no está registrado.

        Returns:
            None si ya estaba registrado; si no, el resultado del envío.
        """
        unique_id = reading_unique_id(reading)
        if unique_id in self._registered:
            return None

        topic = config_topic(self._prefix, reading)
        config = build_config(reading, self._expire_after)
        result = sink.publish(topic, config.model_dump_json(), QoS.AT_LEAST_ONCE)
        if result.success:
            self._registered[unique_id] = self._clock()
            logger.debug("[DISCOVERY] Registered %s at %s", unique_id, topic)
        else:
            logger.warning("[DISCOVERY] Failed to register %s: %s", unique_id, result.reason)
        return result

    def is_registered(self, unique_id: str) -> bool:
        return unique_id in self._registered

    @property
    def registered_count(self) -> int:
        return len(self._registered)

    @property
    def state(self) -> ConsumerState:
        return self._state

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def quit_requested(self) -> bool:
        return self._quit_requested
