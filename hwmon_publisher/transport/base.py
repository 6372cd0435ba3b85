"""Sink - Interface base para todos los destinos de publicación.

Define el contrato común que implementan MQTT, archivos y consola.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional

from ..domain.reading import PublishedReading


class QoS(IntEnum):
    """Garantía de entrega."""
    AT_MOST_ONCE = 0
    AT_LEAST_ONCE = 1
    EXACTLY_ONCE = 2


@dataclass(frozen=True)
class PublishResult:
    success: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls, reason: Optional[str] = None) -> "PublishResult":
        return cls(True, reason)

    @classmethod
    def failed(cls, reason: str) -> "PublishResult":
        return cls(False, reason)


class Sink(ABC):
    """Interface común para todos los sinks.

    El scheduler llama `prepare` una vez antes del primer poll,
    `publish` por cada lectura y `teardown` al terminar.
    """

    #: Sólo los sinks con canal de suscripción soportan auto-discovery.
    supports_discovery = False

    @abstractmethod
    def prepare(self, cancel: threading.Event) -> None:
        """Prepara el sink. Lanza TransportError si no es posible."""

    @abstractmethod
    def publish(
        self,
        topic: str,
        payload: str,
        qos: QoS = QoS.AT_MOST_ONCE,
        reading: Optional[PublishedReading] = None,
    ) -> PublishResult:
        """Publica un payload.

        `reading` acompaña al payload para los sinks que lo renderizan
        (archivos, consola); MQTT sólo usa topic y payload.
        """

    @abstractmethod
    def teardown(self) -> None:
        """Libera conexiones y recursos."""

    @property
    @abstractmethod
    def sink_name(self) -> str:
        """Nombre del sink: mqtt, files, show."""
