"""Interface de las fuentes de sensores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterator

from ..domain.reading import RawReading


class SensorSource(ABC):
    """Entrega una secuencia finita de lecturas por cada poll."""

    @abstractmethod
    def enumerate_readings(self) -> Iterator[RawReading]:
        """Recorre todos los sensores una vez."""
