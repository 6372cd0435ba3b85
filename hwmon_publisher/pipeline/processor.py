"""Procesador principal de lecturas: filtros y debounce."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Iterable, Mapping, Optional

from ..domain.reading import PublishedReading, RawReading, SensorKind
from .filters import CompiledFilter

logger = logging.getLogger(__name__)


class SuppressReason(Enum):
    """Motivo por el que una lectura no se publica."""
    IGNORED = "ignored"
    KIND = "kind"
    PATTERN = "pattern"
    NO_VALUE = "no_value"
    DELTA = "delta"


class ReadingProcessor:
    """Decide, lectura por lectura, qué se publica.

    Pipeline (cada paso corta el resto):
    1. Id ya ignorado
    2. Tipo fuera de los configurados      → se ignora para siempre
    3. Ningún patrón de id coincide        → se ignora para siempre
    4. Sin valor                           → se descarta esta vez
    5. Escalado por tipo
    6. Delta contra el último publicado    → se descarta esta vez
    7. Se construye la lectura publicada y se cachea

    Los pasos 2 y 3 son pegajosos porque tipo e id no cambian durante
    la ejecución; el 4 y el 6 no, porque el valor sí cambia.
    """

    def __init__(
        self,
        machine: str,
        kinds: Iterable[SensorKind],
        id_filter: Optional[CompiledFilter] = None,
        thresholds: Optional[Mapping[SensorKind, float]] = None,
        multipliers: Optional[Mapping[SensorKind, float]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._machine = machine
        self._kinds = frozenset(kinds)
        self._filter = id_filter or CompiledFilter()
        self._thresholds = dict(thresholds or {})
        self._multipliers = dict(multipliers or {})
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._ignored: set[str] = set()
        self._last_published: dict[str, PublishedReading] = {}
        self.last_reason: Optional[SuppressReason] = None

    @classmethod
    def from_settings(cls, settings) -> "ReadingProcessor":
        return cls(
            machine=settings.machine,
            kinds=settings.kinds,
            id_filter=CompiledFilter(settings.id_patterns),
            thresholds=settings.thresholds,
            multipliers=settings.multipliers,
        )

    def process(self, raw: RawReading) -> Optional[PublishedReading]:
        """Procesa una lectura cruda.

        Returns:
            PublishedReading a publicar, o None si se suprime
            (el motivo queda en `last_reason`).
        """
        if raw.id in self._ignored:
            return self._suppress(raw, SuppressReason.IGNORED)

        if raw.kind not in self._kinds:
            self._ignored.add(raw.id)
            return self._suppress(raw, SuppressReason.KIND)

        if not self._filter.matches(raw.id):
            self._ignored.add(raw.id)
            return self._suppress(raw, SuppressReason.PATTERN)

        if raw.value is None:
            return self._suppress(raw, SuppressReason.NO_VALUE)

        value = raw.value * self.multiplier(raw.kind)

        prior = self._last_published.get(raw.id)
        threshold = self._thresholds.get(raw.kind)
        if prior is not None and threshold is not None:
            delta = abs(value - prior.value)
            if delta <= threshold:
                logger.debug(
                    "[PIPELINE] %s delta=%.4f <= %.4f, suppressed", raw.id, delta, threshold
                )
                return self._suppress(raw, SuppressReason.DELTA)

        reading = PublishedReading(
            id=raw.id,
            kind=raw.kind,
            name=raw.name,
            machine=self._machine,
            moment=self._clock(),
            value=value,
        )
        self._last_published[raw.id] = reading
        self.last_reason = None
        return reading

    def multiplier(self, kind: SensorKind) -> float:
        return self._multipliers.get(kind, 1.0)

    def is_ignored(self, sensor_id: str) -> bool:
        return sensor_id in self._ignored

    def last_published(self, sensor_id: str) -> Optional[PublishedReading]:
        return self._last_published.get(sensor_id)

    def _suppress(self, raw: RawReading, reason: SuppressReason) -> None:
        if reason is not SuppressReason.IGNORED and reason is not SuppressReason.DELTA:
            logger.debug("[PIPELINE] %s %s suppressed (%s)", raw.kind.value, raw.id, reason.value)
        self.last_reason = reason
        return None
