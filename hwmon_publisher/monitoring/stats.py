"""Estadísticas de publicación."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field


@dataclass
class Stats:
    """Contadores del ciclo lectura → filtro → publicación."""

    received: int = 0
    published: int = 0
    failed: int = 0
    discovery_published: int = 0
    iterations: int = 0
    suppressed: Counter = field(default_factory=Counter)

    def __str__(self) -> str:
        return (
            f"Stats: iterations={self.iterations} received={self.received} "
            f"published={self.published} suppressed={self.suppressed_total} "
            f"failed={self.failed} discovery={self.discovery_published}"
        )

    @property
    def suppressed_total(self) -> int:
        return sum(self.suppressed.values())

