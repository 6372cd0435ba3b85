"""Filtros de id compilados al arrancar."""

from __future__ import annotations

import re
from typing import Iterable

from ..errors import ConfigurationError


class CompiledFilter:
    """Conjunto inmutable de patrones de id.

    Sin patrones, todo id pasa. Con patrones, basta con que uno
    encuentre coincidencia (`re.search`).
    """

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Iterable[str] = ()):
        compiled = []
        for pattern in patterns:
            try:
                compiled.append(re.compile(pattern))
            except re.error as e:
                raise ConfigurationError(f"Invalid id pattern {pattern!r}: {e}") from None
        self._patterns = tuple(compiled)

    @property
    def is_empty(self) -> bool:
        return not self._patterns

    @property
    def patterns(self) -> tuple:
        return tuple(p.pattern for p in self._patterns)

    def matches(self, sensor_id: str) -> bool:
        if not self._patterns:
            return True
        return any(p.search(sensor_id) for p in self._patterns)

    def __repr__(self) -> str:
        return f"CompiledFilter({list(self.patterns)!r})"
