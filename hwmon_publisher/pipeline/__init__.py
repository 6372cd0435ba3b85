"""Pipeline - Filtros y debounce de lecturas."""

from .filters import CompiledFilter
from .processor import ReadingProcessor, SuppressReason

__all__ = ["CompiledFilter", "ReadingProcessor", "SuppressReason"]
