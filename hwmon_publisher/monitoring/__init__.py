"""Monitoring - Estadísticas."""

from .stats import Stats

__all__ = ["Stats"]
