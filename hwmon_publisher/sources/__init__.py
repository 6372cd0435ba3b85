"""Sources - Lectura de sensores de la máquina."""

from .base import SensorSource
from .psutil_source import PsutilSource, component_for_chip

__all__ = ["PsutilSource", "SensorSource", "component_for_chip"]
