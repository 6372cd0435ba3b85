"""Modelo de dominio para lecturas de sensores."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .schemas import ReadingPayload


class SensorKind(Enum):
    """Categoría de una lectura. Se serializa por nombre."""
    VOLTAGE = "Voltage"
    CLOCK = "Clock"
    TEMPERATURE = "Temperature"
    LOAD = "Load"
    FAN = "Fan"
    FLOW = "Flow"
    CONTROL = "Control"
    LEVEL = "Level"
    FACTOR = "Factor"
    POWER = "Power"
    DATA = "Data"
    SMALL_DATA = "SmallData"
    THROUGHPUT = "Throughput"

    @classmethod
    def parse(cls, text: str) -> "SensorKind":
        """Convierte un nombre (sin distinguir mayúsculas) en SensorKind."""
        wanted = text.strip().lower().replace("_", "")
        for kind in cls:
            if kind.value.lower() == wanted:
                return kind
        raise ValueError(f"unknown sensor kind: {text!r}")

    @property
    def slug(self) -> str:
        return self.value.lower()


class Component(Enum):
    """Grupos de hardware que la fuente de sensores puede leer."""
    MAINBOARD = "MainBoard"
    CPU = "Cpu"
    RAM = "Ram"
    GPU = "Gpu"
    FAN = "Fan"
    NETWORK = "Network"
    STORAGE = "Storage"

    @classmethod
    def parse(cls, text: str) -> "Component":
        wanted = text.strip().lower()
        for component in cls:
            if component.value.lower() == wanted:
                return component
        raise ValueError(f"unknown component: {text!r}")


@dataclass(frozen=True)
class RawReading:
    """Lectura tal como la entrega la fuente en cada poll.

    `value` es None cuando el sensor no pudo leerse (permisos, driver).
    """
    id: str
    kind: SensorKind
    name: str
    value: Optional[float] = None


@dataclass(frozen=True)
class PublishedReading:
    """Lectura filtrada y escalada que efectivamente se publica.

    Este es el contrato que reciben todos los sinks:
    Pipeline → (Discovery) → MQTT / Archivos / Consola
    """
    id: str
    kind: SensorKind
    name: str
    machine: str
    moment: datetime
    value: float

    def to_payload(self) -> str:
        """Serializa al JSON publicado."""
        return ReadingPayload(
            id=self.id,
            sensor_type=self.kind.value,
            name=self.name,
            machine=self.machine,
            moment=self.moment,
            value=self.value,
        ).model_dump_json(by_alias=True)
