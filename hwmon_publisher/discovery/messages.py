"""Mensajes de configuración de auto-discovery (Home Assistant)."""

from __future__ import annotations

from typing import NamedTuple, Optional

from ..domain.reading import PublishedReading, SensorKind
from ..domain.schemas import DiscoveryConfig, DiscoveryDevice
from ..domain.topics import TOPIC_NAMESPACE, node_id_for, reading_topic, reading_unique_id


class KindMetadata(NamedTuple):
    unit: Optional[str]
    device_class: Optional[str]
    precision: int


# Unidad, device_class de Home Assistant y decimales sugeridos por tipo
KIND_METADATA = {
    SensorKind.VOLTAGE: KindMetadata("V", "voltage", 3),
    SensorKind.CLOCK: KindMetadata("MHz", "frequency", 0),
    SensorKind.TEMPERATURE: KindMetadata("°C", "temperature", 1),
    SensorKind.LOAD: KindMetadata("%", None, 1),
    SensorKind.FAN: KindMetadata("RPM", None, 0),
    SensorKind.FLOW: KindMetadata("L/h", "volume_flow_rate", 1),
    SensorKind.CONTROL: KindMetadata("%", None, 1),
    SensorKind.LEVEL: KindMetadata("%", None, 1),
    SensorKind.FACTOR: KindMetadata(None, None, 3),
    SensorKind.POWER: KindMetadata("W", "power", 1),
    SensorKind.DATA: KindMetadata("GB", "data_size", 2),
    SensorKind.SMALL_DATA: KindMetadata("MB", "data_size", 1),
    SensorKind.THROUGHPUT: KindMetadata("B/s", "data_rate", 0),
}


def config_topic(prefix: str, reading: PublishedReading) -> str:
    """`{prefix}/sensor/{node_id}/{unique_id}/config`."""
    return f"{prefix}/sensor/{node_id_for(reading.machine)}/{reading_unique_id(reading)}/config"


def build_config(reading: PublishedReading, expire_after: int) -> DiscoveryConfig:
    meta = KIND_METADATA.get(reading.kind, KindMetadata(None, None, 2))
    return DiscoveryConfig(
        device=DiscoveryDevice(
            name=reading.machine,
            identifiers=[f"{TOPIC_NAMESPACE}_{reading.machine.lower()}"],
        ),
        name=reading.name,
        state_topic=reading_topic(reading),
        device_class=meta.device_class,
        expire_after=expire_after,
        unique_id=reading_unique_id(reading),
        suggested_display_precision=meta.precision,
        unit_of_measurement=meta.unit,
    )
