"""Schemas de los mensajes publicados."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ReadingPayload(BaseModel):
    """Payload de una lectura.

    Formato:
    {
        "id": "/intelcpu/0/temperature/0",
        "sensorType": "Temperature",
        "name": "CPU Package",
        "machine": "desktop-01",
        "moment": "2026-01-31T08:00:00.123456Z",
        "value": 45.0
    }
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str
    sensor_type: str = Field(..., alias="sensorType")
    name: str
    machine: str
    moment: datetime
    value: float


class DiscoveryDevice(BaseModel):
    name: str
    identifiers: list[str]


class DiscoveryConfig(BaseModel):
    """Configuración de auto-discovery de Home Assistant para un sensor."""

    device: DiscoveryDevice
    name: str
    state_topic: str
    device_class: Optional[str] = None
    expire_after: int
    unique_id: str
    suggested_display_precision: int
    state_class: str = "measurement"
    unit_of_measurement: Optional[str] = None
    value_template: str = "{{ value_json.value }}"
