"""Nombres canónicos de topics e identidades.

Los consumidores (discovery, dashboards) indexan por el topic, así que
para un mismo id físico y tipo el resultado tiene que ser siempre el mismo.

Ejemplo:
    machine="Desktop-01", kind=Temperature, id="/intelcpu/0/temperature/0"
    → "desktop-01/ohmp/intelcpu/0/0/temperature"
"""

from __future__ import annotations

import re

from .reading import PublishedReading, SensorKind

TOPIC_NAMESPACE = "ohmp"

_TRIM_CHARS = "/-\\"
_REPEATED_SLASHES = re.compile(r"/{2,}")
_INVALID_ID_CHARS = re.compile(r"[^a-z0-9_-]")


def normalize_id(kind: SensorKind, raw_id: str) -> str:
    """Id en minúsculas, sin el nombre del tipo y sin separadores sobrantes."""
    normalized = raw_id.lower()
    while kind.slug in normalized:
        normalized = normalized.replace(kind.slug, "")
    normalized = _REPEATED_SLASHES.sub("/", normalized)
    return normalized.strip(_TRIM_CHARS)


def topic_for(machine: str, kind: SensorKind, raw_id: str) -> str:
    topic = f"{machine.lower()}/{TOPIC_NAMESPACE}/{normalize_id(kind, raw_id)}/{kind.slug}"
    return _REPEATED_SLASHES.sub("/", topic)


def unique_id_for(machine: str, kind: SensorKind, raw_id: str) -> str:
    """Id único estable para discovery: `{machine}_{id}_{kind}`."""
    base = f"{machine}_{normalize_id(kind, raw_id)}_{kind.slug}".lower().replace("/", "_")
    return _INVALID_ID_CHARS.sub("", base)


def node_id_for(machine: str) -> str:
    """Nodo de discovery: sólo `[a-z0-9_-]`, el resto pasa a '_' (`host.lan` → `host_lan`)."""
    return _INVALID_ID_CHARS.sub("_", machine.lower())


def reading_topic(reading: PublishedReading) -> str:
    return topic_for(reading.machine, reading.kind, reading.id)


def reading_unique_id(reading: PublishedReading) -> str:
    return unique_id_for(reading.machine, reading.kind, reading.id)
