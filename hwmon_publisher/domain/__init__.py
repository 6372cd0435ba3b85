"""Domain layer - Modelos y nombres."""

from .reading import Component, PublishedReading, RawReading, SensorKind
from .topics import (
    TOPIC_NAMESPACE,
    normalize_id,
    reading_topic,
    reading_unique_id,
    topic_for,
    unique_id_for,
)

__all__ = [
    "Component",
    "PublishedReading",
    "RawReading",
    "SensorKind",
    "TOPIC_NAMESPACE",
    "normalize_id",
    "reading_topic",
    "reading_unique_id",
    "topic_for",
    "unique_id_for",
]
