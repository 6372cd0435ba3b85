"""Transport layer - Sinks de publicación."""

from .base import PublishResult, QoS, Sink
from .console import ConsoleSink
from .files import FileSink
from .mqtt_client import MQTTSink

__all__ = ["ConsoleSink", "FileSink", "MQTTSink", "PublishResult", "QoS", "Sink"]
