"""Discovery - Auto-registro de sensores en Home Assistant."""

from .messages import KIND_METADATA, build_config, config_topic
from .registry import ConsumerState, DiscoveryRegistry

__all__ = [
    "ConsumerState",
    "DiscoveryRegistry",
    "KIND_METADATA",
    "build_config",
    "config_topic",
]
