from __future__ import annotations

import os
import socket
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

from dotenv import load_dotenv

from .domain.reading import Component, SensorKind
from .errors import ConfigurationError

ENV_PREFIX = "HWMON_"

DEFAULT_KINDS = frozenset({SensorKind.TEMPERATURE, SensorKind.POWER, SensorKind.LOAD})
DEFAULT_COMPONENTS = frozenset({Component.MAINBOARD, Component.CPU, Component.GPU})

PROTOCOL_VERSIONS = ("5", "3.1.1", "3.1")


@dataclass(frozen=True)
class MqttSettings:
    broker: str = ""
    port: int = 1883
    use_tls: bool = False
    validate_tls_cert: bool = True
    websocket: bool = False
    websocket_path: str = "/mqtt"
    protocol_version: str = "5"
    username: Optional[str] = None
    password: Optional[str] = None
    keepalive: int = 10
    client_id: str = ""
    connect_timeout: float = 10.0
    publish_timeout: float = 5.0


@dataclass(frozen=True)
class DiscoverySettings:
    enabled: bool = False
    prefix: str = "homeassistant"
    quit_with_consumer: bool = False
    # Intervalo mínimo esperado entre actualizaciones; sólo alimenta expire_after.
    min_publish_interval: int = 60

    @property
    def status_topic(self) -> str:
        return f"{self.prefix}/status"


@dataclass(frozen=True)
class FileSettings:
    directory: str = ""
    create_directory: bool = False
    max_file_size_kb: int = 10


@dataclass(frozen=True)
class Settings:
    machine: str
    kinds: frozenset = DEFAULT_KINDS
    components: frozenset = DEFAULT_COMPONENTS
    id_patterns: tuple = ()
    thresholds: Mapping[SensorKind, float] = field(default_factory=dict)
    multipliers: Mapping[SensorKind, float] = field(default_factory=dict)
    polling: bool = False
    poll_interval: float = 5.0
    verbose: bool = False

    mqtt: MqttSettings = field(default_factory=MqttSettings)
    discovery: DiscoverySettings = field(default_factory=DiscoverySettings)
    files: FileSettings = field(default_factory=FileSettings)

    @property
    def expire_after(self) -> int:
        """Segundos sin datos tras los que el consumidor marca el sensor como no disponible."""
        return int(self.discovery.min_publish_interval + 4 * self.poll_interval)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(ENV_PREFIX + name, default)


def parse_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigurationError(f"{name}: expected a boolean, got {value!r}")


def parse_number(value: Any, name: str, minimum: float = 0.0, exclusive: bool = False) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name}: {value!r} is not a number") from None
    if number != number:
        raise ConfigurationError(f"{name}: NaN is not allowed")
    if number < minimum or (exclusive and number == minimum):
        op = ">" if exclusive else ">="
        raise ConfigurationError(f"{name}: must be {op} {minimum:g}, got {number:g}")
    return number


def _split(value: Any) -> list[str]:
    if isinstance(value, str):
        items: Iterable[str] = value.split(",")
    else:
        items = value
    return [item.strip() for item in items if item and item.strip()]


def split_patterns(value: Any) -> list[str]:
    """Un patrón por línea: las comas son válidas dentro de una regex (`\\d{1,2}`)."""
    if isinstance(value, str):
        value = value.splitlines()
    return [item.strip() for item in value if item and item.strip()]


def parse_kinds(value: Any, name: str = "kinds") -> frozenset:
    try:
        kinds = frozenset(
            k if isinstance(k, SensorKind) else SensorKind.parse(k) for k in _split(value)
        )
    except ValueError as e:
        raise ConfigurationError(f"{name}: {e}") from None
    if not kinds:
        raise ConfigurationError("At least one sensor type must be pooled.")
    return kinds


def parse_components(value: Any) -> frozenset:
    try:
        components = frozenset(
            c if isinstance(c, Component) else Component.parse(c) for c in _split(value)
        )
    except ValueError as e:
        raise ConfigurationError(f"components: {e}") from None
    if not components:
        raise ConfigurationError("At least one component must be pooled.")
    return components


def parse_kind_map(value: Any, name: str) -> dict[SensorKind, float]:
    """Parsea `Temperature=1.0,Load=5` (o un dict) a {SensorKind: float}."""
    if isinstance(value, Mapping):
        pairs = list(value.items())
    else:
        pairs = []
        for item in _split(value):
            key, sep, number = item.partition("=")
            if not sep:
                raise ConfigurationError(f"{name}: expected Kind=value, got {item!r}")
            pairs.append((key, number))

    result: dict[SensorKind, float] = {}
    for key, number in pairs:
        try:
            kind = key if isinstance(key, SensorKind) else SensorKind.parse(key)
        except ValueError as e:
            raise ConfigurationError(f"{name}: {e}") from None
        result[kind] = parse_number(number, f"{name}[{kind.value}]")
    return result


def _default_env_file() -> str:
    return str(Path.cwd() / ".env")


def get_settings(**overrides: Any) -> Settings:
    """Construye Settings: overrides (CLI) > variables HWMON_* > .env > defaults.

    Los overrides con valor None se ignoran, así el CLI puede pasar todas
    sus opciones sin pisar el entorno.
    """
    # Load env file (if present) but still allow overriding via real environment variables.
    env_file = os.getenv("HWMON_ENV_FILE", _default_env_file())
    if env_file and Path(env_file).exists():
        load_dotenv(env_file, override=False)

    o = {k: v for k, v in overrides.items() if v is not None}

    def pick(key: str, env_name: str, default: Any = None) -> Any:
        if key in o:
            return o[key]
        return _env(env_name, default)

    machine = pick("machine", "MACHINE") or socket.gethostname()

    kinds_raw = pick("kinds", "SENSOR_TYPES")
    kinds = DEFAULT_KINDS if kinds_raw is None else parse_kinds(kinds_raw)

    components_raw = pick("components", "COMPONENTS")
    components = DEFAULT_COMPONENTS if components_raw is None else parse_components(components_raw)

    patterns_raw = pick("id_patterns", "ID_PATTERNS")
    id_patterns = tuple(split_patterns(patterns_raw)) if patterns_raw is not None else ()

    thresholds = parse_kind_map(pick("thresholds", "THRESHOLDS", ""), "thresholds")
    multipliers = parse_kind_map(pick("multipliers", "MULTIPLIERS", ""), "multipliers")

    poll_interval = parse_number(
        pick("poll_interval", "POLL_INTERVAL", "5"), "poll_interval", exclusive=True
    )

    mqtt = MqttSettings(
        broker=pick("broker", "MQTT_BROKER", "") or "",
        port=int(parse_number(pick("port", "MQTT_PORT", "1883"), "port", exclusive=True)),
        use_tls=parse_bool(pick("use_tls", "MQTT_USE_TLS", "false"), "use_tls"),
        validate_tls_cert=parse_bool(
            pick("validate_tls_cert", "MQTT_VALIDATE_TLS_CERT", "true"), "validate_tls_cert"
        ),
        websocket=parse_bool(pick("websocket", "MQTT_WEBSOCKET", "false"), "websocket"),
        websocket_path=pick("websocket_path", "MQTT_WEBSOCKET_PATH", "/mqtt"),
        protocol_version=str(pick("protocol_version", "MQTT_PROTOCOL_VERSION", "5")),
        username=pick("username", "MQTT_USERNAME") or None,
        password=pick("password", "MQTT_PASSWORD") or None,
        keepalive=int(parse_number(pick("keepalive", "MQTT_KEEPALIVE", "10"), "keepalive", exclusive=True)),
        client_id=pick("client_id", "MQTT_CLIENT_ID", "") or f"hwmon-{machine.lower()}",
        connect_timeout=parse_number(
            pick("connect_timeout", "MQTT_CONNECT_TIMEOUT", "10"), "connect_timeout", exclusive=True
        ),
        publish_timeout=parse_number(
            pick("publish_timeout", "MQTT_PUBLISH_TIMEOUT", "5"), "publish_timeout", exclusive=True
        ),
    )
    if mqtt.protocol_version not in PROTOCOL_VERSIONS:
        raise ConfigurationError(
            f"protocol_version: expected one of {', '.join(PROTOCOL_VERSIONS)}, got {mqtt.protocol_version!r}"
        )

    discovery = DiscoverySettings(
        enabled=parse_bool(pick("discovery", "DISCOVERY", "false"), "discovery"),
        prefix=(pick("discovery_prefix", "DISCOVERY_PREFIX", "homeassistant") or "").strip("/"),
        quit_with_consumer=parse_bool(
            pick("quit_with_consumer", "QUIT_WITH_CONSUMER", "false"), "quit_with_consumer"
        ),
        min_publish_interval=int(
            parse_number(pick("min_publish_interval", "MIN_PUBLISH_INTERVAL", "60"), "min_publish_interval")
        ),
    )
    if discovery.enabled and not discovery.prefix:
        raise ConfigurationError("discovery_prefix must not be empty")

    files = FileSettings(
        directory=pick("directory", "FILES_DIRECTORY", "") or "",
        create_directory=parse_bool(pick("create_directory", "FILES_CREATE_DIRECTORY", "false"), "create_directory"),
        max_file_size_kb=int(
            parse_number(pick("max_file_size_kb", "FILES_MAX_SIZE_KB", "10"), "max_file_size_kb", exclusive=True)
        ),
    )

    return Settings(
        machine=machine,
        kinds=kinds,
        components=components,
        id_patterns=id_patterns,
        thresholds=thresholds,
        multipliers=multipliers,
        polling=parse_bool(pick("polling", "POLLING", "false"), "polling"),
        poll_interval=poll_interval,
        verbose=parse_bool(pick("verbose", "VERBOSE", "false"), "verbose"),
        mqtt=mqtt,
        discovery=discovery,
        files=files,
    )
