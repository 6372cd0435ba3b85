"""CLI entry point del publicador."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from typing import Optional, Sequence

from .config import Settings, get_settings
from .discovery.registry import DiscoveryRegistry
from .errors import EXIT_OK, ConfigurationError, PublisherError, UnexpectedError
from .pipeline.processor import ReadingProcessor
from .scheduler import PollingScheduler, RunOutcome
from .sources.psutil_source import PsutilSource
from .transport.base import Sink
from .transport.console import ConsoleSink
from .transport.files import FileSink
from .transport.mqtt_client import MQTTSink

logger = logging.getLogger(__name__)


def _flag(parser: argparse.ArgumentParser, *names: str, help: str, dest: Optional[str] = None) -> None:
    # None = no indicado; así manda la variable de entorno
    kwargs = {"dest": dest} if dest else {}
    parser.add_argument(*names, action="store_const", const=True, default=None, help=help, **kwargs)


def build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    _flag(common, "-v", "--verbose", help="verbose output")
    common.add_argument("-s", "--sensor-types", dest="kinds", help="sensor types to publish, comma separated")
    common.add_argument("-c", "--components", help="components to read, comma separated")
    common.add_argument("--id-pattern", dest="id_patterns", action="append", help="regex a sensor id must match (repeatable)")
    common.add_argument("--threshold", dest="thresholds", action="append", metavar="KIND=VALUE", help="minimum change to publish (repeatable)")
    common.add_argument("--multiplier", dest="multipliers", action="append", metavar="KIND=VALUE", help="value multiplier per kind (repeatable)")
    _flag(common, "--polling", help="keep running and polling sensor data")
    common.add_argument("--interval", dest="poll_interval", type=float, help="polling interval in seconds")
    common.add_argument("--machine", help="machine name used in topics")

    p = argparse.ArgumentParser(prog="hwmon-publisher", description="Monitors this machine hardware and publishes the values.")
    sub = p.add_subparsers(dest="command", required=True)

    mqtt_p = sub.add_parser("mqtt", parents=[common], help="publish values to a MQTT broker")
    mqtt_p.add_argument("broker", nargs="?", help="address or name of a MQTT broker")
    mqtt_p.add_argument("-p", "--port", type=int)
    _flag(mqtt_p, "--tls", dest="use_tls", help="use TLS")
    mqtt_p.add_argument("--no-validate-cert", dest="validate_tls_cert", action="store_const", const=False, default=None, help="do not validate TLS certificates")
    _flag(mqtt_p, "--websocket", help="connect through websockets")
    mqtt_p.add_argument("--ws-path", dest="websocket_path")
    mqtt_p.add_argument("--protocol", dest="protocol_version", choices=["5", "3.1.1", "3.1"])
    mqtt_p.add_argument("--username")
    mqtt_p.add_argument("--password")
    mqtt_p.add_argument("--keepalive", type=int)
    mqtt_p.add_argument("--client-id")
    _flag(mqtt_p, "--discovery", help="announce sensors with Home Assistant MQTT discovery")
    mqtt_p.add_argument("--discovery-prefix")
    _flag(mqtt_p, "--quit-with-consumer", help="stop when the discovery consumer goes offline")
    mqtt_p.add_argument("--min-publish-interval", type=int)

    files_p = sub.add_parser("files", parents=[common], help="publish values to files")
    files_p.add_argument("directory", nargs="?", help="directory where the files will be written")
    _flag(files_p, "--create-directory", help="create the directory if missing")
    files_p.add_argument("--max-file-size-kb", type=int)

    sub.add_parser("show", parents=[common], help="print the values on the console")
    return p


def settings_from_args(args: argparse.Namespace) -> Settings:
    overrides = {k: v for k, v in vars(args).items() if k != "command"}
    return get_settings(**overrides)


def build_sink(command: str, settings: Settings) -> Sink:
    if command == "mqtt":
        if not settings.mqtt.broker:
            raise ConfigurationError("The MQTT broker must be supplied.")
        return MQTTSink(settings.mqtt)
    if command == "files":
        return FileSink(settings.files)
    return ConsoleSink()


def build_scheduler(command: str, settings: Settings, cancel: threading.Event) -> PollingScheduler:
    sink = build_sink(command, settings)
    registry = None
    if settings.discovery.enabled and sink.supports_discovery:
        registry = DiscoveryRegistry.from_settings(settings)
    return PollingScheduler(
        source=PsutilSource(settings.components),
        processor=ReadingProcessor.from_settings(settings),
        sink=sink,
        cancel=cancel,
        registry=registry,
        polling=settings.polling,
        poll_interval=settings.poll_interval,
        machine=settings.machine,
    )


def _install_signal_handlers(cancel: threading.Event) -> None:
    def _handler(signum, frame):
        logger.info("Cancellation requested (signal %d)", signum)
        cancel.set()

    signal.signal(signal.SIGINT, _handler)
    if hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, _handler)


def run(argv: Optional[Sequence[str]] = None, cancel: Optional[threading.Event] = None) -> int:
    """Ejecuta el comando y devuelve el código de salida."""
    args = build_parser().parse_args(argv)
    cancel = cancel or threading.Event()

    try:
        settings = settings_from_args(args)
        logging.getLogger().setLevel(logging.DEBUG if settings.verbose else logging.INFO)
        scheduler = build_scheduler(args.command, settings, cancel)

        logger.info(
            "Publisher started: sink=%s machine=%s kinds=%s polling=%s interval=%.1fs",
            args.command,
            settings.machine,
            ",".join(sorted(k.value for k in settings.kinds)),
            settings.polling,
            settings.poll_interval,
        )
        outcome = scheduler.run()
    except PublisherError as e:
        logger.error("%s", e)
        return e.exit_code
    except Exception as e:
        err = UnexpectedError("Unknown exception!")
        err.__cause__ = e
        logger.exception("%s %s", err, e)
        return err.exit_code

    if outcome is RunOutcome.CANCELLED:
        logger.info("User cancelled!")
    elif outcome is RunOutcome.CONSUMER_OFFLINE:
        logger.info("Discovery consumer went offline, quitting")
    return EXIT_OK


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )
    cancel = threading.Event()
    _install_signal_handlers(cancel)
    sys.exit(run(cancel=cancel))


if __name__ == "__main__":
    main()
