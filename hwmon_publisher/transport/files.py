"""Sink de archivos: una línea JSON por lectura.

Sirve, por ejemplo, para el sensor File de Home Assistant.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional

from ..config import FileSettings
from ..domain.reading import PublishedReading
from ..errors import ConfigurationError
from .base import PublishResult, QoS, Sink

logger = logging.getLogger(__name__)


def file_name_for(reading: PublishedReading) -> str:
    """`{machine}-{id}.txt` con el id sin bordes ` -/\\` y '/' → '-'."""
    sensor = reading.id.strip(" -/\\").replace("/", "-")
    return f"{reading.machine}-{sensor}.txt"


class FileSink(Sink):
    """Escribe cada lectura en un archivo por sensor.

    Un archivo que supera `max_file_size_kb` se borra y se reinicia.
    """

    def __init__(self, settings: FileSettings):
        self._settings = settings

    @property
    def sink_name(self) -> str:
        return "files"

    def prepare(self, cancel: threading.Event) -> None:
        directory = self._settings.directory
        if not directory:
            raise ConfigurationError("The directory must be supplied.")
        if os.path.isdir(directory):
            return
        if not self._settings.create_directory:
            raise ConfigurationError(f"The directory '{directory}' must exists.")
        os.makedirs(directory, exist_ok=True)
        logger.info("[FILES] Created directory %s", directory)

    def publish(
        self,
        topic: str,
        payload: str,
        qos: QoS = QoS.AT_MOST_ONCE,
        reading: Optional[PublishedReading] = None,
    ) -> PublishResult:
        if reading is None:
            return PublishResult.failed("files sink needs the reading")

        path = os.path.join(self._settings.directory, file_name_for(reading))
        limit = self._settings.max_file_size_kb * 1024
        try:
            if os.path.exists(path) and os.path.getsize(path) > limit:
                logger.debug(
                    "[FILES] file '%s' had %.1fkb and was reinitialized.",
                    path,
                    os.path.getsize(path) / 1024.0,
                )
                os.remove(path)
            with open(path, "a", encoding="utf-8") as f:
                f.write(payload + "\n")
        except OSError as e:
            logger.debug("[FILES] error writing %s: %s", path, e)
            return PublishResult.failed(str(e))
        return PublishResult.ok()

    def teardown(self) -> None:
        pass
