"""Sink MQTT con reconexión."""

from __future__ import annotations

import logging
import ssl
import threading
import time
from typing import Any, Callable, Optional

import paho.mqtt.client as mqtt

from ..config import MqttSettings
from ..domain.reading import PublishedReading
from ..errors import TransportError
from .base import PublishResult, QoS, Sink

logger = logging.getLogger(__name__)

MessageHandler = Callable[[str, bytes], None]

_PROTOCOLS = {
    "5": mqtt.MQTTv5,
    "3.1.1": mqtt.MQTTv311,
    "3.1": mqtt.MQTTv31,
}


class MQTTSink(Sink):
    """Cliente MQTT de larga vida para publicar lecturas.

    Responsabilidades:
    - Conexión con TLS, credenciales, keep-alive y websockets opcionales
    - Reconexión automática del loop de paho tras cada desconexión inesperada
    - Publicación con espera de ACK; nunca encola entre desconexiones
    - Suscripciones (re)emitidas en cada conexión y delegadas a handlers

    Los callbacks de paho corren en el hilo de red del cliente.
    """

    supports_discovery = True

    RECONNECT_WAIT_SECONDS = 1.0
    RECONNECT_MIN_DELAY = 1
    RECONNECT_MAX_DELAY = 30
    CONNECT_POLL_SECONDS = 0.1

    def __init__(
        self,
        settings: MqttSettings,
        client_factory: Optional[Callable[..., Any]] = None,
    ):
        self._settings = settings
        self._client_factory = client_factory or mqtt.Client
        self._client: Optional[Any] = None
        self._cancel = threading.Event()

        self._connected = False
        self._was_connected = False
        self._closing = False
        self._handlers: dict[str, MessageHandler] = {}

        self._reconnect_count = 0
        self._published = 0
        self._failed = 0

    @property
    def sink_name(self) -> str:
        return "mqtt"

    def add_message_handler(self, topic: str, handler: MessageHandler) -> None:
        """Registra un handler para un topic (admite comodines + y #).

        Si ya hay conexión se suscribe en el momento; si no, al conectar.
        """
        self._handlers[topic] = handler
        if self._client is not None and self._connected:
            self._subscribe(self._client, topic)

    def prepare(self, cancel: threading.Event) -> None:
        """Conecta al broker y espera el CONNACK."""
        self._cancel = cancel
        s = self._settings
        if not s.broker:
            raise TransportError("The MQTT broker must be supplied.")

        self._client = self._build_client()

        logger.info("[MQTT] Connecting to %s:%d", s.broker, s.port)
        try:
            self._client.connect(s.broker, s.port, keepalive=s.keepalive)
        except (OSError, ValueError) as e:
            raise TransportError(f"Connection to {s.broker}:{s.port} failed: {e}") from e
        self._client.loop_start()

        deadline = time.monotonic() + s.connect_timeout
        while not self._connected and not cancel.is_set():
            if time.monotonic() >= deadline:
                self._stop_client()
                raise TransportError(f"Connection to {s.broker}:{s.port} timed out")
            cancel.wait(self.CONNECT_POLL_SECONDS)

    def _build_client(self):
        s = self._settings
        client = self._client_factory(
            callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
            client_id=s.client_id,
            protocol=_PROTOCOLS[s.protocol_version],
            transport="websockets" if s.websocket else "tcp",
        )
        if s.websocket:
            client.ws_set_options(path=s.websocket_path)
        if s.use_tls:
            client.tls_set(cert_reqs=ssl.CERT_REQUIRED if s.validate_tls_cert else ssl.CERT_NONE)
            client.tls_insecure_set(not s.validate_tls_cert)
        if s.username:
            client.username_pw_set(s.username, s.password)
        # el loop de paho reintenta solo tras cada desconexión
        client.reconnect_delay_set(min_delay=self.RECONNECT_MIN_DELAY, max_delay=self.RECONNECT_MAX_DELAY)

        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        return client

    def publish(
        self,
        topic: str,
        payload: str,
        qos: QoS = QoS.AT_MOST_ONCE,
        reading: Optional[PublishedReading] = None,
    ) -> PublishResult:
        """Publica y espera la confirmación de entrega.

        Bloquea mientras no haya conexión (salvo cancelación). Los
        errores se devuelven en el resultado, nunca se lanzan.
        """
        if self._client is None:
            return self._fail(topic, "not prepared")

        while not self._connected and not self._cancel.is_set():
            logger.debug("[MQTT] waiting for reconnection...")
            self._cancel.wait(self.RECONNECT_WAIT_SECONDS)
        if self._cancel.is_set():
            return PublishResult.failed("cancelled")

        try:
            info = self._client.publish(topic, payload, qos=int(qos))
            if info.rc != mqtt.MQTT_ERR_SUCCESS:
                return self._fail(topic, mqtt.error_string(info.rc))
            info.wait_for_publish(timeout=self._settings.publish_timeout)
        except (RuntimeError, ValueError) as e:
            return self._fail(topic, str(e))

        if not info.is_published():
            return self._fail(topic, f"not acknowledged within {self._settings.publish_timeout:g}s")

        self._published += 1
        logger.debug("[MQTT] published Ok at %s (qos=%d)", topic, int(qos))
        return PublishResult.ok()

    def teardown(self) -> None:
        """Desconecta del broker."""
        self._stop_client()
        logger.info(
            "[MQTT] Closed. published=%d failed=%d reconnects=%d",
            self._published,
            self._failed,
            self._reconnect_count,
        )

    def _stop_client(self) -> None:
        self._closing = True
        if self._client is not None:
            try:
                self._client.disconnect()
                self._client.loop_stop()
            except (OSError, RuntimeError) as e:
                logger.warning("[MQTT] Disconnect error: %s", e)
        self._connected = False

    def _fail(self, topic: str, reason: str) -> PublishResult:
        self._failed += 1
        logger.debug("[MQTT] error publishing at %s: %s", topic, reason)
        return PublishResult.failed(reason)

    # ------------------------------------------------------------------
    # Callbacks (hilo de red de paho)
    # ------------------------------------------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de conexión."""
        if reason_code == 0:
            self._connected = True
            if self._was_connected:
                self._reconnect_count += 1
                logger.info("[MQTT] Connected again (reconnects=%d)", self._reconnect_count)
            else:
                logger.info("[MQTT] Connected to broker")
            self._was_connected = True
            for topic in self._handlers:
                self._subscribe(client, topic)
        else:
            self._connected = False
            logger.error("[MQTT] Connection failed: %s", reason_code)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        """Callback de desconexión.

        No reconecta aquí: el loop de paho (`loop_start`) reintenta con el
        backoff de `reconnect_delay_set` y `_on_connect` cuenta la reconexión.
        """
        self._connected = False
        if self._closing:
            logger.info("[MQTT] Disconnected")
            return
        logger.warning("[MQTT] Disconnected (%s). Retrying...", reason_code)

    def _on_message(self, client, userdata, msg):
        """Callback de mensaje - delega al handler del topic."""
        logger.debug("[MQTT] Received message on topic %s", msg.topic)
        for pattern, handler in list(self._handlers.items()):
            if pattern == msg.topic or mqtt.topic_matches_sub(pattern, msg.topic):
                try:
                    handler(msg.topic, msg.payload)
                except Exception as e:
                    logger.exception("[MQTT] Handler error on %s: %s", msg.topic, e)
                return

    def _subscribe(self, client, topic: str) -> None:
        result, _mid = client.subscribe(topic, qos=1)
        if result != mqtt.MQTT_ERR_SUCCESS:
            logger.warning("[MQTT] Failed to subscribe to %s: %s", topic, mqtt.error_string(result))
        else:
            logger.info("[MQTT] Subscribed to %s", topic)

    @property
    def is_connected(self) -> bool:
        return self._connected

    @property
    def stats(self) -> dict:
        return {
            "connected": self._connected,
            "published": self._published,
            "failed": self._failed,
            "reconnect_count": self._reconnect_count,
        }
