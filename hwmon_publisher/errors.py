"""Errores del publicador.

Cada error lleva el código de salida que el CLI devuelve al sistema.
"""

from __future__ import annotations

EXIT_OK = 0
EXIT_CONFIGURATION = 2
EXIT_TRANSPORT = 3
EXIT_UNEXPECTED = 99


class PublisherError(Exception):
    """Error base del publicador."""

    exit_code = EXIT_UNEXPECTED


class ConfigurationError(PublisherError):
    """Configuración inválida. Se reporta antes de leer ningún sensor."""

    exit_code = EXIT_CONFIGURATION


class TransportError(PublisherError):
    """El sink no pudo prepararse (p.ej. conexión inicial al broker)."""

    exit_code = EXIT_TRANSPORT


class UnexpectedError(PublisherError):
    """Fallo sin estrategia de recuperación; envuelve la excepción original."""

    exit_code = EXIT_UNEXPECTED
