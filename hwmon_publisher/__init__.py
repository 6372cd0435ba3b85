"""hwmon_publisher - Publicación de telemetría de hardware.

Estructura:
- domain/      → Modelos de lectura y nombres de topics
- sources/     → Lectura de sensores (psutil)
- pipeline/    → Filtros y debounce de lecturas
- discovery/   → Registro de auto-discovery (Home Assistant)
- transport/   → Sinks: MQTT, archivos, consola
- monitoring/  → Estadísticas
- scheduler    → Bucle de polling
- cli          → Punto de entrada
"""

__version__ = "1.0.0"
