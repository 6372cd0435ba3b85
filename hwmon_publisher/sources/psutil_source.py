"""Fuente de sensores basada en psutil.

Ids al estilo de OpenHardwareMonitor: `/{hardware}/{index}/{kind}/{n}`.
Los sensores que no pueden leerse se entregan con valor None.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Optional

import psutil

from ..domain.reading import Component, RawReading, SensorKind
from .base import SensorSource

logger = logging.getLogger(__name__)

_GB = 1024.0 ** 3

CPU_CHIPS = {"coretemp", "k10temp", "k8temp", "zenpower", "cpu_thermal", "cpu-thermal"}
GPU_CHIPS = {"amdgpu", "radeon", "nouveau", "nvidia"}
STORAGE_CHIPS = {"nvme", "drivetemp"}


def component_for_chip(chip: str) -> Component:
    """Clasifica un chip de temperatura de psutil en un Component."""
    name = chip.lower()
    if name in CPU_CHIPS:
        return Component.CPU
    if name in GPU_CHIPS:
        return Component.GPU
    if name in STORAGE_CHIPS:
        return Component.STORAGE
    return Component.MAINBOARD


class PsutilSource(SensorSource):
    """Lee los sensores de los componentes configurados en cada poll.

    No guarda estado entre polls salvo el módulo psutil, así que puede
    invocarse indefinidamente sin acumular recursos.
    """

    def __init__(self, components: Iterable[Component], ps: Optional[Any] = None):
        self._components = frozenset(components)
        self._ps = ps or psutil

    def enumerate_readings(self) -> Iterator[RawReading]:
        groups = (
            (None, self._temperatures),
            (Component.FAN, self._fans),
            (Component.CPU, self._cpu),
            (Component.RAM, self._memory),
            (Component.STORAGE, self._storage),
            (Component.NETWORK, self._network),
            (Component.MAINBOARD, self._battery),
        )
        for component, reader in groups:
            if component is not None and component not in self._components:
                continue
            try:
                readings = list(reader())
            except Exception as e:
                logger.warning("[SOURCE] %s failed: %s", reader.__name__.lstrip("_"), e)
                continue
            yield from readings

    def _temperatures(self) -> Iterator[RawReading]:
        read = getattr(self._ps, "sensors_temperatures", None)
        if read is None:
            return
        for chip, entries in (read() or {}).items():
            if component_for_chip(chip) not in self._components:
                continue
            for i, entry in enumerate(entries):
                yield RawReading(
                    id=f"/{chip}/0/temperature/{i}",
                    kind=SensorKind.TEMPERATURE,
                    name=entry.label or f"{chip} #{i}",
                    value=entry.current,
                )

    def _fans(self) -> Iterator[RawReading]:
        read = getattr(self._ps, "sensors_fans", None)
        if read is None:
            return
        for chip, entries in (read() or {}).items():
            for i, entry in enumerate(entries):
                yield RawReading(
                    id=f"/{chip}/0/fan/{i}",
                    kind=SensorKind.FAN,
                    name=entry.label or f"Fan #{i + 1}",
                    value=float(entry.current),
                )

    def _cpu(self) -> Iterator[RawReading]:
        cores = self._ps.cpu_percent(interval=None, percpu=True) or []
        total = sum(cores) / len(cores) if cores else None
        yield RawReading("/cpu/0/load/0", SensorKind.LOAD, "CPU Total", total)
        for i, value in enumerate(cores):
            yield RawReading(f"/cpu/0/load/{i + 1}", SensorKind.LOAD, f"CPU Core #{i + 1}", value)

        freq = self._ps.cpu_freq()
        yield RawReading(
            "/cpu/0/clock/0",
            SensorKind.CLOCK,
            "CPU Clock",
            freq.current if freq is not None else None,
        )

    def _memory(self) -> Iterator[RawReading]:
        mem = self._ps.virtual_memory()
        yield RawReading("/ram/load/0", SensorKind.LOAD, "Memory", mem.percent)
        yield RawReading("/ram/data/0", SensorKind.DATA, "Used Memory", mem.used / _GB)
        yield RawReading("/ram/data/1", SensorKind.DATA, "Available Memory", mem.available / _GB)

    def _storage(self) -> Iterator[RawReading]:
        for i, part in enumerate(self._ps.disk_partitions(all=False)):
            try:
                value = self._ps.disk_usage(part.mountpoint).percent
            except OSError as e:
                logger.debug("[SOURCE] disk_usage(%s) failed: %s", part.mountpoint, e)
                value = None
            yield RawReading(f"/hdd/{i}/load/0", SensorKind.LOAD, f"Used Space {part.mountpoint}", value)

    def _network(self) -> Iterator[RawReading]:
        for nic, counters in (self._ps.net_io_counters(pernic=True) or {}).items():
            yield RawReading(f"/nic/{nic}/data/0", SensorKind.DATA, f"{nic} Data Uploaded", counters.bytes_sent / _GB)
            yield RawReading(f"/nic/{nic}/data/1", SensorKind.DATA, f"{nic} Data Downloaded", counters.bytes_recv / _GB)

    def _battery(self) -> Iterator[RawReading]:
        read = getattr(self._ps, "sensors_battery", None)
        battery = read() if read is not None else None
        if battery is None:
            return
        yield RawReading("/battery/0/level/0", SensorKind.LEVEL, "Battery", battery.percent)
