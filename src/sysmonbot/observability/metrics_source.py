"""Host metrics source backed by psutil.

Each accessor returns a MetricResult and never raises: provider failures
(unsupported platform, permission denied, missing sensors) become a failure
result for that one metric.

The CPU load accessor is asynchronous: it reads the aggregate CPU times,
suspends for the sampling window, reads them again and reports how the
elapsed time was split between user, nice, system, interrupt and idle.
All other accessors are synchronous point samples.
"""

import asyncio
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from socket import AF_INET, AF_INET6, SOCK_DGRAM, SOCK_STREAM
from typing import Any, Protocol

import psutil
import structlog

from ..capabilities.observe import MetricResult

logger = structlog.get_logger(__name__)

# Preferred sensor names, Raspberry Pi first
_CPU_SENSOR_NAMES = ("cpu_thermal", "cpu-thermal", "coretemp", "k10temp", "soc_thermal", "acpitz")

_SOCKET_KINDS = (
    ("tcp", AF_INET, SOCK_STREAM),
    ("udp", AF_INET, SOCK_DGRAM),
    ("tcp6", AF_INET6, SOCK_STREAM),
    ("udp6", AF_INET6, SOCK_DGRAM),
)


class MetricsSource(Protocol):
    """Source of the eight per-cycle host metrics."""

    async def cpu_load(self) -> MetricResult: ...

    def cpu_temperature(self) -> MetricResult: ...

    def memory(self) -> MetricResult: ...

    def swap(self) -> MetricResult: ...

    def load_average(self) -> MetricResult: ...

    def uptime(self) -> MetricResult: ...

    def boot_time(self) -> MetricResult: ...

    def socket_stats(self) -> MetricResult: ...


@dataclass(frozen=True)
class CpuBreakdown:
    """Share of the sampling window spent in each CPU state (0.0-1.0)."""

    user: float
    nice: float
    system: float
    interrupt: float
    idle: float


def cpu_breakdown(before: Any, after: Any) -> CpuBreakdown:
    """Compute the CPU time split between two ``psutil.cpu_times()`` readings.

    ``interrupt`` is irq + softirq and ``idle`` includes iowait; states the
    platform does not report count as zero.

    Raises:
        ValueError: If no CPU time elapsed between the two readings.
    """

    def delta(*names: str) -> float:
        total = 0.0
        for name in names:
            total += max(0.0, getattr(after, name, 0.0) - getattr(before, name, 0.0))
        return total

    user = delta("user")
    nice = delta("nice")
    system = delta("system")
    interrupt = delta("irq", "softirq", "interrupt")
    idle = delta("idle", "iowait")

    window = user + nice + system + interrupt + idle
    if window <= 0:
        raise ValueError("no CPU time elapsed during the sampling window")

    return CpuBreakdown(
        user=user / window,
        nice=nice / window,
        system=system / window,
        interrupt=interrupt / window,
        idle=idle / window,
    )


def format_cpu_load(breakdown: CpuBreakdown) -> str:
    """Render a CPU breakdown as whole percentages.

    >>> format_cpu_load(CpuBreakdown(0.50, 0.01, 0.10, 0.02, 0.37))
    '50% user, 1% nice, 10% system, 2% intr, 37% idle '
    """
    return (
        f"{round(breakdown.user * 100)}% user, "
        f"{round(breakdown.nice * 100)}% nice, "
        f"{round(breakdown.system * 100)}% system, "
        f"{round(breakdown.interrupt * 100)}% intr, "
        f"{round(breakdown.idle * 100)}% idle "
    )


def format_bytes(size: int) -> str:
    """Human readable byte count in binary units (``"1.5 GiB"``)."""
    value = float(size)
    for unit in ("B", "KiB", "MiB", "GiB", "TiB"):
        if abs(value) < 1024 or unit == "TiB":
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.1f} {unit}"
        value /= 1024
    return f"{value:.1f} PiB"  # pragma: no cover


def format_usage(used: int, total: int) -> str:
    return f"{format_bytes(used)} used / {format_bytes(total)} ({total} bytes) total"


def format_uptime(seconds: float) -> str:
    return str(timedelta(seconds=int(seconds)))


class PsutilMetricsSource:
    """MetricsSource reading the local host through psutil."""

    def __init__(self, cpu_sample_seconds: float = 1.0):
        self.cpu_sample_seconds = cpu_sample_seconds

    async def cpu_load(self) -> MetricResult:
        try:
            before = psutil.cpu_times()
        except Exception as exc:  # noqa: BLE001
            return self._failed("cpu_load", exc)

        await asyncio.sleep(self.cpu_sample_seconds)

        try:
            after = psutil.cpu_times()
            return MetricResult.success(format_cpu_load(cpu_breakdown(before, after)))
        except Exception as exc:  # noqa: BLE001
            return self._failed("cpu_load", exc)

    def cpu_temperature(self) -> MetricResult:
        sensors_temperatures = getattr(psutil, "sensors_temperatures", None)
        if sensors_temperatures is None:
            return MetricResult.failure("CPU temperature is not supported on this platform")
        try:
            temps = sensors_temperatures() or {}
        except Exception as exc:  # noqa: BLE001
            return self._failed("cpu_temperature", exc)

        names = [n for n in _CPU_SENSOR_NAMES if temps.get(n)]
        names += [n for n, entries in temps.items() if entries and n not in names]
        if not names:
            return MetricResult.failure("no temperature sensors found")
        return MetricResult.success(f"{temps[names[0]][0].current:.1f} °C")

    def memory(self) -> MetricResult:
        try:
            mem = psutil.virtual_memory()
        except Exception as exc:  # noqa: BLE001
            return self._failed("memory", exc)
        return MetricResult.success(format_usage(max(0, mem.total - mem.available), mem.total))

    def swap(self) -> MetricResult:
        try:
            swap = psutil.swap_memory()
        except Exception as exc:  # noqa: BLE001
            return self._failed("swap", exc)
        return MetricResult.success(format_usage(max(0, swap.total - swap.free), swap.total))

    def load_average(self) -> MetricResult:
        try:
            one, five, fifteen = psutil.getloadavg()
        except Exception as exc:  # noqa: BLE001
            return self._failed("load_average", exc)
        return MetricResult.success(f"{one:.2f} {five:.2f} {fifteen:.2f}")

    def uptime(self) -> MetricResult:
        try:
            seconds = time.time() - psutil.boot_time()
        except Exception as exc:  # noqa: BLE001
            return self._failed("uptime", exc)
        return MetricResult.success(format_uptime(max(0.0, seconds)))

    def boot_time(self) -> MetricResult:
        try:
            booted = datetime.fromtimestamp(psutil.boot_time()).astimezone()
        except Exception as exc:  # noqa: BLE001
            return self._failed("boot_time", exc)
        return MetricResult.success(booted.strftime("%Y-%m-%d %H:%M:%S %z"))

    def socket_stats(self) -> MetricResult:
        try:
            connections = psutil.net_connections(kind="inet")
        except Exception as exc:  # noqa: BLE001
            return self._failed("socket_stats", exc)

        counts = Counter((conn.family, conn.type) for conn in connections)
        return MetricResult.success(
            ", ".join(
                f"{label}: {counts[(family, sock_type)]} in use"
                for label, family, sock_type in _SOCKET_KINDS
            )
        )

    def _failed(self, metric: str, exc: BaseException) -> MetricResult:
        logger.debug("metric_read_failed", metric=metric, error=str(exc), error_type=type(exc).__name__)
        return MetricResult.failure(str(exc) or type(exc).__name__)
