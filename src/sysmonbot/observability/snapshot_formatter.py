"""Assemble one Snapshot per sampling cycle from a MetricsSource.

The CPU load accessor is awaited while the seven point samples run in a
worker thread, so the one-second CPU window overlaps with the blocking
psutil calls. Assembly cannot fail: an accessor that raises despite its
contract only turns its own field into an error.
"""

import asyncio
from typing import Awaitable, Callable

import structlog

from ..capabilities.observe import MetricReadings, MetricResult, Snapshot
from .metrics_source import MetricsSource

logger = structlog.get_logger(__name__)

_POINT_SAMPLES = (
    "cpu_temperature",
    "memory",
    "swap",
    "load_average",
    "uptime",
    "boot_time",
    "socket_stats",
)


def _read(name: str, accessor: Callable[[], MetricResult]) -> MetricResult:
    try:
        return accessor()
    except Exception as exc:  # noqa: BLE001
        logger.warning("metric_accessor_raised", metric=name, error=str(exc), error_type=type(exc).__name__)
        return MetricResult.failure(str(exc) or type(exc).__name__)


async def _read_async(name: str, accessor: Callable[[], Awaitable[MetricResult]]) -> MetricResult:
    try:
        return await accessor()
    except Exception as exc:  # noqa: BLE001
        logger.warning("metric_accessor_raised", metric=name, error=str(exc), error_type=type(exc).__name__)
        return MetricResult.failure(str(exc) or type(exc).__name__)


def _read_point_samples(source: MetricsSource) -> dict[str, MetricResult]:
    return {name: _read(name, getattr(source, name)) for name in _POINT_SAMPLES}


async def collect_readings(source: MetricsSource) -> MetricReadings:
    """Read all eight metrics from ``source``.

    Returns:
        MetricReadings with one tagged result per metric.
    """
    cpu_load, point_samples = await asyncio.gather(
        _read_async("cpu_load", source.cpu_load),
        asyncio.to_thread(_read_point_samples, source),
    )
    readings = MetricReadings(cpu_load=cpu_load, **point_samples)

    failed = readings.failed_fields()
    if failed:
        logger.info("metrics_partially_unavailable", failed=failed)
    return readings


async def collect_snapshot(source: MetricsSource) -> Snapshot:
    """Sample ``source`` once and render the readings into a Snapshot."""
    readings = await collect_readings(source)
    return readings.to_snapshot()
