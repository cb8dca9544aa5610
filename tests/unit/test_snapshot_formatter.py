"""Unit tests for per-cycle Snapshot assembly."""

import pytest

from conftest import FakeMetricsSource
from sysmonbot.capabilities.observe import Snapshot, snapshot_field_names
from sysmonbot.observability.snapshot_formatter import collect_readings, collect_snapshot


@pytest.mark.asyncio
async def test_collect_snapshot_all_metrics_ok(fake_source):
    snap = await collect_snapshot(fake_source)

    assert isinstance(snap, Snapshot)
    assert snap.cpu_load == "50% user, 1% nice, 10% system, 2% intr, 37% idle "
    assert snap.load_average == "0.50 0.40 0.30"
    assert fake_source.cpu_load_calls == 1


@pytest.mark.asyncio
async def test_single_failure_is_isolated():
    source = FakeMetricsSource(failing=("cpu_temperature",))

    readings = await collect_readings(source)
    snap = readings.to_snapshot()

    assert readings.failed_fields() == ["cpu_temperature"]
    assert snap.cpu_temperature == "error: cpu_temperature unavailable"
    assert snap.memory == "1.0 GiB used / 2.0 GiB (2147483648 bytes) total"


@pytest.mark.asyncio
async def test_every_metric_failing_still_yields_snapshot():
    source = FakeMetricsSource(failing=snapshot_field_names())

    snap = await collect_snapshot(source)

    for name in snapshot_field_names():
        assert getattr(snap, name) == f"error: {name} unavailable"


@pytest.mark.asyncio
async def test_raising_accessors_become_field_errors():
    source = FakeMetricsSource(raising=("cpu_load", "socket_stats"))

    readings = await collect_readings(source)

    assert readings.failed_fields() == ["cpu_load", "socket_stats"]
    assert readings.cpu_load.display() == "error: cpu_load exploded"
    assert readings.uptime.ok
