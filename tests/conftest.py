"""Shared pytest fixtures for SysmonBot tests.

Provides a sample Snapshot, a scripted metrics source and a recording
gateway that stand in for psutil and the Telegram Bot API.
"""

from __future__ import annotations

import pytest

from sysmonbot.capabilities.observe import MetricResult, Snapshot


def make_snapshot(**overrides: str) -> Snapshot:
    """Build a Snapshot with plausible values, overriding selected fields."""
    values = {
        "cpu_load": "12% user, 0% nice, 3% system, 0% intr, 85% idle ",
        "cpu_temperature": "47.2 °C",
        "memory": "1.2 GiB used / 3.7 GiB (3972237312 bytes) total",
        "swap": "0 B used / 100.0 MiB (104853504 bytes) total",
        "load_average": "0.15 0.10 0.05",
        "uptime": "3 days, 4:05:06",
        "boot_time": "2024-01-01 08:00:00 +0000",
        "socket_stats": "tcp: 4 in use, udp: 2 in use, tcp6: 1 in use, udp6: 0 in use",
    }
    values.update(overrides)
    return Snapshot(**values)


class FakeMetricsSource:
    """MetricsSource returning fixed results; names in ``failing`` report errors."""

    def __init__(self, failing: tuple[str, ...] = (), raising: tuple[str, ...] = ()):
        self.failing = failing
        self.raising = raising
        self.cpu_load_calls = 0

    def _result(self, name: str, value: str) -> MetricResult:
        if name in self.raising:
            raise RuntimeError(f"{name} exploded")
        if name in self.failing:
            return MetricResult.failure(f"{name} unavailable")
        return MetricResult.success(value)

    async def cpu_load(self) -> MetricResult:
        self.cpu_load_calls += 1
        return self._result("cpu_load", "50% user, 1% nice, 10% system, 2% intr, 37% idle ")

    def cpu_temperature(self) -> MetricResult:
        return self._result("cpu_temperature", "47.2 °C")

    def memory(self) -> MetricResult:
        return self._result("memory", "1.0 GiB used / 2.0 GiB (2147483648 bytes) total")

    def swap(self) -> MetricResult:
        return self._result("swap", "0 B used / 0 B (0 bytes) total")

    def load_average(self) -> MetricResult:
        return self._result("load_average", "0.50 0.40 0.30")

    def uptime(self) -> MetricResult:
        return self._result("uptime", "1 day, 0:00:00")

    def boot_time(self) -> MetricResult:
        return self._result("boot_time", "2024-01-01 00:00:00 +0000")

    def socket_stats(self) -> MetricResult:
        return self._result("socket_stats", "tcp: 1 in use, udp: 0 in use, tcp6: 0 in use, udp6: 0 in use")


class FakeGateway:
    """Records messages and status updates instead of calling Telegram."""

    def __init__(self, send_ok: bool = True, status_error: Exception | None = None):
        self.send_ok = send_ok
        self.status_error = status_error
        self.messages: list[tuple[int, str, str | None]] = []
        self.statuses: list[str] = []

    async def send_message(self, chat_id: int, text: str, parse_mode: str | None = None) -> bool:
        self.messages.append((chat_id, text, parse_mode))
        return self.send_ok

    async def set_status(self, text: str) -> None:
        if self.status_error is not None:
            raise self.status_error
        self.statuses.append(text)


@pytest.fixture
def snapshot() -> Snapshot:
    return make_snapshot()


@pytest.fixture
def fake_source() -> FakeMetricsSource:
    return FakeMetricsSource()


@pytest.fixture
def fake_gateway() -> FakeGateway:
    return FakeGateway()
