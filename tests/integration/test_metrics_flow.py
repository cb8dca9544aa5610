"""Integration tests: sample -> history log + channel report.

Uses the real psutil source and the real JSON history log; only the
Telegram Bot API is replaced by a recording gateway.
"""

import json

import pytest

from conftest import FakeGateway
from sysmonbot.capabilities.observe import snapshot_field_names
from sysmonbot.gateway.formatters import REPORT_FIELDS
from sysmonbot.observability.metrics_source import PsutilMetricsSource
from sysmonbot.persistence.history_log import HistoryLog
from sysmonbot.runtime.supervisor import LoopSupervisor


def _supervisor(history_path) -> LoopSupervisor:
    return LoopSupervisor(
        history_log=HistoryLog(history_path),
        metrics_source=PsutilMetricsSource(cpu_sample_seconds=0.1),
        channel_id=-100555,
    )


@pytest.mark.asyncio
async def test_real_host_cycle_persists_and_reports(tmp_path):
    history_path = tmp_path / "data" / "system_load.json"
    gateway = FakeGateway()

    outcome = await _supervisor(history_path).run_metrics_cycle(gateway)

    assert outcome.persisted and outcome.delivered
    document = json.loads(history_path.read_text(encoding="utf-8"))
    assert len(document) == 1
    assert set(document[0]) == set(snapshot_field_names())
    assert all(isinstance(value, str) and value for value in document[0].values())

    chat_id, text, _ = gateway.messages[0]
    assert chat_id == -100555
    for _, heading in REPORT_FIELDS:
        assert f"<b>{heading}</b>:" in text


@pytest.mark.asyncio
async def test_history_accumulates_across_restarts(tmp_path):
    history_path = tmp_path / "system_load.json"

    for _ in range(3):
        # a new supervisor per cycle stands in for a process restart
        await _supervisor(history_path).run_metrics_cycle(FakeGateway())

    snapshots = await HistoryLog(history_path).load()
    assert len(snapshots) == 3


@pytest.mark.asyncio
async def test_channel_outage_keeps_history_growing(tmp_path):
    history_path = tmp_path / "system_load.json"
    supervisor = _supervisor(history_path)
    down = FakeGateway(send_ok=False)

    first = await supervisor.run_metrics_cycle(down)
    second = await supervisor.run_metrics_cycle(down)

    assert not first.delivered and not second.delivered
    assert await HistoryLog(history_path).load() == [first.snapshot, second.snapshot]
