"""Observability subsystem for SysmonBot.

Host metric sampling (metrics_source), per-cycle Snapshot assembly
(snapshot_formatter) and process logging setup (log_config).
"""

from .log_config import configure_logging
from .metrics_source import MetricsSource, PsutilMetricsSource, format_cpu_load
from .snapshot_formatter import collect_readings, collect_snapshot

__all__ = [
    "MetricsSource",
    "PsutilMetricsSource",
    "collect_readings",
    "collect_snapshot",
    "configure_logging",
    "format_cpu_load",
]
