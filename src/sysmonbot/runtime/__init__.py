"""
Runtime module.

Loop supervision for the metrics and liveness background tasks.
"""

from .supervisor import CycleOutcome, LoopState, LoopSupervisor, format_status_time

__all__ = ["CycleOutcome", "LoopState", "LoopSupervisor", "format_status_time"]
