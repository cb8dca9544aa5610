"""Capability data models shared across subsystems."""

from .observe import MetricReadings, MetricResult, Snapshot, snapshot_field_names

__all__ = ["MetricReadings", "MetricResult", "Snapshot", "snapshot_field_names"]
