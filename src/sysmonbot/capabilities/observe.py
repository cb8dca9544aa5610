"""Observability data models: per-metric results and the Snapshot record.

A sampling cycle produces one MetricReadings (eight tagged results, one per
metric). It is converted to text exactly once, into an immutable Snapshot,
which is what the history log persists and the notification sink renders.
"""

from dataclasses import asdict, dataclass, fields
from typing import Any, Optional


@dataclass(frozen=True)
class MetricResult:
    """Outcome of reading a single metric: a formatted value or an error."""

    value: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: str) -> "MetricResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str) -> "MetricResult":
        return cls(error=error or "unknown error")

    @property
    def ok(self) -> bool:
        return self.error is None

    def display(self) -> str:
        """Render as Snapshot field text."""
        if self.ok:
            return self.value or ""
        return f"error: {self.error}"


@dataclass(frozen=True)
class Snapshot:
    """One point-in-time collection of the eight formatted system metrics.

    Every field is either a formatted measurement or an inline
    ``"error: ..."`` string; a failing metric never invalidates the record.
    """

    cpu_load: str
    cpu_temperature: str
    memory: str
    swap: str
    load_average: str
    uptime: str
    boot_time: str
    socket_stats: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Any) -> "Snapshot":
        """Build a Snapshot from a decoded JSON object.

        Raises:
            ValueError: If ``data`` is not an object holding exactly the
                eight string fields.
        """
        if not isinstance(data, dict):
            raise ValueError(f"snapshot record must be an object, got {type(data).__name__}")
        names = snapshot_field_names()
        missing = [name for name in names if name not in data]
        if missing:
            raise ValueError(f"snapshot record is missing fields: {', '.join(missing)}")
        extra = sorted(set(data) - set(names))
        if extra:
            raise ValueError(f"snapshot record has unexpected fields: {', '.join(extra)}")
        for name in names:
            if not isinstance(data[name], str):
                raise ValueError(f"snapshot field '{name}' must be a string")
        return cls(**{name: data[name] for name in names})


@dataclass(frozen=True)
class MetricReadings:
    """Tagged results for the eight metrics of one sampling cycle."""

    cpu_load: MetricResult
    cpu_temperature: MetricResult
    memory: MetricResult
    swap: MetricResult
    load_average: MetricResult
    uptime: MetricResult
    boot_time: MetricResult
    socket_stats: MetricResult

    def failed_fields(self) -> list[str]:
        """Names of metrics that could not be read."""
        return [f.name for f in fields(self) if not getattr(self, f.name).ok]

    def to_snapshot(self) -> Snapshot:
        return Snapshot(**{f.name: getattr(self, f.name).display() for f in fields(self)})


def snapshot_field_names() -> tuple[str, ...]:
    """Snapshot field names in declaration order."""
    return tuple(f.name for f in fields(Snapshot))
