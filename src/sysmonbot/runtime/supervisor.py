"""Loop supervisor: starts the metrics and liveness loops exactly once.

The Telegram client calls ``on_ready`` after every successful connect. The
first call flips a lock-protected gate from NOT_STARTED to RUNNING and spawns
two independent background tasks; every later call is a no-op, so a
reconnect never doubles the loops.

Independent failure domains:
- metrics loop: every cycle samples one Snapshot, then appends it to the
  history log and posts it to the channel concurrently. A failure in one
  stage is logged and never blocks the other.
- liveness loop: sets the bot status to the current time.
Neither loop ever lets a cycle error escape; both run until process exit.
"""

from __future__ import annotations

import asyncio
import enum
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Coroutine, Optional

import structlog

from ..capabilities.observe import Snapshot
from ..gateway.notification_sink import NotificationSink
from ..gateway.telegram_client import GatewayContext
from ..observability.metrics_source import MetricsSource
from ..observability.snapshot_formatter import collect_snapshot
from ..persistence.history_log import (
    HistoryLog,
    HistoryLogCorruptError,
    HistoryLogIOError,
)

logger = structlog.get_logger(__name__)


class LoopState(enum.Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"


@dataclass(frozen=True)
class CycleOutcome:
    """Result of one metrics cycle; both stages saw the same Snapshot."""

    snapshot: Snapshot
    persisted: bool
    delivered: bool


def format_status_time(moment: datetime) -> str:
    """RFC 2822 timestamp used as the bot's status text.

    >>> format_status_time(datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc))
    'Mon, 01 Jan 2024 12:00:00 +0000'
    """
    return format_datetime(moment)


class LoopSupervisor:
    """Owns the metrics loop and the liveness loop."""

    def __init__(
        self,
        history_log: HistoryLog,
        metrics_source: MetricsSource,
        channel_id: int,
        metrics_interval_seconds: float = 120,
        liveness_interval_seconds: float = 60,
    ):
        self.history_log = history_log
        self.metrics_source = metrics_source
        self.channel_id = channel_id
        self.metrics_interval_seconds = metrics_interval_seconds
        self.liveness_interval_seconds = liveness_interval_seconds
        self.tasks: list[asyncio.Task] = []
        self._state = LoopState.NOT_STARTED
        self._state_lock = threading.Lock()
        self._shutting_down = False

    @property
    def state(self) -> LoopState:
        return self._state

    async def on_ready(self, context: GatewayContext) -> None:
        """Spawn both loops on the first call; ignore every later call."""
        if not self._try_start():
            logger.info("loops_already_running")
            return

        self.tasks = [
            self._spawn(self._metrics_loop(context), "metrics-loop"),
            self._spawn(self._liveness_loop(context), "liveness-loop"),
        ]
        logger.info(
            "loops_started",
            metrics_interval_seconds=self.metrics_interval_seconds,
            liveness_interval_seconds=self.liveness_interval_seconds,
        )

    async def on_resumed(self, context: GatewayContext) -> None:
        logger.info("gateway_resumed", state=self._state.value)

    async def shutdown(self) -> None:
        """Cancel the loops at process exit."""
        self._shutting_down = True
        for task in self.tasks:
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)
            logger.info("loops_cancelled", count=len(self.tasks))

    def _try_start(self) -> bool:
        with self._state_lock:
            if self._state is LoopState.RUNNING:
                return False
            self._state = LoopState.RUNNING
            return True

    def _spawn(self, coro: Coroutine, name: str) -> asyncio.Task:
        task = asyncio.create_task(coro, name=name)
        task.add_done_callback(self._on_loop_done)
        return task

    def _on_loop_done(self, task: asyncio.Task) -> None:
        if self._shutting_down:
            return
        if task.cancelled():
            logger.warning("loop_cancelled_unexpectedly", loop=task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("loop_crashed", loop=task.get_name(), error=str(exc))
        else:
            logger.warning("loop_exited_unexpectedly", loop=task.get_name())

    # ------------------------------------------------------------------
    # Metrics loop
    # ------------------------------------------------------------------

    async def _metrics_loop(self, context: GatewayContext) -> None:
        logger.info("metrics_loop_started", interval_seconds=self.metrics_interval_seconds)
        while True:
            try:
                await self.run_metrics_cycle(context)
            except Exception as exc:  # noqa: BLE001
                logger.error("metrics_cycle_failed", error=str(exc), exc_info=True)
            await asyncio.sleep(self.metrics_interval_seconds)

    async def run_metrics_cycle(self, context: GatewayContext) -> CycleOutcome:
        """Sample once, then persist and deliver the same Snapshot concurrently."""
        snapshot = await collect_snapshot(self.metrics_source)
        persisted, delivered = await asyncio.gather(
            self._persist(snapshot),
            self._deliver(NotificationSink(context), snapshot),
        )
        logger.info("metrics_cycle_complete", persisted=persisted, delivered=delivered)
        return CycleOutcome(snapshot=snapshot, persisted=persisted, delivered=delivered)

    async def _persist(self, snapshot: Snapshot) -> bool:
        try:
            await self.history_log.append(snapshot)
        except HistoryLogCorruptError as exc:
            logger.error("history_log_corrupt", stage="history", path=str(exc.path), error=str(exc))
            return False
        except HistoryLogIOError as exc:
            logger.error("history_append_failed", stage="history", path=str(exc.path), error=str(exc))
            return False
        except Exception as exc:  # noqa: BLE001
            logger.error("history_append_failed", stage="history", error=str(exc), exc_info=True)
            return False
        return True

    async def _deliver(self, sink: NotificationSink, snapshot: Snapshot) -> bool:
        try:
            return await sink.deliver(snapshot, self.channel_id)
        except Exception as exc:  # noqa: BLE001
            logger.error("snapshot_delivery_failed", stage="delivery", error=str(exc), exc_info=True)
            return False

    # ------------------------------------------------------------------
    # Liveness loop
    # ------------------------------------------------------------------

    async def _liveness_loop(self, context: GatewayContext) -> None:
        logger.info("liveness_loop_started", interval_seconds=self.liveness_interval_seconds)
        while True:
            await self.run_liveness_cycle(context)
            await asyncio.sleep(self.liveness_interval_seconds)

    async def run_liveness_cycle(self, context: GatewayContext, now: Optional[datetime] = None) -> bool:
        """Set the status text to the current time; False if the update failed."""
        status = format_status_time(now or datetime.now(timezone.utc))
        try:
            await context.set_status(status)
        except Exception as exc:  # noqa: BLE001
            logger.error("status_update_failed", stage="liveness", error=str(exc), error_type=type(exc).__name__)
            return False
        logger.debug("status_updated", status=status)
        return True
