"""Deliver Snapshots to the monitoring channel."""

from __future__ import annotations

import structlog
from telegram.constants import ParseMode

from ..capabilities.observe import Snapshot
from .formatters import format_for_telegram, format_snapshot_message
from .telegram_client import GatewayContext

logger = structlog.get_logger(__name__)


class NotificationSink:
    """Render a Snapshot as a report message and post it once, without retry."""

    def __init__(self, gateway: GatewayContext):
        self.gateway = gateway

    async def deliver(self, snapshot: Snapshot, channel_id: int) -> bool:
        """Post the report for ``snapshot`` to ``channel_id``.

        Returns:
            True if every message part was accepted, False otherwise.
        """
        chunks = format_for_telegram(format_snapshot_message(snapshot))
        for index, chunk in enumerate(chunks):
            try:
                sent = await self.gateway.send_message(channel_id, chunk, parse_mode=ParseMode.HTML)
            except Exception as exc:  # noqa: BLE001
                logger.error(
                    "snapshot_delivery_error",
                    channel_id=channel_id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                sent = False
            if not sent:
                logger.error(
                    "snapshot_delivery_failed",
                    channel_id=channel_id,
                    part=index + 1,
                    parts=len(chunks),
                )
                return False

        logger.info("snapshot_delivered", channel_id=channel_id, parts=len(chunks))
        return True
