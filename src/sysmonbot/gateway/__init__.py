"""
Telegram Gateway module.

Connects to the Telegram Bot API, signals readiness to the loop supervisor
and delivers Snapshot reports to the monitoring channel.
"""

from .formatters import format_for_telegram, format_snapshot_message
from .notification_sink import NotificationSink
from .telegram_client import GatewayContext, GatewayEventHandler, TelegramClient

__all__ = [
    "GatewayContext",
    "GatewayEventHandler",
    "NotificationSink",
    "TelegramClient",
    "format_for_telegram",
    "format_snapshot_message",
]
