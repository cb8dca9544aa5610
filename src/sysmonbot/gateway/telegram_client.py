"""
Telegram Bot Client.

Wraps python-telegram-bot for the three things the monitor needs: posting
messages to a chat, setting the bot's visible status text, and telling an
event handler when the connection is ready or has resumed after a polling
failure.
"""

from typing import Optional, Protocol

import structlog
from telegram import Update
from telegram.ext import Application, TypeHandler

logger = structlog.get_logger(__name__)


class GatewayContext(Protocol):
    """Operations loops may perform against the connected gateway."""

    async def send_message(self, chat_id: int, text: str, parse_mode: Optional[str] = None) -> bool: ...

    async def set_status(self, text: str) -> None: ...


class GatewayEventHandler(Protocol):
    """Receives gateway lifecycle signals."""

    async def on_ready(self, context: GatewayContext) -> None: ...

    async def on_resumed(self, context: GatewayContext) -> None: ...


class TelegramClient:
    """Async Telegram Bot API integration driving a GatewayEventHandler."""

    def __init__(self, token: str, event_handler: GatewayEventHandler):
        """
        Initialize TelegramClient.

        Args:
            token: Telegram bot token from @BotFather
            event_handler: Receives on_ready / on_resumed signals
        """
        self.token = token
        self.event_handler = event_handler
        self.application: Optional[Application] = None
        self._connection_lost = False

    async def start(self):
        """Connect, start polling and signal readiness to the event handler."""
        logger.info("telegram_bot_starting")

        self.application = Application.builder().token(self.token).build()

        # Group -1 sees every update before any other handler
        self.application.add_handler(TypeHandler(Update, self._on_update), group=-1)

        await self.application.initialize()
        await self.application.start()
        await self.application.updater.start_polling(error_callback=self._on_polling_error)

        logger.info("telegram_bot_connected", username=self.application.bot.username)
        await self.event_handler.on_ready(self)

    async def stop(self):
        """Stop the bot gracefully."""
        if self.application:
            logger.info("telegram_bot_stopping")
            if self.application.updater and self.application.updater.running:
                await self.application.updater.stop()
            if self.application.running:
                await self.application.stop()
            await self.application.shutdown()
            logger.info("telegram_bot_stopped")

    async def send_message(self, chat_id: int, text: str, parse_mode: Optional[str] = None) -> bool:
        """
        Send message to a specific chat.

        Args:
            chat_id: Telegram chat or channel ID
            text: Message text to send
            parse_mode: Optional Telegram parse mode ("HTML", "MarkdownV2")

        Returns:
            True if successful, False otherwise
        """
        if self.application is None:
            logger.error("send_message_before_start", chat_id=chat_id)
            return False

        try:
            await self.application.bot.send_message(
                chat_id=chat_id,
                text=text,
                parse_mode=parse_mode,
            )
        except Exception as e:
            logger.error(
                "send_message_error",
                chat_id=chat_id,
                error=str(e),
                error_type=type(e).__name__
            )
            return False

        logger.debug("message_sent", chat_id=chat_id)
        await self._mark_healthy()
        return True

    async def set_status(self, text: str) -> None:
        """
        Set the bot's short description, shown on its profile.

        Raises:
            RuntimeError: If the client has not been started
            telegram.error.TelegramError: If the Bot API rejects the request
        """
        if self.application is None:
            raise RuntimeError("TelegramClient not started")
        await self.application.bot.set_my_short_description(short_description=text)
        await self._mark_healthy()

    def _on_polling_error(self, error) -> None:
        if not self._connection_lost:
            logger.warning("telegram_connection_lost", error=str(error), error_type=type(error).__name__)
        self._connection_lost = True

    async def _on_update(self, update: Update, context) -> None:
        await self._mark_healthy()

    async def _mark_healthy(self) -> None:
        if not self._connection_lost:
            return
        self._connection_lost = False
        logger.info("telegram_connection_resumed")
        try:
            await self.event_handler.on_resumed(self)
        except Exception as e:
            logger.error("resume_handler_error", error=str(e), error_type=type(e).__name__)
