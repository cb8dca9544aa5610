"""SysmonBot entry point.

Startup order: load configuration (fatal on any problem), wire logging,
connect to Telegram, then run until SIGINT/SIGTERM. The loop supervisor
starts its background loops from the client's first ready signal.
"""

import asyncio
import contextlib
import signal
import sys
from pathlib import Path
from typing import Optional

import structlog
from telegram.error import TelegramError

from .config.manager import ConfigManager, ConfigurationError, initialize_config
from .gateway.telegram_client import TelegramClient
from .observability.log_config import configure_logging
from .observability.metrics_source import PsutilMetricsSource
from .persistence.history_log import HistoryLog
from .runtime.supervisor import LoopSupervisor

logger = structlog.get_logger(__name__)


def build_supervisor(config: ConfigManager) -> LoopSupervisor:
    return LoopSupervisor(
        history_log=HistoryLog(config.get("history.path")),
        metrics_source=PsutilMetricsSource(cpu_sample_seconds=config.get("metrics.cpu_sample_seconds")),
        channel_id=config.get("telegram.channel_id"),
        metrics_interval_seconds=config.get("scheduler.metrics_interval_seconds"),
        liveness_interval_seconds=config.get("scheduler.liveness_interval_seconds"),
    )


async def run(config: ConfigManager) -> None:
    """Connect and serve until a termination signal arrives."""
    supervisor = build_supervisor(config)
    client = TelegramClient(token=config.get("telegram.bot_token"), event_handler=supervisor)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop_event.set)

    try:
        await client.start()
        await stop_event.wait()
        logger.info("shutdown_requested")
    finally:
        await supervisor.shutdown()
        await client.stop()


def main(config_file: Optional[Path] = None, env_file: Optional[Path] = None) -> int:
    try:
        config = initialize_config(config_file, env_file)
    except ConfigurationError as e:
        logger.error("startup_config_error", error=str(e))
        print(f"sysmonbot: {e}", file=sys.stderr)
        return 1

    try:
        log_file = configure_logging(
            config.get("logging.directory"),
            config.get("logging.file_prefix"),
            config.get("logging.level"),
        )
    except OSError as e:
        logger.error("startup_logging_error", directory=config.get("logging.directory"), error=str(e))
        print(f"sysmonbot: cannot open log file in {config.get('logging.directory')}: {e}", file=sys.stderr)
        return 1
    logger.info("sysmonbot_starting", log_file=str(log_file), history_path=config.get("history.path"))

    try:
        asyncio.run(run(config))
    except TelegramError as e:
        logger.error("gateway_connection_failed", error=str(e), error_type=type(e).__name__)
        return 1
    except KeyboardInterrupt:
        pass

    logger.info("sysmonbot_stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
