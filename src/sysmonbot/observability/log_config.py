"""structlog wiring for the bot process.

Events go to two handlers on the root logger: a human readable console
renderer on stderr and JSON lines in ``<directory>/<file_prefix>.log``,
rotated at midnight.
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import structlog

_SHARED_PROCESSORS = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.StackInfoRenderer(),
]


def configure_logging(directory: str | Path, file_prefix: str, level: str = "INFO") -> Path:
    """Route structlog events to the console and a daily rotated log file.

    Args:
        directory: Directory for log files (created if missing)
        file_prefix: Base name of the log file
        level: Minimum level name (DEBUG, INFO, ...)

    Returns:
        Path of the active log file.
    """
    log_dir = Path(directory)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / f"{file_prefix}.log"

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.dev.ConsoleRenderer(colors=False),
            ],
        )
    )

    file_handler = TimedRotatingFileHandler(log_file, when="midnight", backupCount=14, encoding="utf-8")
    file_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=_SHARED_PROCESSORS,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer(),
            ],
        )
    )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    root.addHandler(console_handler)
    root.addHandler(file_handler)
    root.setLevel(level)

    # python-telegram-bot logs every getUpdates request at INFO through httpx
    logging.getLogger("httpx").setLevel(logging.WARNING)

    structlog.configure(
        processors=_SHARED_PROCESSORS + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

    return log_file
