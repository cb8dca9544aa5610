"""SysmonBot - host resource monitor that reports to a Telegram channel."""

__version__ = "0.1.0"
