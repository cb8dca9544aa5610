"""
Telegram message formatting utilities.

Renders Snapshots into the report message and splits long text for
Telegram's length limit.
"""

from html import escape

from ..capabilities.observe import Snapshot

REPORT_TITLE = "System Resource Load"

# (Snapshot attribute, section heading) in display order
REPORT_FIELDS = (
    ("cpu_load", "CPU load"),
    ("cpu_temperature", "CPU temp"),
    ("memory", "Memory"),
    ("swap", "Swap"),
    ("load_average", "Load average"),
    ("uptime", "Uptime"),
    ("boot_time", "Boot time"),
    ("socket_stats", "System socket statistics"),
)


def format_snapshot_message(snapshot: Snapshot) -> str:
    """
    Render a Snapshot as an HTML report with one named section per metric.

    Args:
        snapshot: The snapshot to render

    Returns:
        Message text for parse_mode=HTML, title on the first line
    """
    lines = [f"<b>{REPORT_TITLE}</b>", ""]
    for attr, heading in REPORT_FIELDS:
        value = " ".join(getattr(snapshot, attr).split())
        lines.append(f"<b>{heading}</b>: {escape(value)}")
    return "\n".join(lines)


def format_for_telegram(response: str, max_length: int = 4096) -> list[str]:
    """
    Split long responses for Telegram's 4096-character limit.

    Args:
        response: The response text to format
        max_length: Maximum length per message (default: 4096)

    Returns:
        List of message chunks, each under max_length characters

    Examples:
        >>> format_for_telegram("Short message")
        ['Short message']

        >>> long_msg = "\\n".join(["Line " + str(i) for i in range(200)])
        >>> chunks = format_for_telegram(long_msg)
        >>> all(len(chunk) <= 4096 for chunk in chunks)
        True
    """
    if len(response) <= max_length:
        return [response]

    messages = []
    current = ""

    # Split on newlines to preserve formatting
    for line in response.split("\n"):
        # A single line longer than the limit is hard-wrapped
        while len(line) > max_length:
            if current:
                messages.append(current)
                current = ""
            cut = _safe_cut(line, max_length)
            messages.append(line[:cut])
            line = line[cut:]

        if len(current) + len(line) + 1 > max_length:
            if current:
                messages.append(current)
            current = line
        else:
            current += "\n" + line if current else line

    if current:
        messages.append(current)

    return messages


def _safe_cut(line: str, max_length: int) -> int:
    """Largest cut point <= max_length that is outside an HTML tag or entity."""
    head = line[:max_length]
    cut = max_length
    tag_start = head.rfind("<")
    if tag_start > head.rfind(">"):
        cut = tag_start
    entity_start = head.rfind("&")
    if entity_start > head.rfind(";"):
        cut = min(cut, entity_start)
    return cut if cut > 0 else max_length
