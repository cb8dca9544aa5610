"""Unit tests for Telegram message formatting."""

from conftest import make_snapshot
from sysmonbot.gateway.formatters import (
    REPORT_FIELDS,
    format_for_telegram,
    format_snapshot_message,
)


class TestSnapshotMessage:
    def test_title_and_eight_named_sections(self, snapshot):
        lines = format_snapshot_message(snapshot).splitlines()

        assert lines[0] == "<b>System Resource Load</b>"
        headings = [line.split("</b>")[0].removeprefix("<b>") for line in lines[2:]]
        assert headings == [
            "CPU load",
            "CPU temp",
            "Memory",
            "Swap",
            "Load average",
            "Uptime",
            "Boot time",
            "System socket statistics",
        ]
        assert len(REPORT_FIELDS) == 8

    def test_values_are_html_escaped(self):
        snap = make_snapshot(socket_stats="error: <denied> & more")
        text = format_snapshot_message(snap)
        assert "<b>System socket statistics</b>: error: &lt;denied&gt; &amp; more" in text

    def test_error_field_rendered_inline(self):
        snap = make_snapshot(cpu_temperature="error: sensor unavailable")
        assert "<b>CPU temp</b>: error: sensor unavailable" in format_snapshot_message(snap)

    def test_multiline_value_collapsed(self):
        snap = make_snapshot(cpu_load="\nerror: no cpu")
        assert "<b>CPU load</b>: error: no cpu" in format_snapshot_message(snap)


class TestFormatForTelegram:
    def test_short_message_single_chunk(self):
        assert format_for_telegram("Short message") == ["Short message"]

    def test_long_message_split_on_lines(self):
        long_msg = "\n".join(["Line " + str(i) for i in range(2000)])
        chunks = format_for_telegram(long_msg)

        assert len(chunks) > 1
        assert all(len(chunk) <= 4096 for chunk in chunks)
        assert "\n".join(chunks) == long_msg

    def test_oversized_line_hard_wrapped(self):
        chunks = format_for_telegram("x" * 9000, max_length=4096)
        assert [len(c) for c in chunks] == [4096, 4096, 808]

    def test_hard_wrap_never_splits_entity(self):
        line = "x" * 8 + "&amp;" + "y" * 20
        chunks = format_for_telegram(line, max_length=10)

        assert "".join(chunks) == line
        assert all(len(c) <= 10 for c in chunks)
        assert "&amp;" in chunks[1]

    def test_hard_wrap_never_splits_tag(self):
        line = "a" * 7 + "<b>bold</b>" + "z" * 10
        chunks = format_for_telegram(line, max_length=9)

        assert "".join(chunks) == line
        assert chunks[0] == "a" * 7
        assert chunks[1].startswith("<b>")

    def test_escaped_report_value_wraps_cleanly(self):
        text = format_snapshot_message(make_snapshot(socket_stats="<&>" * 2000))
        chunks = format_for_telegram(text)

        for chunk in chunks:
            assert chunk.count("&") == chunk.count(";")
