import io
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from sds_tools.errors import InvalidPager, RelayError, SpawnError
from sds_tools.paging import (
    RelayOutcome,
    TerminalGeometry,
    open_pager,
    pager_candidates,
    relay,
    should_page,
)

GEOM = TerminalGeometry(rows=24, columns=80)


class TestShouldPage:
    def test_exactly_usable_rows_fit(self):
        data = b"short line\n" * (GEOM.rows - 2)
        assert should_page(data, GEOM) is False

    def test_one_more_line_pages(self):
        data = b"short line\n" * (GEOM.rows - 1)
        assert should_page(data, GEOM) is True

    def test_empty_block(self):
        assert should_page(b"", GEOM) is False

    def test_long_lines_wrap(self):
        # each 200-byte line takes three rows on an 80-column terminal
        data = (b"x" * 200 + b"\n") * 8
        assert should_page(data, GEOM) is True
        assert should_page((b"x" * 200 + b"\n") * 5, GEOM) is False

    def test_color_escapes_take_no_room(self):
        data = b"\x1b[32;1m\x1b[0m\x1b[36m" * 2000
        assert should_page(data, GEOM) is False

    def test_escapes_do_not_widen_lines(self):
        line = b"\x1b[34m" + b"v" * 70 + b"\x1b[0m\n"
        assert should_page(line * (GEOM.rows - 2), GEOM) is False

    def test_cursor_and_osc_sequences_are_zero_width(self):
        data = b"\x1b[2J\x1b[10;5H\x1b]0;title\x07\x1b]8;;http://x\x1b\\\x1b(B" * 2000
        assert should_page(data, GEOM) is False

    def test_truncated_escape_at_block_end(self):
        assert should_page(b"abc\n\x1b[3", GEOM) is False

    def test_tiny_terminal(self):
        assert should_page(b"a\n", TerminalGeometry(rows=2, columns=80)) is True


class TestPagerCandidates:
    def test_default_chain(self):
        assert pager_candidates(None) == [["less", "-R"], ["more"]]
        assert pager_candidates("  ") == [["less", "-R"], ["more"]]

    def test_configured_less_gets_raw_flag(self):
        assert pager_candidates("less") == [["less", "-R"]]
        assert pager_candidates("/usr/bin/less -S") == [["/usr/bin/less", "-S", "-R"]]

    def test_configured_other_pager_untouched(self):
        assert pager_candidates("most") == [["most"]]

    def test_unavailable_pager(self, bin_dir, monkeypatch):
        monkeypatch.setenv("PATH", str(bin_dir))
        with pytest.raises(SpawnError, match="no-such-pager"):
            open_pager("no-such-pager")

    def test_unbalanced_quote_is_reported(self):
        with pytest.raises(InvalidPager, match="invalid PAGER 'less \"': No closing quotation") as err:
            pager_candidates('less "')
        assert err.value.exit_code == -5


class _ClosedSink(io.BytesIO):
    def __init__(self, error):
        super().__init__()
        self.error = error

    def write(self, data):
        raise self.error


class _FailingSource(io.BytesIO):
    def read1(self, size=-1):
        raise OSError(5, "Input/output error")


class TestRelay:
    def test_forwards_everything_in_order(self):
        source = io.BytesIO(b"".join(b"%05d\n" % i for i in range(5000)))
        sink = io.BytesIO()
        outcome = relay(b"first\n", source, sink, block_size=512)
        assert outcome is RelayOutcome.COMPLETE
        assert sink.getvalue() == b"first\n" + source.getvalue()

    def test_empty_first_block_means_no_output(self):
        sink = io.BytesIO()
        assert relay(b"", io.BytesIO(b""), sink) is RelayOutcome.COMPLETE
        assert sink.getvalue() == b""

    def test_closed_consumer_drains_source(self):
        source = io.BytesIO(b"x" * 100_000)
        outcome = relay(b"head", source, _ClosedSink(BrokenPipeError()), block_size=4096)
        assert outcome is RelayOutcome.CLOSED_EARLY
        assert source.read() == b""

    def test_other_write_failures_are_fatal(self):
        source = io.BytesIO(b"y" * 10_000)
        with pytest.raises(RelayError, match="writing output from command"):
            relay(b"head", source, _ClosedSink(OSError(28, "No space left on device")))
        assert source.read() == b""

    def test_source_read_failure_is_not_a_write_failure(self):
        sink = io.BytesIO()
        with pytest.raises(OSError, match="Input/output error"):
            relay(b"head", _FailingSource(), sink)
        assert sink.getvalue() == b"head"
