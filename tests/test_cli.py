import io
import shlex
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from conftest import make_tool
from sds_tools import cli
from sds_tools.config import DispatchConfig
from sds_tools.errors import InvalidPager
from sds_tools.paging import TerminalGeometry
from sds_tools.pipeline import StreamRole

SMALL = TerminalGeometry(rows=10, columns=80)
LINES = 3000


@pytest.fixture
def talker(bin_dir):
    """sds-talk prints LINES numbered lines, or as many as its argument says."""
    make_tool(
        bin_dir,
        "sds-talk",
        f"n = int(sys.argv[-1]) if len(sys.argv) > 1 else {LINES}\n"
        "for i in range(n):\n"
        "    sys.stdout.write('line %d\\n' % i)\n",
    )
    return b"".join(b"line %d\n" % i for i in range(LINES))


@pytest.fixture
def spawned(monkeypatch):
    """Every ChildProcess the dispatcher starts, in order."""
    children = []

    def recording(factory):
        def wrapper(*args, **kwargs):
            child = factory(*args, **kwargs)
            children.append(child)
            return child
        return wrapper

    monkeypatch.setattr(cli, "launch", recording(cli.launch))
    monkeypatch.setattr(cli, "open_pager", recording(cli.open_pager))
    return children


def _pager_config(pager: Path) -> DispatchConfig:
    return DispatchConfig(istty=False, pager=shlex.quote(str(pager)))


class TestRunSubcommand:
    def test_passthrough_without_terminal(self, talker):
        out = io.BytesIO()
        status = cli.run_subcommand("talk", [], DispatchConfig(istty=False), out=out)
        assert status == 0
        assert out.getvalue() == talker

    def test_short_output_is_not_paged(self, bin_dir, tmp_path, talker):
        pager = make_tool(bin_dir, "fake-pager", f"open({str(tmp_path / 'paged')!r}, 'wb').write(sys.stdin.buffer.read())")
        out = io.BytesIO()
        status = cli.run_subcommand("talk", ["3"], _pager_config(pager), out=out, geometry=SMALL)
        assert status == 0
        assert out.getvalue() == b"line 0\nline 1\nline 2\n"
        assert not (tmp_path / "paged").exists()

    def test_long_output_goes_to_pager(self, bin_dir, tmp_path, talker):
        paged = tmp_path / "paged"
        pager = make_tool(bin_dir, "fake-pager", f"open({str(paged)!r}, 'wb').write(sys.stdin.buffer.read())")
        out = io.BytesIO()
        status = cli.run_subcommand("talk", [], _pager_config(pager), out=out, geometry=SMALL)
        assert status == 0
        assert out.getvalue() == b""
        assert paged.read_bytes() == talker

    def test_unbuffered_subtool_still_pages(self, bin_dir, tmp_path, talker, monkeypatch):
        monkeypatch.setenv("PYTHONUNBUFFERED", "1")
        paged = tmp_path / "paged"
        pager = make_tool(bin_dir, "fake-pager", f"open({str(paged)!r}, 'wb').write(sys.stdin.buffer.read())")
        out = io.BytesIO()
        status = cli.run_subcommand("talk", [], _pager_config(pager), out=out, geometry=SMALL)
        assert status == 0
        assert out.getvalue() == b""
        assert paged.read_bytes() == talker

    def test_pager_quitting_early(self, bin_dir, talker, spawned):
        pager = make_tool(bin_dir, "quitter", "sys.stdin.buffer.readline()\nsys.exit(0)")
        status = cli.run_subcommand("talk", ["200000"], _pager_config(pager),
                                    out=io.BytesIO(), geometry=SMALL)
        assert status == 0
        assert [c.role for c in spawned] == [StreamRole.STDOUT, StreamRole.STDIN]
        assert all(c.reaped for c in spawned)

    def test_invalid_pager_setting(self, talker, spawned):
        config = DispatchConfig(istty=False, pager='less "')
        with pytest.raises(InvalidPager, match="No closing quotation"):
            cli.run_subcommand("talk", [], config, out=io.BytesIO(), geometry=SMALL)
        assert len(spawned) == 1 and spawned[0].reaped

    def test_subtool_status_is_returned(self, bin_dir):
        make_tool(bin_dir, "sds-broken", "sys.stderr.write('bad\\n')\nsys.exit(4)")
        assert cli.run_subcommand("broken", [], DispatchConfig(istty=False), out=io.BytesIO()) == 4


class TestMain:
    def test_no_arguments(self, capsys):
        assert cli.main([]) == -1
        assert "Usage: sds COMMAND ARG..." in capsys.readouterr().err

    def test_unknown_command(self, capsys):
        assert cli.main(["frobnicate"]) == -1
        err = capsys.readouterr().err
        assert "Invalid command 'frobnicate'" in err
        assert "dump" in err

    def test_missing_subtool_binary(self, bin_dir, monkeypatch, capsys):
        monkeypatch.setenv("PATH", str(bin_dir))
        assert cli.main(["diff", "a", "b"]) == -5
        assert "exec()ing 'sds-diff'" in capsys.readouterr().err


def test_exit_status():
    assert cli.exit_status(0) == 0
    assert cli.exit_status(255) == 255
    assert cli.exit_status(-15) == 143
