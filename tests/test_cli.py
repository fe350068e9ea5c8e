"""Tests for the pyw command line."""

from unittest.mock import patch

import pytest
import structlog
from click.testing import CliRunner

from pyw.cli import main
from pyw.errors import SessionSourceError, SnapshotError, UptimeError
from pyw.models import LoginSession, ProcessRecord, ProcessSnapshot

PTS3 = 34819


class FakeSource:
    def __init__(self, sessions):
        self._sessions = sessions

    def sessions(self):
        return iter(self._sessions)


def record(pid, start_time, *, pgrp=1, tpgid=2, cmdline="-bash", ticks=100):
    return ProcessRecord(
        pid=pid,
        tgid=pid,
        euid=1000,
        ruid=1000,
        tty=PTS3,
        pgrp=pgrp,
        tpgid=tpgid,
        cpu_ticks=ticks,
        start_time=start_time,
        cmdline=cmdline,
    )


SNAPSHOT = ProcessSnapshot(
    records=(
        record(100, 50),
        record(200, 80, pgrp=200, tpgid=200, cmdline="vim notes"),
    ),
    hertz=100,
)

ALICE = LoginSession(
    username="alice",
    uid=1000,
    tty="pts/3",
    leader_pid=100,
    start_time=1_700_000_000.0,
    host=b"example.org",
)
STALE = LoginSession(
    username="bob", uid=1000, tty="pts/4", leader_pid=999, start_time=1_700_000_000.0
)


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner(env={"COLUMNS": "200"})


@pytest.fixture(autouse=True)
def data_sources():
    """Replace the live system with a fixed snapshot and session list."""
    with (
        patch("pyw.cli.capture_snapshot", return_value=SNAPSHOT),
        patch("pyw.cli.uptime", return_value=3600.0),
        patch("pyw.cli.count_users", return_value=2),
        patch("pyw.cli.load_average", return_value=(0.5, 0.25, 0.0)),
        patch("pyw.cli.select_session_source", return_value=FakeSource([ALICE, STALE])),
        patch("pyw.associate.resolve_tty_device", return_value=PTS3),
        patch("pyw.report.idle_seconds", return_value=0),
    ):
        yield
    structlog.reset_defaults()


class TestReport:
    """Tests for the report output."""

    def test_full_report(self, runner: CliRunner) -> None:
        """Header, column titles and one line per live session."""
        result = runner.invoke(main, [])

        assert result.exit_code == 0
        lines = result.output.splitlines()
        assert " up  1:00,  2 users,  load average: 0.50, 0.25, 0.00" in lines[0]
        assert lines[1].startswith("USER     TTY      FROM")
        assert len(lines) == 3
        assert lines[2].startswith("alice    pts/3    example.org")
        assert lines[2].endswith(" vim notes")

    def test_stale_session_omitted(self, runner: CliRunner) -> None:
        """Sessions whose login process is gone print nothing."""
        result = runner.invoke(main, ["-h"])

        assert result.exit_code == 0
        assert "bob" not in result.output

    def test_no_header(self, runner: CliRunner) -> None:
        """-h suppresses the uptime and title lines."""
        result = runner.invoke(main, ["-h"])

        assert result.exit_code == 0
        assert result.output.splitlines()[0].startswith("alice")

    def test_user_filter(self, runner: CliRunner) -> None:
        """A user argument limits the report to that user."""
        result = runner.invoke(main, ["-h", "carol"])

        assert result.exit_code == 0
        assert result.output == ""

    def test_short_without_from(self, runner: CliRunner) -> None:
        """-s -f gives the narrow layout."""
        result = runner.invoke(main, ["-s", "-f"])

        assert result.exit_code == 0
        assert result.output.splitlines()[1] == "USER     TTY         IDLE WHAT"
        assert "example.org" not in result.output

    def test_pids(self, runner: CliRunner) -> None:
        """-p shows the leader and best process ids."""
        result = runner.invoke(main, ["-h", "-p"])

        assert " 100/200 vim notes" in result.output

    def test_help_is_long_option_only(self, runner: CliRunner) -> None:
        """--help prints usage; -h is reserved for --no-header."""
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "--no-header" in result.output
        assert "--ip-addr" in result.output


class TestFailures:
    """Tests for fatal data source errors."""

    def test_snapshot_failure(self, runner: CliRunner) -> None:
        """An unreadable process table exits 1 before any report output."""
        with patch("pyw.cli.capture_snapshot", side_effect=SnapshotError("no /proc")):
            result = runner.invoke(main, [])

        assert result.exit_code == 1
        assert "USER" not in result.output
        assert "alice" not in result.output

    def test_uptime_failure(self, runner: CliRunner) -> None:
        """A missing uptime exits 1."""
        with patch("pyw.cli.uptime", side_effect=UptimeError("Cannot get system uptime")):
            result = runner.invoke(main, [])

        assert result.exit_code == 1
        assert "alice" not in result.output

    def test_uptime_not_needed_without_header(self, runner: CliRunner) -> None:
        """-h never asks for the uptime."""
        with patch("pyw.cli.uptime", side_effect=UptimeError("Cannot get system uptime")):
            result = runner.invoke(main, ["-h"])

        assert result.exit_code == 0

    def test_session_source_failure(self, runner: CliRunner) -> None:
        """An unreadable session registry exits 1."""
        with patch(
            "pyw.cli.select_session_source",
            return_value=FailingSource(),
        ):
            result = runner.invoke(main, ["-h"])

        assert result.exit_code == 1

    def test_bad_width_warns_but_runs(self, runner: CliRunner) -> None:
        """A bad PROCPS_USERLEN is a warning, not an error."""
        result = runner.invoke(main, ["-h"], env={"PROCPS_USERLEN": "3"})

        assert result.exit_code == 0
        assert "alice" in result.output


class FailingSource:
    def sessions(self):
        raise SessionSourceError("error getting sessions")
