"""CLI entry point for pyw."""

import logging
import time

import click

from pyw import logging as pyw_log
from pyw.associate import associate
from pyw.config import Config
from pyw.errors import PywError
from pyw.formatting import format_uptime
from pyw.report import render_header, render_session
from pyw.sessions import matches_user, select_session_source
from pyw.snapshot import capture_snapshot, count_users, load_average, uptime


@click.command(context_settings={"help_option_names": ["--help"]})
@click.option("-c", "--container", is_flag=True, help="Show container uptime")
@click.option("-h", "--no-header", "no_header", is_flag=True, help="Do not print header")
@click.option(
    "-u", "--no-current", "no_current", is_flag=True, help="Ignore current process username"
)
@click.option("-s", "--short", is_flag=True, help="Short format")
@click.option("-f", "--from", "toggle_from", is_flag=True, help="Toggle remote hostname field")
@click.option("-o", "--old-style", "old_style", is_flag=True, help="Old style output")
@click.option(
    "-i",
    "--ip-addr",
    "ip_addr",
    is_flag=True,
    help="Display IP address instead of hostname (if possible)",
)
@click.option("-p", "--pids", is_flag=True, help="Show the PID(s) of processes in WHAT")
@click.option("--debug", is_flag=True, help="Log skipped sessions to stderr")
@click.version_option(None, "-V", "--version", package_name="pyw")
@click.argument("user", required=False)
def main(
    container: bool,
    no_header: bool,
    no_current: bool,
    short: bool,
    toggle_from: bool,
    old_style: bool,
    ip_addr: bool,
    pids: bool,
    debug: bool,
    user: str | None,
) -> None:
    """Show who is logged on and what they are doing."""
    pyw_log.configure(logging.DEBUG if debug else logging.WARNING)

    config = Config.build(
        container=container,
        header=not no_header,
        ignore_user=no_current,
        short=short,
        toggle_from=toggle_from,
        old_style=old_style,
        ip_addresses=ip_addr,
        show_pids=pids,
        match_user=user,
    )

    try:
        report(config)
    except PywError as exc:
        pyw_log.fatal(str(exc))
        raise SystemExit(exc.exit_code) from exc


def report(config: Config) -> None:
    """Print the whole report. Data source failures propagate as PywError."""
    snapshot = capture_snapshot()
    now = time.time()

    if config.header:
        uptime_text = format_uptime(now, uptime(config.container), count_users(), load_average())
        for line in render_header(config, uptime_text):
            click.echo(line)

    source = select_session_source()
    for session in source.sessions():
        if not matches_user(session, config.match_user):
            continue
        result = associate(session, snapshot, filter_uid=config.filter_uid)
        if not result.found:
            pyw_log.stale_session(session.username, session.tty, session.leader_pid)
            continue
        click.echo(render_session(session, result, config, snapshot.hertz, now))


if __name__ == "__main__":
    main()
