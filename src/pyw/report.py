"""Assemble the report lines from sessions and association results."""

import os
import time

from pyw.config import Config
from pyw.formatting import format_interval, format_login_time, format_ticks, print_from
from pyw.models import UT_NAMESIZE, AssociationResult, LoginSession


def render_header(config: Config, uptime_text: str) -> list[str]:
    """Uptime line followed by the column titles."""
    titles = f"{'USER':<{config.user_len}} TTY      "
    if config.show_from:
        titles += f"{'FROM':<{config.from_len}}"
    if config.longform:
        titles += " LOGIN@   IDLE   JCPU   PCPU  WHAT"
    else:
        titles += "   IDLE WHAT"
    return [uptime_text, titles]


def idle_seconds(tty: str, now: float | None = None) -> int:
    """Seconds since the terminal device was last read, 0 if it can't be stat'ed."""
    if now is None:
        now = time.time()
    try:
        atime = os.stat(f"/dev/{tty}").st_atime
    except OSError:
        return 0
    return int(now - atime)


def render_session(
    session: LoginSession,
    result: AssociationResult,
    config: Config,
    hertz: int = 100,
    now: float | None = None,
) -> str:
    """One report line for a session whose login process was found."""
    if now is None:
        now = time.time()

    user = session.username[:UT_NAMESIZE]
    parts = [f"{user[: config.user_len]:<{config.user_len + 1}}", f"{session.tty[:8]:<9}"]

    if config.show_from:
        parts.append(print_from(session, config.ip_addresses, config.from_len))

    if config.longform:
        parts.append(format_login_time(session.start_time, now))

    if session.xdm:
        # Idle time is unknown for xdm logins
        parts.append(" ?xdm? ")
    else:
        parts.append(format_interval(idle_seconds(session.tty, now), 0, config.old_style))

    if config.longform:
        parts.append(format_ticks(result.jcpu, hertz, config.old_style))
        if result.pcpu > 0:
            parts.append(format_ticks(result.pcpu, hertz, config.old_style))
        else:
            parts.append("   ?   ")

    max_cmd = config.max_cmd
    if config.show_pids:
        pids = f" {session.leader_pid}/{result.best_pid}"
        parts.append(pids)
        max_cmd = 0 if len(pids) > max_cmd else max_cmd - len(pids)

    parts.append(f" {result.cmdline[:max_cmd]}")
    return "".join(parts)
