"""Run configuration for pyw."""

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass

from pyw import logging as pyw_log
from pyw.models import MAX_CMD_WIDTH, UT_HOSTSIZE, UT_NAMESIZE

MIN_CMD_WIDTH = 7
MIN_FIELD_LEN = 8
DEFAULT_USER_LEN = 8
DEFAULT_FROM_LEN = 16

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _atoi(value: str) -> int:
    """Leading integer of ``value``, 0 if there is none."""
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else 0


def _clamp_cmd_width(width: int) -> int:
    return max(MIN_CMD_WIDTH, min(width, MAX_CMD_WIDTH))


def _env_length(environ: Mapping[str, str], variable: str, high: int, default: int) -> int:
    """Column width from the environment, or ``default`` (with a warning) if out of range."""
    raw = environ.get(variable)
    if raw is None:
        return default
    value = _atoi(raw)
    if value < MIN_FIELD_LEN or value > high:
        pyw_log.length_ignored(variable, MIN_FIELD_LEN, high, default)
        return default
    return value


def terminal_columns(environ: Mapping[str, str] = os.environ) -> int:
    """Width of the terminal on stdout, else $COLUMNS, else MAX_CMD_WIDTH."""
    try:
        columns = os.get_terminal_size(1).columns
    except OSError:
        columns = 0
    if columns > 0:
        return columns
    if "COLUMNS" in environ:
        return _atoi(environ["COLUMNS"])
    return MAX_CMD_WIDTH


@dataclass(frozen=True)
class Config:
    """Everything that shapes one report. Passed explicitly, never global."""

    container: bool = False
    header: bool = True
    ignore_user: bool = False  # Don't require the session owner's uid on the best process
    longform: bool = True  # LOGIN@, JCPU and PCPU columns
    show_from: bool = True
    old_style: bool = False  # Legacy interval text only
    ip_addresses: bool = False
    show_pids: bool = False
    match_user: str | None = None
    user_len: int = DEFAULT_USER_LEN
    from_len: int = DEFAULT_FROM_LEN
    max_cmd: int = 80

    @property
    def filter_uid(self) -> bool:
        return not self.ignore_user

    @classmethod
    def build(
        cls,
        *,
        container: bool = False,
        header: bool = True,
        ignore_user: bool = False,
        short: bool = False,
        toggle_from: bool = False,
        old_style: bool = False,
        ip_addresses: bool = False,
        show_pids: bool = False,
        match_user: str | None = None,
        environ: Mapping[str, str] | None = None,
        columns: int | None = None,
    ) -> "Config":
        """
        Build a Config from command line switches and the environment.

        Args:
            toggle_from: Flip the FROM column (shown by default).
            ip_addresses: Show addresses in FROM; forces the column on.
            environ: Environment to read PROCPS_USERLEN / PROCPS_FROMLEN /
                COLUMNS from. Defaults to os.environ.
            columns: Total output width. Detected from the terminal if None.
        """
        if environ is None:
            environ = os.environ

        show_from = not toggle_from
        if ip_addresses:
            show_from = True
        longform = not short

        user_len = _env_length(environ, "PROCPS_USERLEN", UT_NAMESIZE, DEFAULT_USER_LEN)
        from_len = _env_length(environ, "PROCPS_FROMLEN", UT_HOSTSIZE, DEFAULT_FROM_LEN)

        if columns is None:
            columns = terminal_columns(environ)
        max_cmd = _clamp_cmd_width(columns)
        max_cmd -= 21 + user_len + (from_len if show_from else 0) + (20 if longform else 0)
        max_cmd = _clamp_cmd_width(max_cmd)

        return cls(
            container=container,
            header=header,
            ignore_user=ignore_user,
            longform=longform,
            show_from=show_from,
            old_style=old_style,
            ip_addresses=ip_addresses,
            show_pids=show_pids,
            match_user=match_user,
            user_len=user_len,
            from_len=from_len,
            max_cmd=max_cmd,
        )
