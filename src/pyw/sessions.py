"""Sources of active login sessions: utmp records or the logind registry."""

import os
import shutil
import struct
import subprocess
from collections.abc import Iterator
from typing import Protocol

import psutil
import structlog

from pyw.errors import SessionSourceError
from pyw.models import UT_HOSTSIZE, UT_LINESIZE, UT_NAMESIZE, LoginSession

log = structlog.get_logger()

UTMP_PATH = "/var/run/utmp"
USER_PROCESS = 7

# glibc struct utmp on Linux: type, pid, line, id, user, host, exit status,
# session, tv_sec, tv_usec, addr_v6, reserved
_UTMP_RECORD = struct.Struct(
    f"=hxxi{UT_LINESIZE}s4s{UT_NAMESIZE}s{UT_HOSTSIZE}shhiii16s20x"
)

_LOGIND_PROPERTIES = ("Name", "User", "TTY", "Leader", "TimestampMonotonic", "RemoteHost")


class SessionSource(Protocol):
    """Anything that can list the active login sessions."""

    def sessions(self) -> Iterator[LoginSession]: ...


def clean_tty(raw: str) -> str:
    """Cut a terminal name at the first character that is not alphanumeric or ``/``."""
    for i, ch in enumerate(raw):
        if not (ch.isascii() and (ch.isalnum() or ch == "/")):
            return raw[:i]
    return raw


def _cstring(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", "replace")


class UtmpSessionSource:
    """Sessions read from the legacy utmp file."""

    def __init__(self, path: str = UTMP_PATH) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    def records(self) -> Iterator[tuple]:
        """Yield every raw utmp record as a tuple of fields."""
        try:
            with open(self._path, "rb") as f:
                data = f.read()
        except FileNotFoundError:
            log.debug("utmp file missing", path=self._path)
            return
        except OSError as exc:
            raise SessionSourceError(f"Cannot read {self._path}: {exc}") from exc

        usable = len(data) - len(data) % _UTMP_RECORD.size
        yield from _UTMP_RECORD.iter_unpack(data[:usable])

    def sessions(self) -> Iterator[LoginSession]:
        for (
            ut_type,
            ut_pid,
            ut_line,
            _ut_id,
            ut_user,
            ut_host,
            _exit_termination,
            _exit_status,
            _ut_session,
            tv_sec,
            tv_usec,
            ut_addr_v6,
        ) in self.records():
            if ut_type != USER_PROCESS or ut_user[0] == 0:
                continue
            line = _cstring(ut_line)
            yield LoginSession(
                username=_cstring(ut_user),
                tty=clean_tty(line),
                leader_pid=ut_pid,
                start_time=tv_sec + tv_usec / 1_000_000,
                host=ut_host,
                addr_v6=ut_addr_v6,
                xdm=line.startswith(":"),
            )


class LogindSessionSource:
    """Sessions read from the systemd-logind registry through ``loginctl``."""

    def __init__(self, loginctl: str = "loginctl") -> None:
        self._loginctl = loginctl

    def _run(self, *args: str) -> str:
        result = subprocess.run(
            [self._loginctl, *args],
            check=True,
            capture_output=True,
            text=True,
        )
        return result.stdout

    def session_ids(self) -> list[str]:
        try:
            output = self._run("list-sessions", "--no-legend")
        except (OSError, subprocess.CalledProcessError) as exc:
            raise SessionSourceError(f"error getting sessions: {exc}") from exc
        return [line.split()[0] for line in output.splitlines() if line.strip()]

    def properties(self, session_id: str) -> dict[str, str]:
        args = ["show-session", session_id]
        for prop in _LOGIND_PROPERTIES:
            args.extend(["-p", prop])
        props: dict[str, str] = {}
        for line in self._run(*args).splitlines():
            key, sep, value = line.partition("=")
            if sep:
                props[key] = value
        return props

    def sessions(self) -> Iterator[LoginSession]:
        try:
            boot_time = psutil.boot_time()
        except (OSError, RuntimeError) as exc:
            raise SessionSourceError(f"Cannot get boot time: {exc}") from exc
        for session_id in self.session_ids():
            try:
                props = self.properties(session_id)
            except (OSError, subprocess.CalledProcessError):
                # Closed between listing and lookup
                log.debug("session vanished", session=session_id)
                continue

            name = props.get("Name", "")
            if not name:
                log.debug("session has no user name", session=session_id)
                continue

            yield LoginSession(
                session_id=session_id,
                username=name,
                uid=_int_or_none(props.get("User")),
                tty=clean_tty(props.get("TTY", "")),
                leader_pid=_int_or_none(props.get("Leader")) or -1,
                start_time=boot_time + int(props.get("TimestampMonotonic") or 0) / 1_000_000,
                remote_host=props.get("RemoteHost", ""),
            )


def _int_or_none(value: str | None) -> int | None:
    try:
        return int(value) if value else None
    except ValueError:
        return None


def booted_with_systemd() -> bool:
    return os.path.isdir("/run/systemd/system")


def select_session_source() -> SessionSource:
    """Use the logind registry on systemd hosts that have loginctl, utmp otherwise."""
    if booted_with_systemd():
        loginctl = shutil.which("loginctl")
        if loginctl:
            return LogindSessionSource(loginctl)
    return UtmpSessionSource()


def matches_user(session: LoginSession, match_user: str | None) -> bool:
    """
    Exact username match.

    utmp names are compared over the first UT_NAMESIZE characters only, the
    width of the record field. Registry names are compared in full.
    """
    if match_user is None:
        return True
    if session.from_registry:
        return session.username == match_user
    return session.username[:UT_NAMESIZE] == match_user[:UT_NAMESIZE]
