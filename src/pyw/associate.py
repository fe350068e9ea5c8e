"""Match a login session to the processes running on its terminal."""

import os
import pwd
import stat

import structlog

from pyw.models import (
    MAX_CMD_WIDTH,
    UT_NAMESIZE,
    AssociationResult,
    LoginSession,
    ProcessSnapshot,
)

log = structlog.get_logger()

NO_TTY = -1  # Never equal to a process tty number

_DEVICE_TEMPLATES = ("/dev/{}", "/dev/tty{}", "/dev/pts/{}")


def resolve_tty_device(name: str) -> int:
    """
    Return the device number of the terminal called ``name``.

    Absolute paths are used as given. Other names are tried under ``/dev``,
    as ``/dev/tty<name>`` and under ``/dev/pts``; the first character device
    wins. Returns NO_TTY if nothing matches.
    """
    if name.startswith("/"):
        try:
            return os.stat(name).st_rdev
        except OSError:
            pass

    for template in _DEVICE_TEMPLATES:
        try:
            st = os.stat(template.format(name))
        except OSError:
            continue
        if stat.S_ISCHR(st.st_mode):
            return st.st_rdev
    return NO_TTY


def resolve_uid(session: LoginSession) -> int | None:
    """Return the session uid, looking the username up if needed."""
    if session.uid is not None:
        return session.uid
    try:
        return pwd.getpwnam(session.username[:UT_NAMESIZE]).pw_uid
    except KeyError:
        return None


def associate(
    session: LoginSession,
    snapshot: ProcessSnapshot,
    filter_uid: bool = True,
) -> AssociationResult:
    """
    Scan the snapshot once for processes belonging to ``session``.

    Accumulates the CPU ticks of everything on the session's terminal (jcpu)
    and picks the process that best describes what the user is doing: the
    newest process in the terminal's foreground group owned by the user,
    seeded with the login process itself.

    Args:
        session: The login session to examine.
        snapshot: Process table captured for this run.
        filter_uid: Only promote processes whose effective or real uid is the
            session owner's. Disabled by ``--no-current``.

    Returns:
        AssociationResult with ``found`` False when the login process is
        gone (stale session) or the owner's uid cannot be resolved.
    """
    uid = None
    if filter_uid:
        uid = resolve_uid(session)
        if uid is None:
            log.debug("uid lookup failed", user=session.username)
            return AssociationResult(found=False)

    line = resolve_tty_device(session.tty)

    found = False
    jcpu = 0
    pcpu = 0
    best_pid = -1
    cmdline = "-"
    best_time = 0
    secondbest_time = 0

    for proc in snapshot:
        # Login process
        if proc.tgid == session.leader_pid:
            found = True
            if not best_time:
                best_time = proc.start_time
                cmdline = proc.cmdline[:MAX_CMD_WIDTH]
                best_pid = proc.pid
                pcpu = proc.cpu_ticks

        if proc.tty != line:
            continue
        jcpu += proc.cpu_ticks

        # Newest process on the terminal stands in until a foreground one shows up
        if not (secondbest_time and proc.start_time <= secondbest_time):
            secondbest_time = proc.start_time
            if cmdline == "-":
                cmdline = proc.cmdline[:MAX_CMD_WIDTH]
                best_pid = proc.pid
                pcpu = proc.cpu_ticks

        if (
            (filter_uid and uid != proc.euid and uid != proc.ruid)
            or proc.pgrp != proc.tpgid
            or proc.start_time <= best_time
        ):
            continue
        best_time = proc.start_time
        cmdline = proc.cmdline[:MAX_CMD_WIDTH]
        best_pid = proc.pid
        pcpu = proc.cpu_ticks

    return AssociationResult(
        found=found,
        jcpu=jcpu,
        pcpu=pcpu,
        best_pid=best_pid,
        cmdline=cmdline,
    )
