"""Process table and uptime collection for pyw."""

import os
import time
from dataclasses import dataclass

import psutil

from pyw.errors import SnapshotError, UptimeError
from pyw.models import MAX_CMD_WIDTH, ProcessRecord, ProcessSnapshot


@dataclass(slots=True, frozen=True)
class StatFields:
    """The parts of /proc/<pid>/stat that pyw uses."""

    name: str
    pgrp: int
    tty_nr: int
    tpgid: int
    utime: int
    stime: int
    starttime: int


def clock_ticks() -> int:
    """Kernel clock ticks per second."""
    try:
        return os.sysconf("SC_CLK_TCK")
    except (ValueError, OSError):
        return 100


def parse_stat(data: bytes) -> StatFields:
    """
    Parse the contents of a /proc/<pid>/stat file.

    The command name is wrapped in parentheses and may itself contain
    spaces or parentheses, so split on the last closing one.
    """
    rpar = data.rfind(b")")
    name = data[data.find(b"(") + 1 : rpar].decode("utf-8", "replace")
    fields = data[rpar + 2 :].split()
    return StatFields(
        name=name,
        pgrp=int(fields[2]),
        tty_nr=int(fields[4]),
        tpgid=int(fields[5]),
        utime=int(fields[11]),
        stime=int(fields[12]),
        starttime=int(fields[19]),
    )


def read_stat(pid: int, procfs: str = "/proc") -> StatFields:
    with open(f"{procfs}/{pid}/stat", "rb") as f:
        return parse_stat(f.read())


def _command_line(cmdline: list[str] | None, name: str) -> str:
    """Join argv, or show ``[name]`` for processes without one (kernel threads)."""
    if cmdline:
        return " ".join(cmdline)[:MAX_CMD_WIDTH]
    return f"[{name}]"[:MAX_CMD_WIDTH]


def capture_snapshot() -> ProcessSnapshot:
    """
    Capture every process on the system once.

    Uses psutil.process_iter() for uids and command lines, and reads the
    terminal and process group fields psutil does not expose straight from
    /proc. Processes that exit or deny access mid-scan are skipped.

    Raises:
        SnapshotError: The process table cannot be read at all.
    """
    if not psutil.LINUX:
        raise SnapshotError("Unable to load process information: /proc is required")

    records: list[ProcessRecord] = []
    try:
        for proc in psutil.process_iter(attrs=["pid", "name", "uids", "cmdline"]):
            try:
                info = proc.info
                stat = read_stat(info["pid"])
                uids = info.get("uids")
                if uids is None:
                    uids = proc.uids()
            except (FileNotFoundError, ProcessLookupError, PermissionError):
                continue
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

            records.append(
                ProcessRecord(
                    pid=info["pid"],
                    # process_iter() walks thread-group leaders only
                    tgid=info["pid"],
                    euid=uids.effective,
                    ruid=uids.real,
                    tty=stat.tty_nr,
                    pgrp=stat.pgrp,
                    tpgid=stat.tpgid,
                    cpu_ticks=stat.utime + stat.stime,
                    start_time=stat.starttime,
                    cmdline=_command_line(info.get("cmdline"), info.get("name") or stat.name),
                )
            )
    except OSError as exc:
        raise SnapshotError(f"Unable to load process information: {exc}") from exc

    return ProcessSnapshot(records=tuple(records), hertz=clock_ticks())


def system_uptime() -> float:
    """Seconds since boot."""
    try:
        return time.time() - psutil.boot_time()
    except (OSError, RuntimeError) as exc:
        raise UptimeError(f"Cannot get system uptime: {exc}") from exc


def container_uptime() -> float:
    """Seconds since the container's init (pid 1) started."""
    try:
        started = read_stat(1).starttime / clock_ticks()
    except (OSError, IndexError, ValueError) as exc:
        raise UptimeError(f"Cannot get container uptime: {exc}") from exc
    return system_uptime() - started


def uptime(container: bool = False) -> float:
    """Container uptime when asked for (or PROCPS_CONTAINER is set), else system uptime."""
    if container or os.environ.get("PROCPS_CONTAINER") is not None:
        return container_uptime()
    return system_uptime()


def count_users() -> int:
    """Number of logged in users, as reported by psutil."""
    try:
        return len(psutil.users())
    except OSError:
        return 0


def load_average() -> tuple[float, float, float]:
    return psutil.getloadavg()
