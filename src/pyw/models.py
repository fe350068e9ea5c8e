"""Data models for pyw."""

from collections.abc import Iterator
from dataclasses import dataclass

MAX_CMD_WIDTH = 512  # Longest command line kept for a process
UT_NAMESIZE = 32
UT_LINESIZE = 32
UT_HOSTSIZE = 256


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable snapshot of the process attributes pyw needs."""

    pid: int
    tgid: int
    euid: int
    ruid: int
    tty: int  # Encoded device number, 0 when there is no controlling terminal
    pgrp: int
    tpgid: int
    cpu_ticks: int  # utime + stime
    start_time: int  # Clock ticks after boot
    cmdline: str


@dataclass(slots=True, frozen=True)
class ProcessSnapshot:
    """All processes on the system, captured once per run."""

    records: tuple[ProcessRecord, ...]
    hertz: int = 100

    @property
    def total(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[ProcessRecord]:
        return iter(self.records)


@dataclass(slots=True, frozen=True)
class LoginSession:
    """One active login, from utmp or from the logind registry."""

    username: str
    tty: str
    leader_pid: int
    start_time: float  # Epoch seconds
    uid: int | None = None
    session_id: str | None = None
    host: bytes = b""
    addr_v6: bytes = bytes(16)
    remote_host: str | None = None
    xdm: bool = False  # utmp line names an X display such as ":0"

    @property
    def from_registry(self) -> bool:
        """True when the session came from the logind registry."""
        return self.session_id is not None


@dataclass(slots=True, frozen=True)
class AssociationResult:
    """Outcome of matching one session against the process snapshot."""

    found: bool
    jcpu: int = 0
    pcpu: int = 0
    best_pid: int = -1
    cmdline: str = "-"  # No candidate yet
