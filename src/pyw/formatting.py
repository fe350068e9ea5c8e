"""Fixed-width text for the report columns.

Host fields come straight out of utmp or the session registry and may be
unprintable, unterminated or longer than the column. Everything here returns
exactly the width it was asked for and never raises on bad input.
"""

import time
from ipaddress import IPv4Address, IPv6Address

from pyw.models import UT_HOSTSIZE, LoginSession

RemoteAddress = IPv4Address | IPv6Address

_V4_MAPPED_PREFIX = bytes(10) + b"\xff\xff"


def _isprint(byte: int) -> bool:
    return 0x20 <= byte < 0x7F


def _byte_at(raw: bytes, index: int) -> int:
    """Byte at ``index``, reading past the end as NUL."""
    return raw[index] if 0 <= index < len(raw) else 0


def print_host(raw: bytes, length: int, width: int) -> str:
    """
    Render a host name into a column of ``width`` characters.

    Copies printable, non-space bytes up to the first NUL. The first
    unprintable byte or space becomes a single ``-`` and ends the copy. An
    empty result also becomes ``-`` so the column is never blank. At most
    ``min(length, width)`` bytes are read.
    """
    length = min(length, width)
    out: list[str] = []
    for byte in raw[: max(length, 0)]:
        if byte == 0:
            break
        if _isprint(byte) and byte != 0x20:
            out.append(chr(byte))
        else:
            out.append("-")
            break

    if not out:
        out.append("-")
    return "".join(out).ljust(width)


def _print_suffix(raw: bytes, start: int, length: int, restlen: int) -> tuple[str, int]:
    """Copy the suffix beginning at ``start``; returns the text and the width left."""
    length -= start
    if length > restlen:
        length = restlen

    out: list[str] = []
    pos = start
    while length > 0 and _isprint(_byte_at(raw, pos)) and _byte_at(raw, pos) != 0x20:
        out.append(chr(raw[pos]))
        length -= 1
        restlen -= 1
        pos += 1

    if length > 0 and _byte_at(raw, pos) != 0:
        out.append("-")
        restlen -= 1
    return "".join(out), restlen


def print_display_or_interface(raw: bytes, length: int, restlen: int) -> str:
    """
    Render the X display (``:0``) or IPv6 interface (``%eth0``) part of a host.

    A single colon marks an X display and the text from that colon on is
    printed. Two colons mean the host is an IPv6 address; then only a
    ``%interface`` suffix is printed, if there is one. The result is padded
    with spaces to ``restlen``; nothing at all is returned when
    ``restlen <= 0``.
    """
    if restlen <= 0:
        return ""

    end = max(length, 0)
    text = ""

    disp = 0
    while disp < end and _byte_at(raw, disp) != ord(":") and _isprint(_byte_at(raw, disp)):
        disp += 1

    if disp < end and _byte_at(raw, disp) == ord(":"):
        tmp = disp + 1
        while tmp < end and _byte_at(raw, tmp) != ord(":") and _isprint(_byte_at(raw, tmp)):
            tmp += 1

        if tmp >= end or _byte_at(raw, tmp) != ord(":"):
            text, restlen = _print_suffix(raw, disp, length, restlen)
        else:
            while tmp < end and _byte_at(raw, tmp) != ord("%") and _isprint(_byte_at(raw, tmp)):
                tmp += 1
            if tmp < end and _byte_at(raw, tmp) == ord("%"):
                text, restlen = _print_suffix(raw, tmp, length, restlen)

    return text + " " * max(restlen, 0)


def unmap_v4(raw: bytes) -> bytes:
    """Turn an IPv4-mapped IPv6 address (``::ffff:a.b.c.d``) into ``a.b.c.d``."""
    if raw[:12] == _V4_MAPPED_PREFIX:
        return raw[12:16] + bytes(12)
    return raw


def decode_remote_address(addr_v6: bytes) -> RemoteAddress | None:
    """
    Decode the 16-byte utmp address field.

    IPv4 addresses live in the first four bytes with the rest zeroed; any
    other non-zero byte makes it an IPv6 address. All zeroes means no
    address was recorded.
    """
    raw = unmap_v4(addr_v6[:16].ljust(16, b"\0"))
    if any(raw[4:]):
        return IPv6Address(raw)
    if any(raw[:4]):
        return IPv4Address(raw[:4])
    return None


def _address_text(address: RemoteAddress | None, width: int) -> str:
    if address is None:
        return ""
    text = str(address)
    if isinstance(address, IPv6Address):
        return text[:width]
    # Too long for the column: treat as if no address were recorded
    return text if len(text) <= width else ""


def print_from(session: LoginSession, ip_mode: bool, width: int) -> str:
    """
    Render the FROM column for ``session``.

    Registry sessions show their remote host string. Legacy utmp sessions
    show the raw host field, or, in ``ip_mode``, the recorded address plus
    any display or interface suffix from the host field.
    """
    if session.from_registry:
        host = (session.remote_host or "").encode("utf-8", "surrogateescape")
        return print_host(host, len(host), width)

    if ip_mode:
        text = _address_text(decode_remote_address(session.addr_v6), width)
        if text:
            return text + print_display_or_interface(session.host, UT_HOSTSIZE, width - len(text))

    return print_host(session.host, UT_HOSTSIZE, width)


def format_interval(seconds: int, centiseconds: int = 0, legacy: bool = False) -> str:
    """
    Compact 7 character time interval used for IDLE, JCPU and PCPU.

    Examples (modern style):
        5 -> " 5.00s", 125 -> "  2:05 ", 7500 -> "  2:05m", 3 days -> "  3days"
    """
    if seconds < 0:
        # System clock changed?
        return "   ?   "

    if seconds >= 48 * 60 * 60:
        return f" {seconds // (24 * 60 * 60):2d}days"
    if legacy:
        if seconds >= 60 * 60:
            return f" {seconds // (60 * 60):2d}:{(seconds // 60) % 60:02d} "
        if seconds > 60:
            return f" {seconds // 60:2d}:{seconds % 60:02d}m"
        return "       "
    if seconds >= 60 * 60:
        return f" {seconds // (60 * 60):2d}:{(seconds // 60) % 60:02d}m"
    if seconds > 60:
        return f" {seconds // 60:2d}:{seconds % 60:02d} "
    return f" {seconds:2d}.{centiseconds:02d}s"


def format_ticks(ticks: int, hertz: int, legacy: bool = False) -> str:
    """Format a CPU tick count as an interval."""
    return format_interval(ticks // hertz, int((ticks % hertz) * (100.0 / hertz)), legacy)


def format_login_time(login: float, now: float | None = None) -> str:
    """Format the LOGIN@ column (8 characters)."""
    if now is None:
        now = time.time()
    logtm = time.localtime(login)
    today = time.localtime(now).tm_yday

    if now - login > 12 * 60 * 60 and logtm.tm_yday != today:
        if now - login > 6 * 24 * 60 * 60:
            month = time.strftime("%b", logtm)
            return f" {logtm.tm_mday:02d}{month:>3}{logtm.tm_year % 100:02d}"
        weekday = time.strftime("%a", logtm)
        return f" {weekday:>3}{logtm.tm_hour:02d}  "
    return f" {logtm.tm_hour:02d}:{logtm.tm_min:02d}  "


def format_uptime(
    now: float,
    uptime_secs: float,
    users: int,
    loadavg: tuple[float, float, float],
) -> str:
    """Format the uptime header line, e.g. `` 10:12:01 up 3 days,  2:04,  1 user, ...``."""
    clock = time.localtime(now)
    parts = [f" {clock.tm_hour:02d}:{clock.tm_min:02d}:{clock.tm_sec:02d} up "]

    updays = int(uptime_secs) // (60 * 60 * 24)
    if updays:
        parts.append(f"{updays} {'days' if updays > 1 else 'day'}, ")

    upminutes = int(uptime_secs) // 60
    uphours = (upminutes // 60) % 24
    upminutes %= 60
    if uphours:
        parts.append(f"{uphours:2d}:{upminutes:02d}, ")
    else:
        parts.append(f"{upminutes} min, ")

    parts.append(f"{users:2d} {'users' if users > 1 else 'user'}")
    parts.append(f",  load average: {loadavg[0]:.2f}, {loadavg[1]:.2f}, {loadavg[2]:.2f}")
    return "".join(parts)
