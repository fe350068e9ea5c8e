"""Exceptions raised when a data source cannot be read."""


class PywError(Exception):
    """Base class for errors that abort the report."""

    exit_code = 1


class SnapshotError(PywError):
    """The process table could not be read."""


class UptimeError(PywError):
    """System or container uptime could not be determined."""


class SessionSourceError(PywError):
    """The list of login sessions could not be read."""
