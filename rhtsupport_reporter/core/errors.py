"""Exception hierarchy and process exit codes."""

from __future__ import annotations

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
# libreport's EXIT_CANCEL_BY_USER
EXIT_CANCEL_BY_USER = 69


class ReporterError(Exception):
    """A fatal error; the process exits non-zero after cleanup."""

    exit_code = EXIT_FAILURE


class ConfigError(ReporterError):
    pass


class FormatError(ReporterError):
    pass


class ArchiveError(ReporterError):
    pass


class UserCancelled(ReporterError):
    """The user declined a prompt or left a credential prompt empty."""

    exit_code = EXIT_CANCEL_BY_USER
