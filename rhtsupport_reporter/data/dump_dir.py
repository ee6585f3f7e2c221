"""Problem directory accessor — files keyed by short name plus reported_to."""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path
from typing import Iterator, Optional

from rhtsupport_reporter.core.errors import ReporterError
from rhtsupport_reporter.core.models import ReportedTo

logger = logging.getLogger(__name__)

FILENAME_REPORTED_TO = "reported_to"
_LOCK_NAME = ".lock"


class DumpDir:
    """A problem directory opened read-only or exclusively for writing."""

    def __init__(self, path: str | os.PathLike, readonly: bool = True):
        self.path = Path(path)
        self.readonly = readonly
        self._lock_fd: Optional[int] = None
        if not self.path.is_dir():
            raise ReporterError(f"'{self.path}' is not a problem directory")
        if not readonly:
            self._lock()

    def __enter__(self) -> "DumpDir":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _lock(self) -> None:
        try:
            fd = os.open(self.path / _LOCK_NAME, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as e:
            raise ReporterError(f"Can't lock '{self.path}': {e.strerror}") from e
        fcntl.flock(fd, fcntl.LOCK_EX)
        self._lock_fd = fd

    def close(self) -> None:
        if self._lock_fd is not None:
            fcntl.flock(self._lock_fd, fcntl.LOCK_UN)
            os.close(self._lock_fd)
            self._lock_fd = None
            try:
                os.unlink(self.path / _LOCK_NAME)
            except OSError:
                pass

    def files(self) -> Iterator[tuple[str, Path]]:
        """Yield (short_name, full_path) for every regular file."""
        for entry in sorted(os.scandir(self.path), key=lambda e: e.name):
            if entry.name == _LOCK_NAME or not entry.is_file(follow_symlinks=False):
                continue
            yield entry.name, Path(entry.path)

    def load_text(self, name: str) -> Optional[str]:
        try:
            return (self.path / name).read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None

    # ── reported_to ──────────────────────────────────────────────────

    def read_reported_to(self) -> list[ReportedTo]:
        text = self.load_text(FILENAME_REPORTED_TO)
        if not text:
            return []
        entries = []
        for line in text.splitlines():
            entry = ReportedTo.parse_line(line)
            if entry is not None:
                entries.append(entry)
        return entries

    def find_in_reported_to(self, label: str) -> Optional[ReportedTo]:
        """Return the most recent entry carrying `label`."""
        found = None
        for entry in self.read_reported_to():
            if entry.label == label:
                found = entry
        return found

    def add_reported_to(self, entry: ReportedTo) -> None:
        if self.readonly:
            raise ReporterError(f"'{self.path}' is opened read-only")
        line = entry.format_line()
        existing = self.load_text(FILENAME_REPORTED_TO) or ""
        if line in existing.splitlines():
            logger.debug("reported_to already contains '%s'", line)
            return
        with open(self.path / FILENAME_REPORTED_TO, "a", encoding="utf-8") as f:
            if existing and not existing.endswith("\n"):
                f.write("\n")
            f.write(line + "\n")


def get_reported_to(dump_dir_path: str | os.PathLike, label: str) -> Optional[ReportedTo]:
    with DumpDir(dump_dir_path) as dd:
        return dd.find_in_reported_to(label)


def add_reported_to(dump_dir_path: str | os.PathLike, entry: ReportedTo) -> None:
    """Record `entry` under an exclusive lock held only for the write."""
    with DumpDir(dump_dir_path, readonly=False) as dd:
        dd.add_reported_to(entry)
