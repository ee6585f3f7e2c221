"""Core data models for rhtsupport-reporter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

# Time format used by libreport inside reported_to entries
ISO_DATE_FORMAT = "%Y-%m-%d-%H:%M:%S"


@dataclass
class Credentials:
    login: str = ""
    password: str = ""

    def update(self, login: str, password: str) -> bool:
        """Copy login/password if they differ; return True when changed."""
        changed = False
        if self.login != login:
            self.login = login
            changed = True
        if self.password != password:
            self.password = password
            changed = True
        return changed


@dataclass
class SubmissionResult:
    error: int = 0
    http_status: int = 0
    msg: Optional[str] = None
    url: Optional[str] = None
    body: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error == 0


@dataclass
class ReportedTo:
    """One line of a problem directory's reported_to file."""

    label: str
    url: Optional[str] = None
    msg: Optional[str] = None
    bthash: Optional[str] = None
    timestamp: Optional[datetime] = None

    def format_line(self) -> str:
        parts = [f"{self.label}:"]
        if self.timestamp is not None:
            parts.append(f"TIME={self.timestamp.strftime(ISO_DATE_FORMAT)}")
        if self.url:
            parts.append(f"URL={self.url}")
        if self.bthash:
            parts.append(f"BTHASH={self.bthash}")
        if self.msg:
            # MSG is last, it may contain spaces
            parts.append(f"MSG={' '.join(self.msg.splitlines())}")
        return " ".join(parts)

    @classmethod
    def parse_line(cls, line: str) -> Optional["ReportedTo"]:
        label, sep, rest = line.strip().partition(":")
        if not sep or not label or " " in label:
            return None
        entry = cls(label=label)
        rest = rest.strip()
        while rest:
            if rest.startswith("MSG="):
                entry.msg = rest[4:]
                break
            token, _, rest = rest.partition(" ")
            rest = rest.lstrip()
            key, eq, value = token.partition("=")
            if not eq:
                continue
            if key == "URL":
                entry.url = value
            elif key == "BTHASH":
                entry.bthash = value
            elif key == "TIME":
                try:
                    entry.timestamp = datetime.strptime(value, ISO_DATE_FORMAT)
                except ValueError:
                    pass
        return entry


@dataclass
class MicroreportResponse:
    """Decoded reply of the microreport server."""

    is_error: bool
    bthash: Optional[str] = None
    message: Optional[str] = None
    value: Optional[str] = None
    http_status: int = 0
    reported_to: list[ReportedTo] = field(default_factory=list)

    @property
    def error(self) -> int:
        return 1 if self.is_error else 0
