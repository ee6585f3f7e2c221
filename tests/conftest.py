"""Shared test fixtures for rhtsupport-reporter tests."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Optional
from unittest.mock import MagicMock

import pytest

from rhtsupport_reporter.core.config import ReporterConfig
from rhtsupport_reporter.core.models import SubmissionResult


RHEL_OS_INFO = (
    'NAME="Red Hat Enterprise Linux Server"\n'
    'VERSION="7.2 (Maipo)"\n'
    'ID="rhel"\n'
    'VERSION_ID="7.2"\n'
    'REDHAT_SUPPORT_PRODUCT="Red Hat Enterprise Linux"\n'
    'REDHAT_SUPPORT_PRODUCT_VERSION="7.2"\n'
)

DEFAULT_ITEMS = {
    "count": "1",
    "reproducible": "The problem is reproducible",
    "package": "bash-4.2.46-19.el7",
    "pkg_name": "bash",
    "pkg_vendor": "Red Hat, Inc.",
    "component": "bash",
    "executable": "/usr/bin/bash",
    "reason": "bash killed by SIGSEGV",
    "type": "CCpp",
    "architecture": "x86_64",
    "os_info": RHEL_OS_INFO,
    "backtrace": "\n".join(f"#{i} frame_{i} ()" for i in range(20)),
}


@pytest.fixture
def make_problem_dir(tmp_path) -> Callable[..., Path]:
    """Factory: build a problem directory with default items overridden."""

    def _make(
        name: str = "ccpp-2016-01-01-10:00:00-1234",
        overrides: Optional[dict[str, Optional[str]]] = None,
        binary: Optional[dict[str, bytes]] = None,
    ) -> Path:
        path = tmp_path / name
        path.mkdir()
        items = dict(DEFAULT_ITEMS)
        items.update(overrides or {})
        for key, value in items.items():
            if value is not None:
                (path / key).write_text(value, encoding="utf-8")
        for key, data in (binary or {"coredump": b"\x7fELF\0\0core"}).items():
            (path / key).write_bytes(data)
        return path

    return _make


@pytest.fixture
def problem_dir(make_problem_dir) -> Path:
    return make_problem_dir()


@pytest.fixture
def scratch_dir(tmp_path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@pytest.fixture
def reporter_config() -> ReporterConfig:
    return ReporterConfig(
        url="https://portal",
        login="user",
        password="secret",
        big_file_url="ftp://dropbox.redhat.com/incoming/",
        big_size_mb=200,
        ssl_verify=True,
        submit_ureport=False,
    )


def ok(url: Optional[str] = None, body: str = "", status: int = 201) -> SubmissionResult:
    return SubmissionResult(error=0, http_status=status, url=url, body=body)


def failed(status: int, msg: str = "failure") -> SubmissionResult:
    return SubmissionResult(error=status, http_status=status, msg=msg)


def mock_response(status: int = 200, text: str = "", headers: Optional[dict] = None) -> MagicMock:
    """Create a mock requests.Response."""
    resp = MagicMock()
    resp.status_code = status
    resp.text = text
    resp.headers = headers or {}
    return resp


class ScriptedAsk:
    """Answers credential prompts from a list and records the questions."""

    def __init__(self, answers: list[str]):
        self.answers = list(answers)
        self.questions: list[tuple[str, bool]] = []

    def __call__(self, question: str, password: bool) -> str:
        self.questions.append((question, password))
        return self.answers.pop(0)
