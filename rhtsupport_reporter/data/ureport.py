"""Microreport builder — compact anonymized JSON from problem data."""

from __future__ import annotations

import json
from typing import Any, Optional, Sequence

import rhtsupport_reporter
from rhtsupport_reporter.data.problem_data import (
    FILENAME_ARCHITECTURE,
    FILENAME_COMPONENT,
    FILENAME_EXECUTABLE,
    FILENAME_PACKAGE,
    FILENAME_REASON,
    FILENAME_TYPE,
    ItemKind,
    ProblemData,
    parse_osinfo_for_rhts,
)

UREPORT_VERSION = 2

# Problem types as the microreport server names them
_PROBLEM_TYPES = {
    "CCpp": "core",
    "Python": "python",
    "Python3": "python",
    "Kerneloops": "kerneloops",
    "Java": "java",
    "Ruby": "ruby",
}


def _text(problem_data: ProblemData, name: str) -> Optional[str]:
    item = problem_data.get_item(name)
    if item is None or item.kind is not ItemKind.TEXT:
        return None
    return item.content.strip() or None


def _package_entry(nvr: str) -> dict[str, Any]:
    """Split `name-[epoch:]version-release[.arch]` into its parts."""
    name, _, release = nvr.rpartition("-")
    name, _, version = name.rpartition("-")
    epoch = 0
    if ":" in version:
        epoch_str, _, version = version.partition(":")
        epoch = int(epoch_str) if epoch_str.isdigit() else 0
    return {
        "name": name or nvr,
        "epoch": epoch,
        "version": version,
        "release": release,
        "package_role": "affected",
    }


def ureport_from_problem_data(
    problem_data: ProblemData, auth_items: Sequence[str] = ()
) -> str:
    """Return the JSON microreport; `auth_items` are copied into `auth`."""
    product, version = parse_osinfo_for_rhts(problem_data.osinfo())
    analyzer = _text(problem_data, FILENAME_TYPE) or _text(problem_data, "analyzer") or "unknown"

    problem: dict[str, Any] = {"type": _PROBLEM_TYPES.get(analyzer, analyzer.lower())}
    component = _text(problem_data, FILENAME_COMPONENT)
    if component:
        problem["component"] = component
    executable = _text(problem_data, FILENAME_EXECUTABLE)
    if executable:
        problem["executable"] = executable
    core_backtrace = _text(problem_data, "core_backtrace")
    if core_backtrace:
        try:
            problem["stacktrace"] = json.loads(core_backtrace).get("stacktrace", [])
        except (ValueError, AttributeError):
            pass

    report: dict[str, Any] = {
        "ureport_version": UREPORT_VERSION,
        "reason": _text(problem_data, FILENAME_REASON) or "",
        "reporter": {
            "name": "rhtsupport-reporter",
            "version": rhtsupport_reporter.__version__,
        },
        "os": {
            "name": product or "unknown",
            "version": version or "unknown",
            "architecture": _text(problem_data, FILENAME_ARCHITECTURE) or "unknown",
        },
        "problem": problem,
        "packages": [],
    }
    package = _text(problem_data, FILENAME_PACKAGE)
    if package:
        report["packages"].append(_package_entry(package))

    auth = {}
    for name in auth_items:
        value = _text(problem_data, name)
        if value is not None:
            auth[name] = value
    if auth:
        report["auth"] = auth

    return json.dumps(report, sort_keys=True)


def attachment_json(bthash: str, attach_type: str, data: str) -> str:
    return json.dumps({"bthash": bthash, "type": attach_type, "data": data})
