"""Report formatter — renders case summary and description from a template.

A template is a list of sections, one per line::

    %summary:: [abrt] [[%pkg_name%]][[: %reason%]]
    Description of problem:: %bare_comment
    Additional info:: count,reason,package,%reporter

The `%summary` section substitutes `%name%` placeholders; a `[[...]]`
group disappears when any placeholder inside it has no value. Every other
section renders a comma separated list of elements under its title:

* `name` renders as `name: value`;
* `%bare_name` renders the bare value;
* `%bare_%short_backtrace` renders the first frames of the backtrace;
* `%reporter` names this program.

Sections with nothing to render are left out. A line without `::`
continues the previous section.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import rhtsupport_reporter
from rhtsupport_reporter.core.errors import FormatError
from rhtsupport_reporter.data.problem_data import ItemKind, ProblemData

PROBLEM_REPORT_TEMPLATE = (
    "%summary:: [abrt] [[%pkg_name%]][[: %crash_function%()]][[: %reason%]][[: TAINTED %tainted_short%]]\n"
    "\n"
    "Description of problem:: %bare_comment\n"
    "\n"
    "Additional info::"
    "    count,reason,package,pkg_vendor,cmdline,executable,%reporter\n"
    "\n"
    "How reproducible:: %bare_reproducible\n"
    "\n"
    "Steps to reproduce:: %bare_reproducer\n"
    "\n"
    "Truncated backtrace:: %bare_%short_backtrace\n"
    "\n"
    "Other report identifiers:: %bare_reported_to\n"
)

DEFAULT_SUMMARY = "[[%reason%]]"
SHORT_BACKTRACE_FRAMES = 8

_PLACEHOLDER_RE = re.compile(r"%([A-Za-z0-9_]+)%")
_GROUP_RE = re.compile(r"\[\[(.*?)\]\]")
_SECTION_RE = re.compile(r"^(?P<title>[^:]+)::(?P<elements>.*)$")


@dataclass
class ProblemReport:
    summary: str
    description: str


@dataclass
class _Section:
    title: str
    elements: str


def _item_text(problem_data: ProblemData, name: str) -> Optional[str]:
    item = problem_data.get_item(name)
    if item is None:
        return None
    if item.kind is ItemKind.TEXT:
        return item.content
    if item.kind is ItemKind.BIGTEXT:
        return Path(item.content).read_text(encoding="utf-8", errors="replace")
    return None


def _short_backtrace(problem_data: ProblemData) -> Optional[str]:
    for name in ("backtrace", "core_backtrace"):
        text = _item_text(problem_data, name)
        if text:
            lines = [l for l in text.splitlines() if l.strip()]
            return "\n".join(lines[:SHORT_BACKTRACE_FRAMES])
    return None


class ProblemFormatter:
    def __init__(self) -> None:
        self.summary_template = DEFAULT_SUMMARY
        self.sections: list[_Section] = []

    def load_string(self, template: str) -> None:
        sections: list[_Section] = []
        summary = DEFAULT_SUMMARY
        for lineno, raw in enumerate(template.splitlines(), 1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            match = _SECTION_RE.match(line)
            if match is None:
                if not sections:
                    raise FormatError(f"line {lineno}: text outside of a section: '{line}'")
                sections[-1].elements += " " + line
                continue
            title = match.group("title").strip()
            elements = match.group("elements").strip()
            if title == "%summary":
                summary = elements
            elif title.startswith("%"):
                # %attach and friends are meaningless for a support case
                continue
            else:
                sections.append(_Section(title, elements))
        self.summary_template = summary
        self.sections = sections

    def load_file(self, path: Path) -> None:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise FormatError(f"Invalid format file: {path}") from e
        try:
            self.load_string(text)
        except FormatError as e:
            raise FormatError(f"Invalid format file: {path}: {e}") from e

    def _render_summary(self, problem_data: ProblemData) -> str:
        def substitute(text: str, strict: bool) -> Optional[str]:
            missing = False

            def repl(match: re.Match) -> str:
                nonlocal missing
                item = problem_data.get_item(match.group(1))
                if item is None or item.kind is not ItemKind.TEXT or not item.content:
                    missing = True
                    return ""
                return item.content.splitlines()[0]

            out = _PLACEHOLDER_RE.sub(repl, text)
            return None if missing and strict else out

        text = _GROUP_RE.sub(
            lambda m: substitute(m.group(1), strict=True) or "", self.summary_template
        )
        return " ".join((substitute(text, strict=False) or "").split())

    def _render_element(self, problem_data: ProblemData, element: str) -> Optional[str]:
        if element == "%reporter":
            return f"reporter: rhtsupport-reporter-{rhtsupport_reporter.__version__}"
        if element == "%bare_%short_backtrace":
            return _short_backtrace(problem_data)
        if element.startswith("%bare_"):
            return _item_text(problem_data, element[len("%bare_"):])
        text = _item_text(problem_data, element)
        if text is None:
            return None
        if "\n" in text.strip():
            return f"{element}:\n" + "\n".join(f":{l}" for l in text.splitlines())
        return f"{element + ':':<16}{text.strip()}"

    def generate_report(self, problem_data: ProblemData) -> ProblemReport:
        parts = []
        for section in self.sections:
            rendered = [
                r.rstrip()
                for r in (
                    self._render_element(problem_data, e.strip())
                    for e in section.elements.split(",")
                    if e.strip()
                )
                if r and r.strip()
            ]
            if rendered:
                parts.append(f"{section.title}:\n" + "\n".join(rendered) + "\n")
        return ProblemReport(
            summary=self._render_summary(problem_data),
            description="\n".join(parts),
        )
