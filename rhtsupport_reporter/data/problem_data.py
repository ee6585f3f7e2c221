"""Problem data model — semantic items loaded from a problem directory."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum, IntEnum
from pathlib import Path
from typing import Iterator, Optional

from rhtsupport_reporter.data.dump_dir import DumpDir

FILENAME_PACKAGE = "package"
FILENAME_PKG_VENDOR = "pkg_vendor"
FILENAME_COMPONENT = "component"
FILENAME_EXECUTABLE = "executable"
FILENAME_COUNT = "count"
FILENAME_REPRODUCIBLE = "reproducible"
FILENAME_OS_INFO = "os_info"
FILENAME_OS_RELEASE = "os_release"
FILENAME_REASON = "reason"
FILENAME_TYPE = "type"
FILENAME_ARCHITECTURE = "architecture"

# Text files bigger than this are referenced instead of inlined
MAX_TEXT_SIZE = 8 * 1024

_BINARY_NAMES = frozenset({"coredump", "core_backtrace.bin", "sosreport.tar.xz"})


class ItemKind(Enum):
    TEXT = "text"
    BIGTEXT = "bigtext"
    BINARY = "binary"


class Reproducible(IntEnum):
    NOT_SET = -1
    UNKNOWN = 0
    YES = 1
    RECURRENT = 2


_REPRODUCIBLE_VALUES = {
    "not sure how to reproduce the problem": Reproducible.UNKNOWN,
    "the problem is reproducible": Reproducible.YES,
    "the problem is recurrent": Reproducible.RECURRENT,
    "unknown": Reproducible.UNKNOWN,
    "yes": Reproducible.YES,
    "recurrent": Reproducible.RECURRENT,
}


@dataclass
class ProblemItem:
    name: str
    # inline text for TEXT, an on-disk path otherwise
    content: str
    kind: ItemKind = ItemKind.TEXT

    @property
    def is_file(self) -> bool:
        return self.kind is not ItemKind.TEXT


def _classify(path: Path) -> tuple[ItemKind, Optional[str]]:
    if path.name in _BINARY_NAMES:
        return ItemKind.BINARY, None
    with path.open("rb") as f:
        head = f.read(MAX_TEXT_SIZE + 1)
    if b"\0" in head:
        return ItemKind.BINARY, None
    try:
        text = head.decode("utf-8")
    except UnicodeDecodeError as e:
        # the read may cut a multi-byte sequence at the end
        if len(head) > MAX_TEXT_SIZE and e.start >= len(head) - 4:
            return ItemKind.BIGTEXT, None
        return ItemKind.BINARY, None
    if len(head) > MAX_TEXT_SIZE:
        return ItemKind.BIGTEXT, None
    return ItemKind.TEXT, text


class ProblemData:
    """Mapping of item name to ProblemItem."""

    def __init__(self, items: Optional[dict[str, ProblemItem]] = None):
        self._items: dict[str, ProblemItem] = dict(items or {})

    @classmethod
    def from_dump_dir(cls, dd: DumpDir) -> "ProblemData":
        items = {}
        for short_name, full_path in dd.files():
            kind, text = _classify(full_path)
            if kind is ItemKind.TEXT:
                items[short_name] = ProblemItem(short_name, text.rstrip("\n") if text else "", kind)
            else:
                items[short_name] = ProblemItem(short_name, str(full_path), kind)
        return cls(items)

    def __contains__(self, name: str) -> bool:
        return name in self._items

    def __getitem__(self, name: str) -> ProblemItem:
        return self._items[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def items(self):
        return self._items.items()

    def get_item(self, name: str) -> Optional[ProblemItem]:
        return self._items.get(name)

    def get_content(self, name: str) -> Optional[str]:
        item = self._items.get(name)
        return item.content if item is not None else None

    def add_text(self, name: str, value: str) -> None:
        self._items[name] = ProblemItem(name, value, ItemKind.TEXT)

    def reproducible(self) -> Reproducible:
        value = self.get_content(FILENAME_REPRODUCIBLE)
        if value is None:
            return Reproducible.NOT_SET
        return _REPRODUCIBLE_VALUES.get(value.strip().lower(), Reproducible.NOT_SET)

    def osinfo(self) -> dict[str, str]:
        """Parse os-release style `os_info`, falling back to `os_release`."""
        info: dict[str, str] = {}
        raw = self.get_content(FILENAME_OS_INFO)
        if raw:
            for line in raw.splitlines():
                key, sep, value = line.strip().partition("=")
                if not sep or not key or key.startswith("#"):
                    continue
                info[key] = value.strip().strip("\"'")
        release = self.get_content(FILENAME_OS_RELEASE)
        if release:
            info.setdefault("__release", release.strip())
        return info


_RELEASE_RE = re.compile(r"^(?P<name>.+?)\s+release\s+(?P<version>[\w.]+)")


def parse_osinfo_for_rhts(osinfo: dict[str, str]) -> tuple[Optional[str], Optional[str]]:
    """Return the (product, version) pair the support portal expects."""
    name = osinfo.get("REDHAT_SUPPORT_PRODUCT") or osinfo.get("NAME")
    version = osinfo.get("REDHAT_SUPPORT_PRODUCT_VERSION") or osinfo.get("VERSION_ID")
    if name and version:
        return name, version

    release = osinfo.get("__release")
    if not release:
        return None, None
    if "Rawhide" in release:
        return "Fedora", "rawhide"
    match = _RELEASE_RE.match(release)
    if match is None:
        return None, None
    product = match.group("name")
    if product.startswith("Red Hat Enterprise Linux"):
        product = "Red Hat Enterprise Linux"
    return product, match.group("version")
