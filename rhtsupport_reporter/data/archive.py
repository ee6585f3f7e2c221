"""Archive builder — problem directory + problem data → gzipped GNU tar.

The tar stream is written into a pipe read by a `gzip` child process that
owns the output file. The archive holds every problem directory file under
`content/` and a `content.xml` manifest at the root as its last member.
"""

from __future__ import annotations

import contextlib
import io
import logging
import os
import subprocess
import tarfile
import time
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Iterator

from rhtsupport_reporter.core.errors import ArchiveError
from rhtsupport_reporter.data.dump_dir import DumpDir
from rhtsupport_reporter.data.problem_data import ItemKind, ProblemData

logger = logging.getLogger(__name__)

CONTENT_DIR = "content"
MANIFEST_NAME = "content.xml"
STRATA_NS = "http://www.redhat.com/gss/strata"

COMPRESSOR = ("gzip",)


class Manifest:
    """The `content.xml` document binding item names to values or files."""

    def __init__(self) -> None:
        self._bindings: dict[str, dict[str, str]] = {}

    def add_text(self, name: str, value: str) -> None:
        self._bindings[name] = {"name": name, "value": value}

    def add_file(self, name: str, recorded_name: str, binary: bool) -> None:
        self._bindings[name] = {
            "name": name,
            "fileName": recorded_name,
            "type": "binary" if binary else "text",
        }

    def __len__(self) -> int:
        return len(self._bindings)

    def as_bytes(self) -> bytes:
        root = ET.Element("report", xmlns=STRATA_NS)
        for name in sorted(self._bindings):
            ET.SubElement(root, "binding", self._bindings[name])
        return ET.tostring(root, encoding="utf-8", xml_declaration=True)


@contextlib.contextmanager
def compressor_process(output_path: Path) -> Iterator[subprocess.Popen]:
    """Run the compressor with stdin=pipe and stdout=`output_path`.

    The file is created exclusively with mode 0600. On exit the write side
    of the pipe is closed and the child is always waited for.
    """
    fd = os.open(output_path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    try:
        proc = subprocess.Popen(COMPRESSOR, stdin=subprocess.PIPE, stdout=fd)
    except OSError as e:
        os.close(fd)
        raise ArchiveError(f"Can't execute '{COMPRESSOR[0]}': {e}") from e
    os.close(fd)
    try:
        yield proc
    finally:
        if proc.stdin is not None and not proc.stdin.closed:
            try:
                proc.stdin.close()
            except BrokenPipeError:
                pass
        proc.wait()


def _recorded_name(short_name: str) -> str:
    return f"{CONTENT_DIR}/{short_name}"


def _write_members(
    tar: tarfile.TarFile, dump_dir: DumpDir, problem_data: ProblemData
) -> Manifest:
    manifest = Manifest()
    written: set[str] = set()

    for name, item in sorted(problem_data.items()):
        if item.kind is ItemKind.TEXT:
            manifest.add_text(name, item.content)
            continue
        recorded = _recorded_name(os.path.basename(item.content))
        manifest.add_file(name, recorded, binary=item.kind is ItemKind.BINARY)
        if recorded not in written:
            tar.add(item.content, arcname=recorded, recursive=False)
            written.add(recorded)

    for short_name, full_path in dump_dir.files():
        recorded = _recorded_name(short_name)
        if recorded in written:
            continue
        tar.add(str(full_path), arcname=recorded, recursive=False)
        written.add(recorded)

    payload = manifest.as_bytes()
    info = tarfile.TarInfo(MANIFEST_NAME)
    info.size = len(payload)
    info.mode = 0o644
    info.mtime = int(time.time())
    # tarfile pads the payload to a 512 byte block
    tar.addfile(info, io.BytesIO(payload))
    return manifest


def build_archive(output_path: Path, dump_dir: DumpDir, problem_data: ProblemData) -> None:
    """Write the gzipped archive of `dump_dir` + `problem_data` to `output_path`.

    Raises ArchiveError; a partially written file is removed.
    """
    output_path = Path(output_path)
    failure = None
    try:
        with compressor_process(output_path) as proc:
            try:
                # the tar stream does not own proc.stdin
                with tarfile.open(
                    fileobj=proc.stdin, mode="w|", format=tarfile.GNU_FORMAT
                ) as tar:
                    manifest = _write_members(tar, dump_dir, problem_data)
                logger.debug("Archived %d manifest bindings", len(manifest))
            except (tarfile.TarError, OSError) as e:
                failure = str(e)
        if proc.returncode != 0:
            failure = failure or f"'{COMPRESSOR[0]}' exited with status {proc.returncode}"
    except ArchiveError:
        _remove_partial(output_path)
        raise
    except OSError as e:
        raise ArchiveError(f"Can't create '{output_path}': {e.strerror}") from e

    if failure is not None:
        _remove_partial(output_path)
        raise ArchiveError(f"Can't create archive '{output_path}': {failure}")


def _remove_partial(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
