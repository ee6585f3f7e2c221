"""Bulk drop — large archives go to a separate upload area."""

from __future__ import annotations

import ftplib
import logging
import os
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlsplit

import requests

logger = logging.getLogger(__name__)


def _upload_ftp(drop_url: str, path: Path) -> None:
    parts = urlsplit(drop_url)
    with ftplib.FTP() as ftp:
        ftp.connect(parts.hostname or "", parts.port or 21)
        ftp.login(unquote(parts.username or "anonymous"), unquote(parts.password or ""))
        directory = unquote(parts.path).rstrip("/")
        if directory:
            ftp.cwd(directory)
        with path.open("rb") as f:
            ftp.storbinary(f"STOR {path.name}", f)


def _upload_http(remote_url: str, path: Path, ssl_verify: bool) -> None:
    with path.open("rb") as f:
        resp = requests.put(remote_url, data=f, verify=ssl_verify)
    resp.raise_for_status()


def upload_to_bulk_drop(
    drop_url: str, path: str | os.PathLike, ssl_verify: bool = True
) -> Optional[str]:
    """Upload `path` into `drop_url`; return the remote file URL or None."""
    path = Path(path)
    if not drop_url.endswith("/"):
        drop_url += "/"
    remote_url = drop_url + path.name
    scheme = urlsplit(drop_url).scheme

    logger.warning("Uploading problem data to '%s'", drop_url)
    try:
        if scheme == "ftp":
            _upload_ftp(drop_url, path)
        elif scheme in ("http", "https"):
            _upload_http(remote_url, path, ssl_verify)
        else:
            logger.error("Unsupported upload URL scheme '%s' in '%s'", scheme, drop_url)
            return None
    except (ftplib.Error, requests.RequestException, OSError) as e:
        logger.error("Error while uploading '%s' to '%s': %s", path, drop_url, e)
        return None

    logger.info("Successfully uploaded '%s' to '%s'", path, remote_url)
    return remote_url
