"""Support portal client — cases, attachments, comments and hint queries."""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Optional

import requests

from rhtsupport_reporter.core.models import Credentials, SubmissionResult

logger = logging.getLogger(__name__)

STRATA_NS = "http://www.redhat.com/gss/strata"
USER_AGENT = "rhtsupport-reporter"


def join_url(base: str, *parts: str) -> str:
    url = base.rstrip("/")
    for part in parts:
        url += "/" + part.strip("/")
    return url


def normalize_message(msg: Optional[str]) -> str:
    """Fold a (possibly multi-line) server message into one log line."""
    if not msg:
        return ""
    return msg.replace("\n", " ").rstrip(" ")


def _strata_document(tag: str, **children: Optional[str]) -> bytes:
    root = ET.Element(tag, xmlns=STRATA_NS)
    for name, value in children.items():
        if value is not None:
            ET.SubElement(root, name).text = value
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


class CaseClient:
    """Talks to the RHTSupport REST API rooted at `base_url`."""

    def __init__(
        self,
        base_url: str,
        ssl_verify: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.ssl_verify = ssl_verify
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def _post(
        self, credentials: Credentials, url: str, what: str, **kwargs: Any
    ) -> SubmissionResult:
        logger.debug("POST %s (%s)", url, what)
        try:
            resp = self.session.post(
                url,
                auth=(credentials.login, credentials.password),
                verify=self.ssl_verify,
                **kwargs,
            )
        except requests.RequestException as e:
            return SubmissionResult(error=-1, msg=f"Error in {what} at '{url}': {e}")

        body = resp.text
        if 200 <= resp.status_code < 300:
            return SubmissionResult(
                error=0,
                http_status=resp.status_code,
                url=resp.headers.get("Location"),
                body=body,
            )
        return SubmissionResult(
            error=resp.status_code,
            http_status=resp.status_code,
            msg=(
                f"Error in {what} at '{url}', HTTP code: {resp.status_code}, "
                f"server says: '{body}'"
            ),
            body=body,
        )

    def _post_file(
        self, credentials: Credentials, url: str, what: str, path: str | os.PathLike
    ) -> SubmissionResult:
        path = Path(path)
        try:
            with path.open("rb") as f:
                return self._post(
                    credentials,
                    url,
                    what,
                    files={"file": (path.name, f, "application/octet-stream")},
                )
        except OSError as e:
            return SubmissionResult(error=-1, msg=f"Can't open '{path}': {e.strerror}")

    def create_new_case(
        self,
        credentials: Credentials,
        product: str,
        version: Optional[str],
        summary: str,
        description: str,
        component: Optional[str],
    ) -> SubmissionResult:
        url = join_url(self.base_url, "cases")
        result = self._post(
            credentials,
            url,
            "case creation",
            data=_strata_document(
                "case",
                summary=summary,
                description=description,
                product=product,
                version=version,
                component=component,
            ),
            headers={"Content-Type": "application/xml", "Accept": "application/xml"},
        )
        if result.success and not result.url:
            return SubmissionResult(
                error=-1,
                http_status=result.http_status,
                msg=f"Error in case creation at '{url}': no case URL in server reply",
                body=result.body,
            )
        return result

    def attach_file_to_case(
        self, credentials: Credentials, case_url: str, path: str | os.PathLike
    ) -> SubmissionResult:
        return self._post_file(
            credentials, join_url(case_url, "attachments"), "file upload", path
        )

    def add_comment_to_case(
        self, credentials: Credentials, case_url: str, text: str
    ) -> SubmissionResult:
        return self._post(
            credentials,
            join_url(case_url, "comments"),
            "adding a comment",
            data=_strata_document("comment", text=text),
            headers={"Content-Type": "application/xml", "Accept": "application/xml"},
        )

    def get_hints(
        self, credentials: Credentials, path: str | os.PathLike
    ) -> SubmissionResult:
        return self._post_file(
            credentials, join_url(self.base_url, "problems"), "file upload", path
        )
