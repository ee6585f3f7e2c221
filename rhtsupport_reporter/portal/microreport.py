"""Microreport client — submit a uReport and annotate it afterwards."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from typing import Optional

import requests

from rhtsupport_reporter.core.config import MicroreportConfig
from rhtsupport_reporter.core.credentials import AskCallback, call_with_credentials
from rhtsupport_reporter.core.errors import ReporterError
from rhtsupport_reporter.core.models import Credentials, MicroreportResponse, ReportedTo
from rhtsupport_reporter.data.dump_dir import DumpDir, add_reported_to, get_reported_to
from rhtsupport_reporter.data.problem_data import ProblemData
from rhtsupport_reporter.data.ureport import attachment_json, ureport_from_problem_data
from rhtsupport_reporter.portal.client import USER_AGENT, join_url

logger = logging.getLogger(__name__)

UREPORT_LABEL = "uReport"
UREPORT_SUBMIT_ACTION = "reports/new/"
UREPORT_ATTACH_ACTION = "reports/attach/"


def telemetry_url(portal_url: str) -> str:
    return join_url(portal_url, "telemetry/abrt")


def parse_server_response(status: int, text: str) -> MicroreportResponse:
    try:
        data = json.loads(text) if text else None
    except ValueError:
        data = None

    if not isinstance(data, dict):
        return MicroreportResponse(
            is_error=True,
            value=f"HTTP {status}: {text.strip()}" if text.strip() else f"HTTP {status}",
            http_status=status,
        )
    if "error" in data or status >= 400:
        return MicroreportResponse(
            is_error=True,
            value=str(data.get("error", f"HTTP {status}")),
            http_status=status,
        )

    reported_to = []
    for item in data.get("reported_to") or []:
        if not isinstance(item, dict) or not item.get("reporter"):
            continue
        label = str(item["reporter"]).replace(" ", "_")
        if item.get("type") == "url":
            reported_to.append(ReportedTo(label=label, url=item.get("value")))
        elif item.get("type") == "bthash":
            reported_to.append(ReportedTo(label=label, bthash=item.get("value")))
    return MicroreportResponse(
        is_error=False,
        bthash=data.get("bthash"),
        message=data.get("message"),
        value=str(data.get("result")),
        http_status=status,
        reported_to=reported_to,
    )


class MicroreportClient:
    """Posts microreports with its own credential pair.

    The credential loop may replace `self.credentials`; callers copy them
    back into their working pair.
    """

    def __init__(
        self,
        portal_url: str,
        credentials: Credentials,
        ask: AskCallback,
        config: Optional[MicroreportConfig] = None,
        ssl_verify: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self.url = telemetry_url(portal_url)
        self.credentials = Credentials(credentials.login, credentials.password)
        self.ask = ask
        self.config = config or MicroreportConfig()
        self.ssl_verify = ssl_verify
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def _post(self, credentials: Credentials, action: str, payload: str) -> MicroreportResponse:
        url = join_url(self.url, action) + "/"
        logger.debug("POST %s", url)
        try:
            resp = self.session.post(
                url,
                data=payload.encode("utf-8"),
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                auth=(credentials.login, credentials.password),
                verify=self.ssl_verify,
            )
        except requests.RequestException as e:
            return MicroreportResponse(is_error=True, value=str(e))
        return parse_server_response(resp.status_code, resp.text)

    def _post_with_credentials(self, action: str, payload: str) -> MicroreportResponse:
        return call_with_credentials(
            self.credentials, lambda creds: self._post(creds, action, payload), self.ask
        )

    def submit(self, dump_dir_path: str | os.PathLike) -> Optional[str]:
        """Submit the microreport of `dump_dir_path`; return its bthash."""
        previous = get_reported_to(dump_dir_path, UREPORT_LABEL)
        if previous is not None:
            logger.info("uReport has already been submitted.")
            return previous.bthash

        try:
            with DumpDir(dump_dir_path) as dd:
                problem_data = ProblemData.from_dump_dir(dd)
            payload = ureport_from_problem_data(problem_data, self.config.auth_data_items)
        except (ReporterError, OSError) as e:
            logger.warning("Failed to generate microreport from the problem data: %s", e)
            return None

        resp = self._post_with_credentials(UREPORT_SUBMIT_ACTION, payload)
        if resp.is_error:
            if resp.http_status == 0:
                logger.error("Failed on submitting the problem: %s", resp.value)
            else:
                logger.info("Server responded with an error: '%s'", resp.value)
            return None

        try:
            self.save_in_dump_dir(resp, dump_dir_path)
        except ReporterError as e:
            logger.error("Can't record uReport in '%s': %s", dump_dir_path, e)
        if resp.message:
            logger.warning("%s", resp.message)
        return resp.bthash

    def save_in_dump_dir(self, resp: MicroreportResponse, dump_dir_path: str | os.PathLike) -> None:
        now = datetime.now()
        if resp.bthash:
            add_reported_to(
                dump_dir_path,
                ReportedTo(label=UREPORT_LABEL, bthash=resp.bthash, timestamp=now),
            )
        for entry in resp.reported_to:
            entry.timestamp = entry.timestamp or now
            add_reported_to(dump_dir_path, entry)

    def attach(self, bthash: str, attach_type: str, data: str) -> MicroreportResponse:
        resp = self._post_with_credentials(
            UREPORT_ATTACH_ACTION, attachment_json(bthash, attach_type, data)
        )
        if resp.is_error:
            logger.warning("Failed to attach '%s' to uReport %s: %s", attach_type, bthash, resp.value)
        return resp
