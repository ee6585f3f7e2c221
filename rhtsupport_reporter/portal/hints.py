"""Hint probe — ask the portal whether it already knows the problem."""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from typing import Callable, Optional

from rhtsupport_reporter.core.credentials import AskCallback, call_with_credentials
from rhtsupport_reporter.core.models import Credentials
from rhtsupport_reporter.portal.client import CaseClient, join_url

logger = logging.getLogger(__name__)

QUERY_HINTS_IF_SMALLER_THAN = 8 * 1024 * 1024


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def parse_hints(body: Optional[str]) -> Optional[str]:
    """Turn the `<problems>` reply into text, None without suggestions."""
    if not body or not body.strip():
        return None
    try:
        root = ET.fromstring(body)
    except ET.ParseError as e:
        logger.debug("Can't parse hint reply: %s", e)
        return None

    lines = []
    for elem in root.iter():
        if _local_name(elem.tag) != "link" or elem.get("rel") != "suggestion":
            continue
        title = " ".join((elem.text or "").split())
        uri = elem.get("uri", "")
        lines.append(f"* {title}: {uri}" if title else f"* {uri}")
    if not lines:
        return None
    return "The following articles may resolve your problem:\n" + "\n".join(lines)


def check_for_hints(
    client: CaseClient,
    credentials: Credentials,
    archive_path: str | os.PathLike,
    ask: AskCallback,
    confirm: Callable[[str], bool],
) -> bool:
    """Upload the archive to the hint endpoint; True when the user cancels."""
    result = call_with_credentials(
        credentials, lambda creds: client.get_hints(creds, archive_path), ask
    )
    if result.error:
        # result.msg embeds the whole XML error document; keep the log short
        logger.error(
            "Error in file upload at '%s', HTTP code: %d",
            join_url(client.base_url, "problems"),
            result.http_status,
        )
        return False

    hint = parse_hints(result.body)
    if hint is None:
        return False
    return not confirm(hint + " Do you still want to create a RHTSupport ticket?")
