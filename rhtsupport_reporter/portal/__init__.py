"""Support portal and microreport server clients."""

from rhtsupport_reporter.portal.bulk import upload_to_bulk_drop
from rhtsupport_reporter.portal.client import CaseClient, normalize_message
from rhtsupport_reporter.portal.hints import QUERY_HINTS_IF_SMALLER_THAN, check_for_hints
from rhtsupport_reporter.portal.microreport import MicroreportClient

__all__ = [
    "CaseClient",
    "MicroreportClient",
    "QUERY_HINTS_IF_SMALLER_THAN",
    "check_for_hints",
    "normalize_message",
    "upload_to_bulk_drop",
]
