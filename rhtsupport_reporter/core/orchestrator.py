"""Orchestrator — the end-to-end submission pipeline.

preflight → microreport → format → archive → hints → create case →
link microreport → deliver archive → cleanup.
"""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console

from rhtsupport_reporter.core.config import MicroreportConfig, ReporterConfig
from rhtsupport_reporter.core.credentials import (
    AskCallback,
    ask_missing_credentials,
    call_with_credentials,
)
from rhtsupport_reporter.core.errors import ArchiveError, ReporterError, UserCancelled
from rhtsupport_reporter.core.models import ISO_DATE_FORMAT, Credentials, ReportedTo
from rhtsupport_reporter.data.archive import build_archive
from rhtsupport_reporter.data.dump_dir import DumpDir, add_reported_to, get_reported_to
from rhtsupport_reporter.data.formatter import (
    PROBLEM_REPORT_TEMPLATE,
    ProblemFormatter,
    ProblemReport,
)
from rhtsupport_reporter.data.problem_data import (
    FILENAME_COUNT,
    FILENAME_EXECUTABLE,
    FILENAME_PACKAGE,
    FILENAME_PKG_VENDOR,
    ProblemData,
    Reproducible,
    parse_osinfo_for_rhts,
)
from rhtsupport_reporter.portal import (
    QUERY_HINTS_IF_SMALLER_THAN,
    CaseClient,
    MicroreportClient,
    check_for_hints,
    normalize_message,
    upload_to_bulk_drop,
)
from rhtsupport_reporter.portal.client import join_url

logger = logging.getLogger(__name__)

RHTSUPPORT_LABEL = "RHTSupport"
RED_HAT_VENDOR = "Red Hat, Inc."
UNKNOWN_VENDOR = "unknown vendor"
NOT_PACKAGED = "not belong to any package"
ABRT_ELEMENTS_KB_ARTICLE = "https://access.redhat.com/articles/2134281"
DEFAULT_SCRATCH_DIR = Path("/var/tmp")

MIB = 1024 * 1024


@dataclass
class ReportOptions:
    dump_dir: Path = Path(".")
    attach: bool = False
    case_id: Optional[str] = None
    files: list[Path] = field(default_factory=list)
    force: bool = False
    fmt_file: Optional[Path] = None
    debug: bool = False


def _interactive_confirm(message: str) -> bool:
    from rich.prompt import Confirm

    return Confirm.ask(f"[yellow]{message}[/]")


def _interactive_ask(message: str, password: bool) -> str:
    from rich.prompt import Prompt

    return Prompt.ask(message, password=password, default="", show_default=False)


class SubmissionOrchestrator:
    """Creates a case (or reuses one) and delivers the problem data."""

    def __init__(
        self,
        config: ReporterConfig,
        options: ReportOptions,
        ureport_config: Optional[MicroreportConfig] = None,
        console: Optional[Console] = None,
        confirm_callback: Optional[Callable[[str], bool]] = None,
        ask_callback: Optional[AskCallback] = None,
        case_client: Optional[CaseClient] = None,
        ureport_client: Optional[MicroreportClient] = None,
        scratch_dir: Optional[Path] = None,
    ):
        self.config = config
        self.options = options
        self.ureport_config = ureport_config or MicroreportConfig()
        self.console = console or Console()
        self.confirm = confirm_callback or _interactive_confirm
        self.ask = ask_callback or _interactive_ask
        self.case_client = case_client or CaseClient(config.url, config.ssl_verify)
        self._ureport_client = ureport_client
        self.scratch_dir = Path(scratch_dir or DEFAULT_SCRATCH_DIR)
        self.credentials = Credentials(config.login, config.password)
        self.bthash: Optional[str] = None

    @property
    def ureport_client(self) -> MicroreportClient:
        if self._ureport_client is None:
            self._ureport_client = MicroreportClient(
                self.config.url,
                self.credentials,
                self.ask,
                config=self.ureport_config,
                ssl_verify=self.config.ssl_verify,
            )
        return self._ureport_client

    def _say(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/]", highlight=False)

    # ── stages ───────────────────────────────────────────────────────

    def _resolve_target_url(self) -> str:
        if self.options.case_id:
            return join_url(self.config.url, "cases", self.options.case_id)
        reported_to = get_reported_to(self.options.dump_dir, RHTSUPPORT_LABEL)
        if reported_to is None or not reported_to.url:
            raise ReporterError(
                f"Can't attach: problem data in '{self.options.dump_dir}' "
                "was not reported to RHTSupport and therefore has no URL"
            )
        return reported_to.url

    def _attach_files(self, url: str) -> None:
        for path in self.options.files:
            logger.warning("Attaching '%s' to case '%s'", path, url)
            result = call_with_credentials(
                self.credentials,
                lambda creds: self.case_client.attach_file_to_case(creds, url, path),
                self.ask,
            )
            if result.error:
                raise ReporterError(normalize_message(result.msg))
            logger.warning("Attachment URL:%s", result.url)
            logger.warning("File attached successfully")

    def _check_already_reported(self) -> bool:
        """False when the user does not want a second case."""
        reported_to = get_reported_to(self.options.dump_dir, RHTSUPPORT_LABEL)
        if reported_to is None or not reported_to.url or self.options.force:
            return True
        return self.confirm(
            f"This problem was already reported to RHTS (see '{reported_to.url}')."
            " Do you still want to create a RHTSupport ticket?"
        )

    def _submit_ureport(self) -> None:
        self._say("Sending ABRT crash statistics data")
        client = self.ureport_client
        self.bthash = client.submit(self.options.dump_dir)
        # the credential loop inside the client may have replaced them
        self.credentials.update(client.credentials.login, client.credentials.password)

    def _load_problem_data(self) -> ProblemData:
        with DumpDir(self.options.dump_dir) as dd:
            return ProblemData.from_dump_dir(dd)

    def _preflight(self, problem_data: ProblemData, ask_user: bool) -> None:
        package = problem_data.get_content(FILENAME_PACKAGE)
        vendor = problem_data.get_content(FILENAME_PKG_VENDOR)

        if ask_user:
            count = problem_data.get_content(FILENAME_COUNT)
            # the count file can lie, so reproducibility decides
            if (
                count is not None
                and count.strip() == "1"
                and problem_data.reproducible() <= Reproducible.UNKNOWN
            ):
                if not self.confirm(
                    "The problem has only occurred once and the ability to reproduce "
                    "the problem is unknown. Please ensure you will be able to "
                    "provide detailed information to our Support Team. "
                    "Would you like to continue and open a new support case?"
                ):
                    raise UserCancelled("Cancelled by user")

            if package and vendor and vendor.strip() != RED_HAT_VENDOR:
                if not self.confirm(
                    f"The crashed program was released by '{vendor.strip()}'. "
                    "Would you like to report the problem to Red Hat Support?"
                ):
                    raise UserCancelled("Cancelled by user")

            if not package:
                executable = problem_data.get_content(FILENAME_EXECUTABLE)
                if not self.confirm(
                    f"The program '{executable}' does not appear to be provided by "
                    "Red Hat. Would you like to report the problem to Red Hat Support?"
                ):
                    raise UserCancelled("Cancelled by user")

        if not vendor:
            problem_data.add_text(FILENAME_PKG_VENDOR, UNKNOWN_VENDOR)
        if not package:
            problem_data.add_text(FILENAME_PACKAGE, NOT_PACKAGED)

    def _format_report(self, problem_data: ProblemData, archive_name: str) -> ProblemReport:
        formatter = ProblemFormatter()
        if self.options.fmt_file:
            formatter.load_file(self.options.fmt_file)
        else:
            formatter.load_string(PROBLEM_REPORT_TEMPLATE)
        report = formatter.generate_report(problem_data)
        report.description += (
            "\n"
            f"sosreport and other files were attached as '{archive_name}' to the case.\n"
            "For more details about elements collected by ABRT see:\n"
            f"{ABRT_ELEMENTS_KB_ARTICLE}\n"
        )
        return report

    def _make_workspace(self) -> Path:
        prefix = f"rhtsupport-{datetime.now().strftime(ISO_DATE_FORMAT)}-"
        try:
            return Path(tempfile.mkdtemp(prefix=prefix, dir=self.scratch_dir))
        except OSError as e:
            raise ReporterError(
                f"Can't create a temporary directory in {self.scratch_dir}"
            ) from e

    def _record_case(self, case_url: str, msg: Optional[str]) -> None:
        # the case exists already; linking and delivery must still happen
        try:
            add_reported_to(
                self.options.dump_dir,
                ReportedTo(
                    label=RHTSUPPORT_LABEL,
                    url=case_url,
                    msg=msg,
                    timestamp=datetime.now(),
                ),
            )
        except ReporterError as e:
            logger.error("Can't record case URL in '%s': %s", self.options.dump_dir, e)

    def _link_ureport(self, case_url: str) -> None:
        self._say("Linking ABRT crash statistics record with the case")
        client = self.ureport_client
        client.credentials.update(self.credentials.login, self.credentials.password)
        client.attach(self.bthash, "RHCID", case_url)

        email = self.ureport_config.contact_email
        if email:
            self._say(f"Linking ABRT crash statistics record with contact email: '{email}'")
            client.attach(self.bthash, "email", email)

        self.credentials.update(client.credentials.login, client.credentials.password)

    def _deliver(self, url: str, archive: Path, archive_size: int) -> None:
        remote_filename = None
        big_size = self.config.big_size_mb
        if big_size != 0 and archive_size // MIB >= big_size:
            remote_filename = upload_to_bulk_drop(
                self.config.big_file_url, archive, self.config.ssl_verify
            )

        if remote_filename:
            self._say(f"Adding comment to case '{url}'")
            # not localized: support staff read it
            comment = f"Problem data was uploaded to {remote_filename}"
            result = call_with_credentials(
                self.credentials,
                lambda creds: self.case_client.add_comment_to_case(creds, url, comment),
                self.ask,
            )
        else:
            self._say(f"Attaching problem data to case '{url}'")
            result = call_with_credentials(
                self.credentials,
                lambda creds: self.case_client.attach_file_to_case(creds, url, archive),
                self.ask,
            )

        if result.error:
            if self.options.attach:
                logger.warning("Failed to attach problem data: %s", normalize_message(result.msg))
            else:
                logger.warning(
                    "Case created but failed to attach problem data: %s",
                    normalize_message(result.msg),
                )

    # ── entry point ──────────────────────────────────────────────────

    def run(self) -> int:
        """Execute the pipeline; returns the exit code or raises ReporterError."""
        options = self.options
        ask_missing_credentials(self.credentials, self.ask)

        url = self.config.url
        if options.attach:
            url = self._resolve_target_url()
            if options.files:
                self._attach_files(url)
                return 0
        else:
            if options.files:
                raise ReporterError("FILE arguments are only accepted together with -t")
            if not self._check_already_reported():
                return 0
            if self.config.submit_ureport:
                self._submit_ureport()

        problem_data = self._load_problem_data()
        self._preflight(problem_data, ask_user=not options.attach)

        archive_name = f"{Path(options.dump_dir).resolve().name}.tar.gz"
        report = self._format_report(problem_data, archive_name)
        if options.debug:
            self.console.print(
                f"summary: {report.summary}\n\n{report.description}",
                markup=False,
                highlight=False,
                soft_wrap=True,
            )
            return 0

        product = version = None
        if not options.attach:
            product, version = parse_osinfo_for_rhts(problem_data.osinfo())
            if not product:
                raise ReporterError("Can't determine RH Support Product from problem data.")

        workspace = self._make_workspace()
        archive = workspace / archive_name
        errmsg: Optional[str] = None
        try:
            # compressing e.g. a 0.5G coredump takes a while
            self._say("Compressing data")
            try:
                with DumpDir(options.dump_dir) as dd:
                    build_archive(archive, dd, problem_data)
            except ArchiveError as e:
                logger.error("%s", e)
                errmsg = f"Can't create temporary file in {self.scratch_dir}"
                return 1
            archive_size = archive.stat().st_size

            if not options.attach:
                if archive_size <= QUERY_HINTS_IF_SMALLER_THAN:
                    self._say("Checking for hints")
                    if check_for_hints(
                        self.case_client, self.credentials, archive, self.ask, self.confirm
                    ):
                        return 0

                self._say("Creating a new case")
                result = call_with_credentials(
                    self.credentials,
                    lambda creds: self.case_client.create_new_case(
                        creds,
                        product,
                        version,
                        report.summary,
                        report.description,
                        problem_data.get_content(FILENAME_PACKAGE),
                    ),
                    self.ask,
                )
                if result.error:
                    errmsg = normalize_message(result.msg)
                    return 1

                self._record_case(result.url, result.msg)
                if result.msg:
                    logger.warning("%s", result.msg)
                self.console.print(f"URL={result.url}", highlight=False, soft_wrap=True)

                if self.bthash:
                    self._link_ureport(result.url)

                url = result.url

            self._deliver(url, archive, archive_size)
            return 0
        finally:
            try:
                archive.unlink()
            except OSError:
                pass
            try:
                workspace.rmdir()
            except OSError:
                pass
            if errmsg:
                raise ReporterError(errmsg)
