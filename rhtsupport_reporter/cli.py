"""CLI entry point for reporter-rhtsupport."""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

app = typer.Typer(
    name="reporter-rhtsupport",
    help=(
        "Reports a problem to RHTSupport.\n\n"
        "-t uploads FILEs to the case this problem directory was reported to; "
        "-tCASE uploads them to case CASE. -u sends ABRT crash statistics "
        "data (uReport) before creating a new case."
    ),
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

# short options without a value that getopt lets precede -t in one token
_CLUSTER_FLAGS = frozenset("vfuD")
# their next token is a value, never an option
_VALUE_OPTIONS = frozenset({
    "-d", "--problem-dir", "-c", "--config", "-C", "--ureport-config",
    "-F", "--format", "--case",
})


def expand_attach_option(argv: List[str]) -> List[str]:
    """Rewrite getopt style `-t[ID]` into `--attach [--case ID]`.

    The case id is only ever taken inline, so `-t FILE` keeps FILE as a
    positional argument. Flags clustered in front of it (`-vft`, `-ftCASE`)
    are split off first.
    """
    expanded: List[str] = []
    args = iter(argv)
    for arg in args:
        if arg == "--":
            expanded.append(arg)
            expanded.extend(args)
            break
        if arg in _VALUE_OPTIONS:
            expanded.append(arg)
            value = next(args, None)
            if value is not None:
                expanded.append(value)
            continue
        if not arg.startswith("-") or arg.startswith("--"):
            expanded.append(arg)
            continue
        flags, sep, case_id = arg[1:].partition("t")
        if not sep or any(flag not in _CLUSTER_FLAGS for flag in flags):
            expanded.append(arg)
            continue
        expanded.extend(f"-{flag}" for flag in flags)
        expanded.append("--attach")
        if case_id:
            expanded.extend(["--case", case_id])
    return expanded


def _setup_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_time=False, show_path=verbose >= 2)],
        force=True,
    )
    logging.getLogger("urllib3").setLevel(max(level, logging.INFO))


@app.command()
def report(
    files: Optional[List[Path]] = typer.Argument(
        None, help="Files to attach to an existing case (requires -t)"
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Be verbose (repeatable)"
    ),
    dump_dir: Path = typer.Option(
        Path("."), "--problem-dir", "-d", help="Problem directory"
    ),
    conf_files: Optional[List[Path]] = typer.Option(
        None, "--config", "-c", help="Configuration file (may be given many times)"
    ),
    attach: bool = typer.Option(
        False, "--attach", help="Upload FILEs to an existing case (short form: -t[ID])"
    ),
    case_id: Optional[str] = typer.Option(
        None, "--case", help="Case ID to upload FILEs to"
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Force reporting even if this problem is already reported"
    ),
    ureport: bool = typer.Option(
        False, "--ureport", "-u", help="Submit uReport before creating a new case"
    ),
    ureport_conf: Optional[Path] = typer.Option(
        None, "--ureport-config", "-C", help="Configuration file for uReport"
    ),
    fmt_file: Optional[Path] = typer.Option(
        None, "--format", "-F", help="Formatting file for a new case"
    ),
    debug: bool = typer.Option(
        False, "--debug", "-D", help="Print the formatted case and exit"
    ),
) -> None:
    """Report a problem directory to RHTSupport."""
    from rhtsupport_reporter.core.config import MicroreportConfig, ReporterConfig
    from rhtsupport_reporter.core.errors import ReporterError, UserCancelled
    from rhtsupport_reporter.core.orchestrator import (
        DEFAULT_SCRATCH_DIR,
        ReportOptions,
        SubmissionOrchestrator,
    )

    _setup_logging(verbose)

    if case_id is not None:
        attach = True
    if files and not attach:
        raise typer.BadParameter("FILE arguments require -t", param_hint="FILE")

    try:
        config = ReporterConfig.load(conf_files or [], submit_ureport_flag=ureport)
        ureport_config = MicroreportConfig.load(ureport_conf)
        orchestrator = SubmissionOrchestrator(
            config,
            ReportOptions(
                dump_dir=dump_dir,
                attach=attach,
                case_id=case_id or None,
                files=list(files or []),
                force=force,
                fmt_file=fmt_file,
                debug=debug,
            ),
            ureport_config=ureport_config,
            console=console,
            scratch_dir=Path(
                os.environ.get("LIBREPORT_LARGE_DATA_TMP_DIR") or DEFAULT_SCRATCH_DIR
            ),
        )
        exit_code = orchestrator.run()
    except UserCancelled as e:
        err_console.print(f"[yellow]{escape(str(e))}[/]", soft_wrap=True)
        raise typer.Exit(e.exit_code)
    except ReporterError as e:
        err_console.print(f"[red]{escape(str(e))}[/]", highlight=False, soft_wrap=True)
        raise typer.Exit(e.exit_code)

    raise typer.Exit(exit_code)


def main(argv: Optional[List[str]] = None) -> None:
    args = expand_attach_option(sys.argv[1:] if argv is None else argv)
    app(args=args, prog_name="reporter-rhtsupport")


if __name__ == "__main__":
    main()
