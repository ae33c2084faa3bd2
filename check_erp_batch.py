# ======================================================================
#  File......: check_erp_batch.py
#  Purpose...: Nagios/NRPE entrypoint: check the latest run of one ERP batch class
#  Version...: 0.1.0
#  Date......: 2026-10-19
#  Author....: Edwin Rodriguez (Arthrex IT SAP COE)
#
#  Usage:
#    check_erp_batch <batch class> <warning secs> <critical secs> [--config PATH] [-v]
#
#  Exit codes: 0 OK, 1 Warning, 2 Critical, -1 Unknown / bad arguments
# ======================================================================

from __future__ import annotations

import logging
import sys
from datetime import datetime
from typing import Optional

import click
import typer

from batch_check import ThresholdError, evaluate, parse_thresholds
from batch_models import BatchRecordSource, CheckResult, FetchFailed, Thresholds
from batch_source import RfcBatchSource
from settings import ProbeSettings, load_settings

__version__ = "0.1.0"

logger = logging.getLogger(__name__)

USAGE = """\
Usage: check_erp_batch <batch class> <warning secs> <critical secs> [options]

  batch class    Name of the ERP batch class to check, e.g. SS_SupportImportEmailMAPI
  warning secs   Warn when the last finished run ended longer ago than this (0 = off)
  critical secs  Go critical when the last finished run ended longer ago than this
                 (0 = don't check the age at all)

Options:
  --config PATH  ini file with [SAP] logon and [BATCH] table settings
                 (default: $CHECK_ERP_BATCH_CONFIG or check_erp_batch.ini)
  -v, --verbose  Diagnostics on stderr

Held runs are Warning, errored runs are Critical, anything still queued or
running (or unrecognised) is Unknown."""

UNKNOWN_EXIT = -1

app = typer.Typer(add_completion=False, help="Nagios check for ERP batch classes.")

ConfigOpt = typer.Option(
    None,
    "--config",
    "-c",
    help="ini file with [SAP] and [BATCH] settings",
)

VerboseOpt = typer.Option(
    False,
    "--verbose",
    "-v",
    help="Log diagnostics to stderr",
)


# ---------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------

def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        stream=sys.stderr,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _connection_factory(settings: ProbeSettings):
    def factory():
        # pyrfc needs the NW RFC SDK; only load it when we really connect
        from sap_connector import connect

        return connect(settings.sap)

    return factory


def build_source(config: Optional[str] = None) -> BatchRecordSource:
    settings = load_settings(config)
    logger.debug("Using settings from %s", settings.source_path or "built-in defaults")
    return RfcBatchSource(_connection_factory(settings), settings.batch)


def _now() -> datetime:
    return datetime.now()


def run_check(
    class_name: str,
    thresholds: Thresholds,
    config: Optional[str] = None,
) -> CheckResult:
    """
    One fetch, one evaluation. Anything that goes wrong before we have a
    record (config, logon, RFC) is reported as Unknown, never raised.
    """
    try:
        source = build_source(config)
        outcome = source.fetch_latest(class_name)
    except Exception as exc:
        logger.debug("Unable to fetch batch class %s", class_name, exc_info=True)
        outcome = FetchFailed.from_exception(exc)

    return evaluate(class_name, outcome, thresholds, _now())


def print_usage() -> None:
    typer.echo(f"check_erp_batch ({__version__})\n")
    typer.echo(USAGE)


# ---------------------------------------------------------------------
# Command
# ---------------------------------------------------------------------

# Extra arguments are ignored; the probe only looks at the first three.
@app.command(context_settings={"ignore_unknown_options": True, "allow_extra_args": True})
def main(
    class_name: Optional[str] = typer.Argument(None, metavar="BATCH_CLASS", show_default=False),
    warning: Optional[str] = typer.Argument(None, metavar="WARNING_SECS", show_default=False),
    critical: Optional[str] = typer.Argument(None, metavar="CRITICAL_SECS", show_default=False),
    config: Optional[str] = ConfigOpt,
    verbose: bool = VerboseOpt,
):
    """
    Check the most recent run of one batch class and report it Nagios style.
    """
    if class_name is None or warning is None or critical is None:
        print_usage()
        raise typer.Exit(UNKNOWN_EXIT)

    try:
        thresholds = parse_thresholds(warning, critical)
    except ThresholdError as e:
        typer.echo(str(e))
        raise typer.Exit(UNKNOWN_EXIT)

    _setup_logging(verbose)

    result = run_check(class_name, thresholds, config)

    typer.echo(result.message)
    raise typer.Exit(int(result.status))


def run() -> None:
    """
    Console entrypoint. Click's own usage errors (e.g. --config without a
    value) get our usage text and the Unknown exit code instead of exit 2.
    """
    try:
        code = app(prog_name="check_erp_batch", standalone_mode=False)
    except click.UsageError:
        print_usage()
        code = UNKNOWN_EXIT
    sys.exit(code or 0)


if __name__ == "__main__":
    run()
