"""CLI for git_ls."""

import locale
import logging
import sys
from pathlib import Path
from typing import Annotated, TextIO

import typer

from . import __version__
from .folders import UnreadableTargetError, list_folders
from .format import (
    REPORT_FORMATS,
    REPORT_FORMATS_TYPE,
    filter_descriptors,
    format_report,
    sort_descriptors,
)
from .scan import scan_folders
from .self_update import SelfUpdateError, self_update
from .status import DEFAULT_REMOTE, DisplayMode, DivergencePolicy, RepoDescriptor

logger = logging.getLogger(__name__)

app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)


class ProgressLine:
    """A single, overwritten progress line."""

    def __init__(self, stream: TextIO = sys.stderr) -> None:
        self._stream = stream
        self._width = 0

    def __call__(self, descriptor: RepoDescriptor, done: int, total: int) -> None:
        line = f" ({done}/{total}) {descriptor.elapsed_ms}ms {descriptor.name}"
        self._stream.write("\r" + line.ljust(self._width))
        self._stream.flush()
        self._width = max(self._width, len(line))

    def clear(self) -> None:
        """Erase the progress line."""
        if self._width:
            self._stream.write("\r" + " " * self._width + "\r")
            self._stream.flush()


def _version_callback(value: bool) -> None:  # noqa: FBT001
    if value:
        print(f"git-ls {__version__}")
        raise typer.Exit(0)


def _configure_logging(*, verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(threadName)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _use_user_collation() -> None:
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error:
        logger.debug("unsupported locale, sorting names by code point")


@app.command()
def git_ls(  # noqa: PLR0913, PLR0917
    targets: Annotated[
        list[Path] | None,
        typer.Argument(help="directories to list", show_default="."),
    ] = None,
    *,
    only_git: Annotated[
        bool, typer.Option("-o", "--only-git", help="only show git repositories")
    ] = False,
    short: Annotated[
        bool, typer.Option("-s", "--short", help="use ⇣⇡↕!+? symbols for status")
    ] = False,
    only_with_status: Annotated[
        bool,
        typer.Option(
            "-i", "--only-with-status", "--ignore", help="only repos with a status"
        ),
    ] = False,
    quiet: Annotated[
        bool, typer.Option("-q", "--quiet", help="do not show progress")
    ] = False,
    verbose: Annotated[
        bool, typer.Option("-v", "--verbose", help="log every git call and timing")
    ] = False,
    update: Annotated[
        bool, typer.Option("-u", "--self-update", help="update git-ls and exit")
    ] = False,
    fmt: Annotated[
        str, typer.Option("-f", "--format", help="output format")
    ] = "report",
    color: Annotated[
        bool, typer.Option("--color/--no-color", help="colorize the report")
    ] = True,
    remote: Annotated[
        str,
        typer.Option("-r", "--remote", envvar="GIT_LS_REMOTE", help="remote to check"),
    ] = DEFAULT_REMOTE,
    jobs: Annotated[
        int,
        typer.Option(
            "-j", "--jobs", envvar="GIT_LS_JOBS", min=1, help="workers per scan"
        ),
    ] = 8,
    fetch_attempts: Annotated[
        int,
        typer.Option(
            envvar="GIT_LS_FETCH_ATTEMPTS", min=1, help="max fetch attempts per repo"
        ),
    ] = DivergencePolicy.attempts,
    fetch_timeout: Annotated[
        float,
        typer.Option(
            envvar="GIT_LS_FETCH_TIMEOUT", min=0.1, help="first fetch timeout (s)"
        ),
    ] = DivergencePolicy.base_timeout,
    fetch_timeout_increment: Annotated[
        float,
        typer.Option(
            envvar="GIT_LS_FETCH_TIMEOUT_INCREMENT",
            min=0,
            help="timeout added per attempt (s)",
        ),
    ] = DivergencePolicy.timeout_increment,
    fetch_retry_delay: Annotated[
        float,
        typer.Option(
            envvar="GIT_LS_FETCH_RETRY_DELAY", min=0, help="pause between attempts (s)"
        ),
    ] = DivergencePolicy.retry_delay,
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=_version_callback,
            is_eager=True,
            help="Print version",
        ),
    ] = None,
) -> int:
    """List the folders of a directory with their git status."""
    _configure_logging(verbose=verbose)
    if fmt not in REPORT_FORMATS:
        msg = f"must be one of {', '.join(REPORT_FORMATS)}"
        raise typer.BadParameter(msg, param_hint="'--format'")
    fmt_report: REPORT_FORMATS_TYPE = fmt  # type: ignore[assignment]

    if update:
        try:
            checkout = self_update()
        except SelfUpdateError as e:
            typer.echo(f"Error: {e}", err=True)
            raise typer.Exit(1) from e
        print(f"git-ls updated from {checkout}")
        return 0

    _use_user_collation()
    try:
        folders = list_folders(targets or [])
    except UnreadableTargetError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from e

    progress = None if quiet or not sys.stdout.isatty() else ProgressLine()
    policy = DivergencePolicy(
        attempts=fetch_attempts,
        base_timeout=fetch_timeout,
        timeout_increment=fetch_timeout_increment,
        retry_delay=fetch_retry_delay,
    )
    try:
        descriptors = scan_folders(
            folders,
            mode=DisplayMode.SYMBOLS if short else DisplayMode.WORDS,
            policy=policy,
            remote=remote,
            jobs=jobs,
            on_result=progress,
        )
    finally:
        if progress is not None:
            progress.clear()

    rows = filter_descriptors(
        sort_descriptors(descriptors),
        only_git=only_git,
        only_with_status=only_with_status,
    )
    report = format_report(rows, fmt=fmt_report, color=color)
    if report:
        print(report)
    return 0
