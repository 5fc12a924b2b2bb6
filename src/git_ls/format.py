"""Format a report of `git_ls`."""

import json
import locale
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Literal

import yaml
from colorama import Fore, Style

from .status import RepoDescriptor

REPORT_FORMATS = ["report", "json", "yaml"]
REPORT_FORMATS_TYPE = Literal["report", "json", "yaml"]

NO_REMOTE = "no-remote"
NOT_A_REPO = "not-a-git-repository"


def remote_label(descriptor: RepoDescriptor) -> str:
    """Return the remote column of a row."""
    return descriptor.remote_url or NO_REMOTE


@dataclass(frozen=True)
class ColumnWidths:
    """Width of each report column."""

    name: int = 0
    branch: int = 0
    state: int = 0
    remote: int = 0

    @classmethod
    def from_descriptors(cls, descriptors: Iterable[RepoDescriptor]) -> "ColumnWidths":
        """Return the widths needed to align the given rows."""
        name = branch = state = remote = 0
        for d in descriptors:
            name = max(name, len(d.name))
            if not d.is_git:
                continue
            branch = max(branch, len(d.branch))
            state = max(state, len(d.state))
            remote = max(remote, len(remote_label(d)))
        return cls(name=name, branch=branch, state=state, remote=remote)


def sort_descriptors(descriptors: Iterable[RepoDescriptor]) -> list[RepoDescriptor]:
    """Sort git repos first, then by name."""
    return sorted(descriptors, key=lambda d: (not d.is_git, locale.strxfrm(d.name)))


def filter_descriptors(
    descriptors: Iterable[RepoDescriptor], *, only_git: bool, only_with_status: bool
) -> list[RepoDescriptor]:
    """Drop rows that should not be shown."""
    return [
        d
        for d in descriptors
        if not (only_git and not d.is_git)
        and not (only_with_status and not d.state_parts)
    ]


def format_report(
    descriptors: Sequence[RepoDescriptor],
    *,
    fmt: REPORT_FORMATS_TYPE = "report",
    color: bool = True,
) -> str:
    """Format report to a readable output."""
    if fmt == "report":
        return _format_report(descriptors, color=color)
    try:
        return {
            "json": _format_json,
            "yaml": _format_yaml,
        }[fmt](descriptors)
    except KeyError as e:
        raise ValueError(f"format_report got an unsupported {fmt=}") from e


def _paint(text: str, style: str, *, color: bool) -> str:
    if not color:
        return text
    return style + text + Style.RESET_ALL


def format_row(
    descriptor: RepoDescriptor, widths: ColumnWidths, *, color: bool = True
) -> str:
    """Format one aligned line of the report."""
    name = descriptor.name.ljust(widths.name)
    if not descriptor.is_git:
        return _paint(f"{name} {NOT_A_REPO}", Style.DIM, color=color)

    branch = descriptor.branch.ljust(widths.branch)
    if descriptor.is_in_merge_state:
        branch = _paint(branch, Fore.MAGENTA, color=color)
    elif descriptor.is_dirty:
        branch = _paint(branch, Fore.CYAN, color=color)
    else:
        branch = _paint(branch, Style.DIM, color=color)

    state = descriptor.state.ljust(widths.state)
    if descriptor.state:
        state = _paint(state, Fore.RED, color=color)

    remote = remote_label(descriptor).ljust(widths.remote)
    if descriptor.remote_url is None:
        remote = _paint(remote, Fore.YELLOW, color=color)
    elif descriptor.needs_pull:
        remote = _paint(remote, Fore.LIGHTWHITE_EX, color=color)
    else:
        remote = _paint(remote, Style.DIM, color=color)

    return f"{name} {branch} {state} {remote}"


def _format_report(descriptors: Sequence[RepoDescriptor], *, color: bool) -> str:
    widths = ColumnWidths.from_descriptors(descriptors)
    return "\n".join(format_row(d, widths, color=color) for d in descriptors)


def _format_json(descriptors: Sequence[RepoDescriptor]) -> str:
    return json.dumps([d.to_dict() for d in descriptors], indent=2, ensure_ascii=False)


def _format_yaml(descriptors: Sequence[RepoDescriptor]) -> str:
    return yaml.dump(
        [d.to_dict() for d in descriptors],
        allow_unicode=True,
        default_flow_style=False,
        indent=2,
        sort_keys=False,
    )
