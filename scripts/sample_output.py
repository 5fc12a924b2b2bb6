"""Generate sample output."""

from pathlib import Path

from git_ls.format import format_report
from git_ls.status import DisplayMode, RepoDescriptor, state_label, state_parts


def sample(name: str, **flags: bool | str | None) -> RepoDescriptor:
    """Build a git row with its state computed from the flags."""
    parts = state_parts(
        needs_pull=bool(flags.get("needs_pull")),
        needs_push=bool(flags.get("needs_push")),
        has_pending_tracked_changes=bool(flags.get("has_pending_tracked_changes")),
        needs_commit=bool(flags.get("needs_commit")),
        has_untracked=bool(flags.get("has_untracked")),
        mode=DisplayMode.WORDS,
    )
    return RepoDescriptor(
        name=name,
        path=Path(name),
        is_git=True,
        state_parts=parts,
        state=state_label(parts, DisplayMode.WORDS),
        **flags,  # type: ignore[arg-type]
    )


report = [
    sample(
        "api",
        branch="main",
        remote_url="git@github.com:me/api.git",
        needs_pull=True,
        has_pending_tracked_changes=True,
        is_dirty=True,
    ),
    sample("dotfiles", branch="master"),
    sample(
        "web",
        branch="develop",
        remote_url="git@github.com:me/web.git",
        needs_push=True,
        has_untracked=True,
        is_dirty=True,
    ),
    RepoDescriptor(name="notes", path=Path("notes")),
]
print(format_report(report))
