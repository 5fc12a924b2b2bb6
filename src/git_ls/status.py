"""Collect the git status of a single folder.

Every folder goes through a short pipeline of probes, each one a single `git`
command run through GitPython. A failing probe never fails the folder: the
corresponding field keeps its negative default (`False`, `""` or `None`).

The slowest probe by far is the remote divergence check, which needs a
`git fetch`. It runs with an escalating timeout and a bounded number of
attempts, and stops early when another scan has already published a result
for the same folder.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import TypeVar

from git import GitCommandError, InvalidGitRepositoryError, NoSuchPathError, Repo

from .folders import Folder

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_REMOTE = "origin"


@dataclass(frozen=True)
class StatusTokens:
    """The tokens a display mode uses for each state flag."""

    pull: str
    push: str
    pull_and_push: str
    pending: str
    commit: str
    untracked: str
    joiner: str


class DisplayMode(Enum):
    """How state flags are shown: as words, or as single symbols."""

    WORDS = StatusTokens(
        pull="pull",
        push="push",
        pull_and_push="pull push",
        pending="add",
        commit="commit",
        untracked="untracked",
        joiner=" ",
    )
    SYMBOLS = StatusTokens(
        pull="⇣",
        push="⇡",
        pull_and_push="↕",
        pending="!",
        commit="+",
        untracked="?",
        joiner="",
    )

    @property
    def tokens(self) -> StatusTokens:
        """Return the tokens of this mode."""
        return self.value


@dataclass(frozen=True)
class DivergencePolicy:
    """Retry policy for checking whether the remote is ahead.

    Attempt ``i`` (counting from 0) is allowed
    ``base_timeout + timeout_increment * i`` seconds.
    """

    attempts: int = 10
    base_timeout: float = 2.0
    timeout_increment: float = 0.5
    retry_delay: float = 0.5

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {self.attempts}")
        if self.base_timeout <= 0:
            raise ValueError(f"base_timeout must be positive, got {self.base_timeout}")
        if self.timeout_increment < 0 or self.retry_delay < 0:
            raise ValueError("timeout_increment and retry_delay must not be negative")

    def timeout_for(self, attempt: int) -> float:
        """Return the timeout of an attempt."""
        return self.base_timeout + self.timeout_increment * attempt


@dataclass(frozen=True)
class RepoDescriptor:
    """The collected status of one folder."""

    name: str
    path: Path
    is_git: bool = False
    branch: str = ""
    is_dirty: bool = False
    remote_url: str | None = None
    has_untracked: bool = False
    has_pending_tracked_changes: bool = False
    needs_commit: bool = False
    needs_push: bool = False
    needs_pull: bool = False
    is_in_merge_state: bool = False
    state_parts: tuple[str, ...] = ()
    state: str = ""
    started_at: float = field(default=0.0, compare=False)
    finished_at: float = field(default=0.0, compare=False)

    def __post_init__(self) -> None:
        if self.needs_pull and self.remote_url is None:
            raise ValueError(f"'{self.name}' needs a pull but has no remote")

    @property
    def elapsed_ms(self) -> int:
        """Return how long the collection took."""
        return round((self.finished_at - self.started_at) * 1000)

    def to_dict(self) -> dict[str, None | str | bool | list[str]]:
        """Convert to a dictionary for machine-readable output."""
        d = asdict(self)
        d["path"] = self.path.as_posix()
        d["state_parts"] = list(self.state_parts)
        del d["started_at"], d["finished_at"]
        return d


def state_parts(  # noqa: PLR0913
    *,
    needs_pull: bool,
    needs_push: bool,
    has_pending_tracked_changes: bool,
    needs_commit: bool,
    has_untracked: bool,
    mode: DisplayMode,
) -> tuple[str, ...]:
    """Return the state tokens of a repo, in display order."""
    tokens = mode.tokens
    parts: list[str] = []
    if needs_pull and needs_push:
        parts.append(tokens.pull_and_push)
    elif needs_push:
        parts.append(tokens.push)
    elif needs_pull:
        parts.append(tokens.pull)
    if has_pending_tracked_changes:
        parts.append(tokens.pending)
    if needs_commit:
        parts.append(tokens.commit)
    if has_untracked:
        parts.append(tokens.untracked)
    return tuple(parts)


def state_label(parts: tuple[str, ...], mode: DisplayMode) -> str:
    """Join state tokens into the label shown in the report."""
    if not parts:
        return ""
    return f"[{mode.tokens.joiner.join(parts)}]"


def _probe(folder: Folder, probe: str, command: Callable[[], T], default: T) -> T:
    start = time.perf_counter()
    try:
        return command()
    except GitCommandError as e:
        logger.debug("%s: %s failed (exit %s)", folder.name, probe, e.status)
        return default
    finally:
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug("%s: %s took %.0fms", folder.name, probe, elapsed)


def _fetch_and_list_incoming(repo: Repo, timeout: float) -> str:
    deadline = time.monotonic() + timeout
    repo.git.fetch("-q", kill_after_timeout=timeout)
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        raise GitCommandError(["git", "log", "..@{u}"], "timeout", "no time left")
    return repo.git.log("--max-count=1", "..@{u}", kill_after_timeout=remaining)


def check_divergence(
    repo: Repo,
    policy: DivergencePolicy,
    cancel: threading.Event | None = None,
    *,
    name: str = "",
) -> bool:
    """Return whether the upstream has commits the local branch lacks.

    Gives up, returning False, once every attempt has failed or timed out,
    or as soon as `cancel` is set.
    """
    cancel = cancel or threading.Event()
    for attempt in range(policy.attempts):
        if cancel.is_set():
            logger.debug("%s: divergence check abandoned", name)
            return False
        timeout = policy.timeout_for(attempt)
        try:
            incoming = _fetch_and_list_incoming(repo, timeout)
        except GitCommandError as e:
            logger.debug(
                "%s: divergence check attempt %d/%d failed (timeout %.1fs, exit %s)",
                name,
                attempt + 1,
                policy.attempts,
                timeout,
                e.status,
            )
            if attempt + 1 < policy.attempts:
                cancel.wait(policy.retry_delay)
            continue
        return bool(incoming)
    logger.debug(
        "%s: divergence check gave up after %d attempts", name, policy.attempts
    )
    return False


def _exists(path: Path) -> bool:
    try:
        return path.exists()
    except OSError:
        return False


def _not_a_repo(folder: Folder, started_at: float) -> RepoDescriptor:
    return RepoDescriptor(
        name=folder.name,
        path=folder.path,
        started_at=started_at,
        finished_at=time.perf_counter(),
    )


def collect_status(
    folder: Folder,
    *,
    mode: DisplayMode = DisplayMode.WORDS,
    policy: DivergencePolicy | None = None,
    remote: str = DEFAULT_REMOTE,
    cancel: threading.Event | None = None,
) -> RepoDescriptor:
    """Return the status of a folder."""
    policy = policy or DivergencePolicy()
    started_at = time.perf_counter()
    if not _exists(folder.path / ".git"):
        return _not_a_repo(folder, started_at)
    try:
        repo = Repo(folder.path)
    except (InvalidGitRepositoryError, NoSuchPathError, OSError):
        logger.debug("%s: has a .git entry but is not a repository", folder.name)
        return _not_a_repo(folder, started_at)

    with repo:
        git = repo.git
        branch = _probe(
            folder, "branch", lambda: git.branch("--show-current"), default=""
        )
        is_dirty = _probe(
            folder, "status", lambda: bool(git.status("--porcelain")), default=False
        )
        remote_url: str | None = _probe(
            folder,
            "remote",
            lambda: git.remote("get-url", remote) or None,
            default=None,
        )
        has_untracked = _probe(
            folder,
            "untracked",
            lambda: bool(git.ls_files("--others", "--exclude-standard")),
            default=False,
        )
        has_pending = _probe(
            folder, "diff", lambda: bool(git.diff("--name-only")), default=False
        )
        needs_commit = _probe(
            folder,
            "staged",
            lambda: bool(git.diff("--staged", "--name-only")),
            default=False,
        )
        needs_push = _probe(
            folder,
            "outgoing",
            lambda: bool(git.log("--max-count=1", "@{u}..")),
            default=False,
        )
        needs_pull = False
        if remote_url is not None:
            needs_pull = _probe(
                folder,
                "incoming",
                lambda: check_divergence(repo, policy, cancel, name=folder.name),
                default=False,
            )
        is_in_merge_state = _exists(Path(repo.git_dir) / "MERGE_HEAD")

    parts = state_parts(
        needs_pull=needs_pull,
        needs_push=needs_push,
        has_pending_tracked_changes=has_pending,
        needs_commit=needs_commit,
        has_untracked=has_untracked,
        mode=mode,
    )
    return RepoDescriptor(
        name=folder.name,
        path=folder.path,
        is_git=True,
        branch=branch,
        is_dirty=is_dirty,
        remote_url=remote_url,
        has_untracked=has_untracked,
        has_pending_tracked_changes=has_pending,
        needs_commit=needs_commit,
        needs_push=needs_push,
        needs_pull=needs_pull,
        is_in_merge_state=is_in_merge_state,
        state_parts=parts,
        state=state_label(parts, mode),
        started_at=started_at,
        finished_at=time.perf_counter(),
    )
