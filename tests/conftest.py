from collections.abc import Callable, Iterator
from pathlib import Path

import pytest
from git import Actor, Repo

AUTHOR = Actor("Test User", "test@example.com")

MakeRepo = Callable[..., Repo]


def commit_file(repo: Repo, name: str, content: str, message: str = "update") -> None:
    """Write a file in a repo and commit it."""
    assert repo.working_tree_dir is not None
    (Path(repo.working_tree_dir) / name).write_text(content)
    repo.index.add([name])
    repo.index.commit(message, author=AUTHOR, committer=AUTHOR)


@pytest.fixture
def make_repo() -> Iterator[MakeRepo]:
    """Create git repos with one commit, closed at teardown."""
    repos: list[Repo] = []

    def _make(path: Path, files: dict[str, str] | None = None) -> Repo:
        path.mkdir(parents=True)
        repo = Repo.init(path)
        repos.append(repo)
        for name, content in (files or {"README.md": "hello\n"}).items():
            commit_file(repo, name, content, message=f"add {name}")
        return repo

    yield _make
    for repo in repos:
        repo.close()


@pytest.fixture
def clone_repo() -> Iterator[MakeRepo]:
    """Clone repos, closed at teardown."""
    repos: list[Repo] = []

    def _clone(url: Path, path: Path, *, bare: bool = False) -> Repo:
        repo = Repo.clone_from(url.as_posix(), path, bare=bare)
        repos.append(repo)
        return repo

    yield _clone
    for repo in repos:
        repo.close()
