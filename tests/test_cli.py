import io
from pathlib import Path
from unittest.mock import patch

import pytest

from git_ls import __version__
from git_ls.cli import ProgressLine, app
from git_ls.self_update import SelfUpdateError
from git_ls.status import RepoDescriptor

from .conftest import MakeRepo

FAST = ["--fetch-attempts", "1", "--fetch-retry-delay", "0"]


@pytest.fixture
def workspace(tmp_path: Path, make_repo: MakeRepo) -> Path:
    """A directory with a clean repo, a dirty repo and a plain folder."""
    make_repo(tmp_path / "repoA")
    make_repo(tmp_path / "repoB", {"file.txt": "a\n"})
    (tmp_path / "repoB" / "file.txt").write_text("changed\n")
    (tmp_path / "repoB" / "new.txt").write_text("new\n")
    (tmp_path / "plain").mkdir()
    (tmp_path / "notes.txt").write_text("not a folder\n")
    return tmp_path


def _run(capsys: pytest.CaptureFixture[str], *args: str) -> tuple[int, str, str]:
    with pytest.raises(SystemExit) as exc_info:
        app(list(args))
    captured = capsys.readouterr()
    code = exc_info.value.code
    return (code if isinstance(code, int) else 1), captured.out, captured.err


def _names(out: str) -> list[str]:
    return [Path(line.split()[0]).name for line in out.splitlines()]


def test_version(capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(capsys, "--version")
    assert code == 0
    assert out.strip() == f"git-ls {__version__}"


def test_help(capsys: pytest.CaptureFixture[str]) -> None:
    code, out, _ = _run(capsys, "-h")
    assert code == 0
    assert "--only-git" in out


def test_unknown_option(capsys: pytest.CaptureFixture[str]) -> None:
    code, _, err = _run(capsys, "-x")
    assert code != 0
    assert "Usage" in err


def test_invalid_format(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    """Test invalid format raises error."""
    code, out, err = _run(capsys, "--format", "invalid", str(tmp_path))
    assert code == 2
    assert out == ""
    assert "must be one of report, json, yaml" in err
    assert "Traceback" not in err


def test_unreadable_target(capsys: pytest.CaptureFixture[str], tmp_path: Path) -> None:
    code, out, err = _run(capsys, str(tmp_path / "missing"))
    assert code == 1
    assert out == ""
    assert "Error: Cannot list directory" in err
    assert "Traceback" not in err


def test_report(capsys: pytest.CaptureFixture[str], workspace: Path) -> None:
    code, out, _ = _run(capsys, "--no-color", *FAST, str(workspace))
    assert code == 0
    assert _names(out) == ["repoA", "repoB", "plain"]
    lines = out.splitlines()
    assert "[add untracked]" in lines[1]
    assert "no-remote" in lines[0]
    assert lines[2].endswith("not-a-git-repository")


def test_only_git(capsys: pytest.CaptureFixture[str], workspace: Path) -> None:
    code, out, _ = _run(capsys, "-o", "--no-color", *FAST, str(workspace))
    assert code == 0
    assert _names(out) == ["repoA", "repoB"]


def test_combined_short_flags(
    capsys: pytest.CaptureFixture[str], workspace: Path
) -> None:
    code, out, _ = _run(capsys, "-oiqs", "--no-color", *FAST, str(workspace))
    assert code == 0
    assert _names(out) == ["repoB"]
    assert "[!?]" in out


def test_json(capsys: pytest.CaptureFixture[str], workspace: Path) -> None:
    code, out, _ = _run(capsys, "-f", "json", *FAST, str(workspace))
    assert code == 0
    assert '"has_untracked": true' in out


def test_several_targets(
    capsys: pytest.CaptureFixture[str], tmp_path: Path, make_repo: MakeRepo
) -> None:
    make_repo(tmp_path / "one" / "repo")
    make_repo(tmp_path / "two" / "repo")
    code, out, _ = _run(
        capsys, "--no-color", *FAST, str(tmp_path / "one"), str(tmp_path / "two")
    )
    assert code == 0
    names = [line.split()[0] for line in out.splitlines()]
    assert names == [
        (tmp_path / "one" / "repo").as_posix(),
        (tmp_path / "two" / "repo").as_posix(),
    ]


def test_self_update(capsys: pytest.CaptureFixture[str]) -> None:
    with patch("git_ls.cli.self_update", return_value=Path("/src/git-ls")) as update:
        code, out, _ = _run(capsys, "--self-update")
    update.assert_called_once_with()
    assert code == 0
    assert "updated" in out


def test_self_update_error(capsys: pytest.CaptureFixture[str]) -> None:
    with patch("git_ls.cli.self_update", side_effect=SelfUpdateError("not a checkout")):
        code, _, err = _run(capsys, "-u")
    assert code == 1
    assert "Error: not a checkout" in err


class TestProgressLine:
    """Test ProgressLine class."""

    def test_overwrites_and_clears(self) -> None:
        """Test each update rewrites the line and clear erases it."""
        stream = io.StringIO()
        progress = ProgressLine(stream)
        descriptor = RepoDescriptor(
            name="repo", path=Path("repo"), started_at=1.0, finished_at=1.5
        )
        progress(descriptor, 1, 2)
        progress(RepoDescriptor(name="r", path=Path("r")), 2, 2)
        progress.clear()
        written = stream.getvalue()
        assert written.startswith("\r (1/2) 500ms repo")
        assert "\r (2/2) 0ms r" in written
        assert written.endswith("\r")
