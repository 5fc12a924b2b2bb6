"""List the folders that `git-ls` reports on."""

import stat
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path


class UnreadableTargetError(RuntimeError):
    """A target directory could not be listed."""


@dataclass(frozen=True)
class Folder:
    """A subdirectory of one of the scanned targets."""

    target: Path
    path: Path
    name: str


def is_dir(path: Path) -> bool:
    """Check if a path is a directory, without following symlinks."""
    try:
        return stat.S_ISDIR(path.lstat().st_mode)
    except OSError:
        # vanished or unreadable entry
        return False


def folder_name(target: Path, entry: str) -> str:
    """Return the identity key of an entry in a target."""
    if target == Path():
        return entry
    return (target / entry).as_posix()


def list_folders(targets: Sequence[Path]) -> list[Folder]:
    """Return the subdirectories of all targets, in target order."""
    folders: list[Folder] = []
    for target in targets or [Path()]:
        try:
            entries = [p.name for p in target.iterdir()]
        except OSError as e:
            raise UnreadableTargetError(f"Cannot list directory '{target}'") from e
        folders.extend(
            Folder(target=target, path=target / entry, name=folder_name(target, entry))
            for entry in entries
            if is_dir(target / entry)
        )
    return folders
