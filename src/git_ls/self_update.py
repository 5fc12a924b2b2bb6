"""Update git-ls from the git checkout it runs from."""

import logging
import subprocess
import sys
from pathlib import Path

from git import GitCommandError, InvalidGitRepositoryError, Repo

logger = logging.getLogger(__name__)


class SelfUpdateError(RuntimeError):
    """git-ls could not update itself."""


def self_update(source: Path | None = None) -> Path:
    """Pull the latest git-ls and reinstall it. Return the checkout path."""
    source = source or Path(__file__).resolve().parent
    try:
        with Repo(source, search_parent_directories=True) as repo:
            working_tree_dir = repo.working_tree_dir
            if working_tree_dir is None:
                raise SelfUpdateError(f"'{source}' is in a bare repository")
            logger.debug("pulling %s", working_tree_dir)
            repo.git.fetch("-q")
            repo.git.pull("--ff-only", "-q")
    except InvalidGitRepositoryError as e:
        raise SelfUpdateError("git-ls is not installed from a git checkout") from e
    except GitCommandError as e:
        raise SelfUpdateError(f"Updating '{source}' failed: {e.stderr.strip()}") from e

    checkout = Path(working_tree_dir)
    try:
        subprocess.run(  # noqa: S603
            [sys.executable, "-m", "pip", "install", "--quiet", str(checkout)],
            check=True,
        )
    except (OSError, subprocess.CalledProcessError) as e:
        raise SelfUpdateError(f"Reinstalling from '{checkout}' failed") from e
    return checkout
