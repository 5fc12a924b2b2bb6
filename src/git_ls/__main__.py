"""Run git-ls as a module."""

from .cli import app

app(prog_name="git-ls")
