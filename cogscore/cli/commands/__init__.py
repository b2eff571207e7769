"""CLI commands."""

from cogscore.cli.commands.score import score, tree

__all__ = ["score", "tree"]
