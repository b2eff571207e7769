"""CLI command groups."""

from cogscore.cli.groups import config

__all__ = ["config"]
