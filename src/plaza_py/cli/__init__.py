"""Command line tools for plaza-py."""

from __future__ import annotations

from plaza_py.cli.commands import PlazaCLIPlugin, plaza_group

__all__ = [
    "PlazaCLIPlugin",
    "plaza_group",
]
