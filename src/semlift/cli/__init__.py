"""Command line interface (``semlift lift`` / ``semlift shacl``)."""

from .commands import main

__all__ = ["main"]
