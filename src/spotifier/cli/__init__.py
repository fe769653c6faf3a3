"""
CLI Module - Command-line interface for spotifier.
==================================================

Usage:
    spotifier --help
    spotifier login
    spotifier courses
    spotifier topic 123 456

Components:
- main: Typer CLI application
"""

from spotifier.cli.main import app, cli

__all__ = ["app", "cli"]
