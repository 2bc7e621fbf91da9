"""Command-line interface for wled-backup."""

from wled_backup.cli.app import main

__all__ = ["main"]
