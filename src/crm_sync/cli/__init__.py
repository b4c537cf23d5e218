"""Command-line interface for crm-sync."""

from crm_sync.cli.main import main

__all__ = ["main"]
