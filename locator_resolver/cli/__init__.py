"""Command-line interface for locator_resolver."""

from .main import main

__all__ = ["main"]
