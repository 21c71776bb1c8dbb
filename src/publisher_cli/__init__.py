"""Command line entry points for publisher services."""

from .main import app

__all__ = ["app"]
