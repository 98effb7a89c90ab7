"""Web interface for hypertroq."""

from .app import create_app

__all__ = ["create_app"]
