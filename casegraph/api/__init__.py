"""HTTP API for the case graph."""

from .app import create_app

__all__ = ["create_app"]
