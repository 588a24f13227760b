"""HTTP surface for the conversion service."""

from .app import create_app

__all__ = ["create_app"]
