"""JSON API over the analytics read models."""

from .app import create_app

__all__ = ["create_app"]
