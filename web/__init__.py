"""Web package: Flask control API for the draw engine."""

from web.app import create_app

__all__ = ["create_app"]
