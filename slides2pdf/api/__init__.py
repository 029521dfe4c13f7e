"""
HTTP API for slides2pdf
"""

from .server import create_app

__all__ = ["create_app"]
