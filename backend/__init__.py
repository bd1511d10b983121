"""
Backend package: Flask HTTP surface for the TOTP engine.
"""

from .app import create_app

__all__ = ["create_app"]
