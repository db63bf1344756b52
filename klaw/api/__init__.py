"""REST API layer for klaw.

Exposes:
    create_app -- FastAPI application factory.
"""

from klaw.api.app import create_app

__all__ = ["create_app"]
