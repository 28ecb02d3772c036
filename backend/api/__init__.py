"""
AlumniVerse auth API package.

Provides the FastAPI application serving the session bridge and the
identity endpoints used by server-rendered routes.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
