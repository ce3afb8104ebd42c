"""REST API for the task review pipeline."""

from .routes import create_app, RequestIdentity

__all__ = ["create_app", "RequestIdentity"]
