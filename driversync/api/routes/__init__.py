"""API route modules."""

from driversync.api.routes import driver

__all__ = ["driver"]
