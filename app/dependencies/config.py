"""
FastAPI dependency utilities for injecting configuration.
"""

from app.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings.

    Kept separate from ``get_settings`` so tests can override it per app.
    """
    return get_settings()


__all__ = ["get_app_settings"]
