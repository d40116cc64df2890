"""Environment configuration for service endpoints and defaults."""

from src.settings.app import AppSettings, get_settings


__all__ = ["AppSettings", "get_settings"]
