"""
Configuration loading.
"""

from .settings import MigrationSettings, load_settings

__all__ = ["MigrationSettings", "load_settings"]
