"""Configuration module -- exports Settings and load_settings.

There is no module-level settings singleton; :mod:`src.main` loads
settings once and injects them.
"""

from src.config.loader import load_settings
from src.config.settings import Settings

__all__ = ["Settings", "load_settings"]
