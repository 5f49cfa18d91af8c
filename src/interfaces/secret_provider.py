"""Abstract base class for the secret/config collaborator.

Provider API keys and base URLs are looked up by convention as
``{provider}_api_key`` and ``{provider}_base_url``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from src.config.settings import Settings


# Concrete implementation: SettingsSecretProvider (src/config/secrets.py)
class ISecretProvider(ABC):

    @abstractmethod
    def get_app_settings(self) -> Settings:
        """Return the application settings."""

    @abstractmethod
    def get_secret(self, key: str) -> str | None:
        """Return the secret stored under *key*, or ``None`` when unset or empty."""
