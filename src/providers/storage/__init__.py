"""Relational store implementations."""

from src.providers.storage.sqlite_storage_provider import SQLiteStorageProvider

__all__ = ["SQLiteStorageProvider"]
