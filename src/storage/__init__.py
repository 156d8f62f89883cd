"""Persistence for application state"""

from src.storage.local_store import LocalStore

__all__ = ["LocalStore"]
