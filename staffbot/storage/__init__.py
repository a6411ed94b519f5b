"""Persistent storage helpers."""

from staffbot.storage.store import ListingStore

__all__ = ["ListingStore"]
