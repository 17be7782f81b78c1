"""Overlay storage components."""

from .backends import InMemoryStorageBackend, FileStorageBackend
from .overlay_store import OverlayStore, DEFAULT_STORAGE_KEY

__all__ = ['InMemoryStorageBackend', 'FileStorageBackend', 'OverlayStore', 'DEFAULT_STORAGE_KEY']
