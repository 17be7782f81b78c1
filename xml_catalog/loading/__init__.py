"""File and URL source loaders."""

from .source_loader import FileSourceLoader, URLSourceLoader, is_url

__all__ = ['FileSourceLoader', 'URLSourceLoader', 'is_url']
