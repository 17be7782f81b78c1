"""Headless table view state."""

from .catalog_view import ASC, DESC, CatalogView, SortConfig, GroupSortConfig, compare_values

__all__ = ['ASC', 'DESC', 'CatalogView', 'SortConfig', 'GroupSortConfig', 'compare_values']
