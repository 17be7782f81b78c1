"""
Utility functions for common patterns across the XML catalog system.
"""

import re
from typing import Any, Optional


class StringUtils:
    """Utility methods for string validation and processing."""

    # Cached regex patterns for performance
    _regex_cache = {
        'whitespace': re.compile(r'\s+'),
        'xml_name': re.compile(r'[^\W\d][\w.\-]*'),
    }

    @staticmethod
    def safe_string_check(value: Any) -> bool:
        """
        Standardized string validation.

        Args:
            value: Value to check

        Returns:
            True if value is a non-empty string after stripping whitespace
        """
        return value is not None and str(value).strip() != ''

    @staticmethod
    def normalize_whitespace(value: Any) -> str:
        """
        Normalize whitespace in string values.

        Args:
            value: Input value

        Returns:
            String with normalized whitespace
        """
        if value is None:
            return ''
        return StringUtils._regex_cache['whitespace'].sub(' ', str(value).strip())

    @staticmethod
    def to_column_name(value: Any) -> str:
        """
        Turn a display name into a column identifier.

        Examples:
            'Big Cats' -> 'big_cats'
            '  Night  Owls ' -> 'night_owls'
        """
        if value is None:
            return ''
        return StringUtils._regex_cache['whitespace'].sub('_', str(value).strip()).lower()

    @staticmethod
    def is_valid_xml_name(value: Any) -> bool:
        """
        Check whether value can be used as an unprefixed XML element name.

        Examples:
            'NAME' -> True
            'Größe' -> True
            'my notes' -> False
            '2nd' -> False
        """
        if not StringUtils.safe_string_check(value):
            return False
        return StringUtils._regex_cache['xml_name'].fullmatch(str(value)) is not None


class ValidationUtils:
    """Utility methods for validation patterns."""

    @staticmethod
    def safe_float_conversion(value: Any, default: Optional[float] = None) -> Optional[float]:
        """
        Safely convert value to float.

        Empty strings are not numbers; "nan" and "inf" spellings are rejected so
        that free text never sorts as a number.

        Args:
            value: Value to convert
            default: Default value if conversion fails

        Returns:
            Float value or default
        """
        if value is None:
            return default

        try:
            if isinstance(value, (int, float)):
                return float(value)
            text = str(value).strip()
            if not text:
                return default
            result = float(text)
        except (ValueError, TypeError):
            return default
        if result != result or result in (float('inf'), float('-inf')):
            return default
        return result
