"""
Utility functions for the Document Value Extraction Planning Engine
"""

from .validators import (
    has_value,
    has_array_value,
    normalize_keyed_records,
    normalize_household_members,
    parse_document_status
)

__all__ = [
    "has_value",
    "has_array_value",
    "normalize_keyed_records",
    "normalize_household_members",
    "parse_document_status"
]
