"""
API routes for the Document Value Extraction Planning Engine
"""

from .extraction import router as extraction_router, get_extraction_service

__all__ = [
    "extraction_router",
    "get_extraction_service"
]
