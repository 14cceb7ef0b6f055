"""
Document Value Extraction Planning Engine

Determines which financial facts of a subsidy application must be corroborated
by supporting documents, plans one scan task per document type and person, and
persists the per-file extraction structure that OCR/AI results are merged into.
"""

__version__ = "1.0.0"
__author__ = "Subsidy Portal Team"
__description__ = "Extraction planning for household income documents"
