"""
Services package for the Document Value Extraction Planning Engine
"""

from .profile_loader import FinancialProfileLoader
from .requirement_resolver import (
    PresenceRule,
    RequirementResolver,
    HOUSEHOLD_INCOME_RULES,
    AVAILABLE_MONTHLY_INCOME_RULES
)
from .task_consolidator import TaskConsolidator
from .structure_builder import ExtractionStructureBuilder
from .structure_updater import StructureUpdater
from .mongo_service import MongoService, mongo_service
from .extraction_service import DocumentValueExtractionService

__all__ = [
    # Planning
    "FinancialProfileLoader",
    "PresenceRule",
    "RequirementResolver",
    "HOUSEHOLD_INCOME_RULES",
    "AVAILABLE_MONTHLY_INCOME_RULES",
    "TaskConsolidator",

    # Structure
    "ExtractionStructureBuilder",
    "StructureUpdater",

    # Storage
    "MongoService",
    "mongo_service",

    # Facade
    "DocumentValueExtractionService"
]
