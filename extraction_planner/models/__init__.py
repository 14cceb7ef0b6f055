"""
Models package for the Document Value Extraction Planning Engine
"""

from .rules import (
    DataType,
    CalculationMethod,
    CalculationType,
    MappingConfidence,
    ValueField,
    DocumentType,
    ValueToDocumentMapping
)

from .profile import (
    MAIN_APPLICANT_ID,
    MAIN_APPLICANT_DOCUMENT_KEY,
    PersonRole,
    FinancialProfile,
    HouseholdMember,
    Person,
    UploadedFile
)

from .plan import (
    PersonValueRequirement,
    ExtractionValue,
    ExtractionTask,
    UnverifiableValue,
    ExtractionPlan,
    SummaryEntry,
    ExtractionSummary,
    DocumentExtractionTask
)

from .structure import (
    ValueShape,
    VALUE_SHAPES,
    ValueRecord,
    GrossValueRecord,
    NetValueRecord,
    ObligationValueRecord,
    CommitmentValueRecord,
    CalendarValueRecord,
    GenericValueRecord,
    value_shape_for,
    value_record_for,
    FileNode,
    DocumentNode,
    ExtractionStructure,
    ExtractionResultUpdate
)

__all__ = [
    # Rule models
    "DataType",
    "CalculationMethod",
    "CalculationType",
    "MappingConfidence",
    "ValueField",
    "DocumentType",
    "ValueToDocumentMapping",

    # Profile models
    "MAIN_APPLICANT_ID",
    "MAIN_APPLICANT_DOCUMENT_KEY",
    "PersonRole",
    "FinancialProfile",
    "HouseholdMember",
    "Person",
    "UploadedFile",

    # Plan models
    "PersonValueRequirement",
    "ExtractionValue",
    "ExtractionTask",
    "UnverifiableValue",
    "ExtractionPlan",
    "SummaryEntry",
    "ExtractionSummary",
    "DocumentExtractionTask",

    # Structure models
    "ValueShape",
    "VALUE_SHAPES",
    "ValueRecord",
    "GrossValueRecord",
    "NetValueRecord",
    "ObligationValueRecord",
    "CommitmentValueRecord",
    "CalendarValueRecord",
    "GenericValueRecord",
    "value_shape_for",
    "value_record_for",
    "FileNode",
    "DocumentNode",
    "ExtractionStructure",
    "ExtractionResultUpdate"
]
