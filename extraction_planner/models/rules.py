"""
Pydantic models for value fields, document types and value/document mappings
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict


class DataType(str, Enum):
    CURRENCY = "currency"
    NUMBER = "number"
    DATE = "date"
    TEXT = "text"
    BOOLEAN = "boolean"


class CalculationMethod(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"
    DAILY = "daily"
    NONE = "none"


class CalculationType(str, Enum):
    """Which downstream computation a fact feeds"""
    HOUSEHOLD_INCOME = "household_income"
    AVAILABLE_MONTHLY_INCOME = "available_monthly_income"
    BOTH = "both"


class MappingConfidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ValueField(BaseModel):
    """One extractable fact about a household member's finances"""
    id: str = Field(..., description="Key of the matching financial profile field")
    label: str = Field(..., description="Display label")
    data_type: DataType = Field(DataType.CURRENCY, alias="dataType")
    is_array: bool = Field(False, alias="isArray", description="Profile holds a list of line items")
    calculation_method: CalculationMethod = Field(CalculationMethod.NONE, alias="calculationMethod")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class DocumentType(BaseModel):
    """A category of supporting paperwork a person may upload"""
    document_type_id: str = Field(..., alias="documentTypeId")
    title: str = Field(..., description="Display title")
    category: str = Field("Applicant", description="Document category")
    supports_multiple: bool = Field(True, alias="supportsMultiple")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ValueToDocumentMapping(BaseModel):
    """Edge of the many-to-many value/document rule graph"""
    value_field_id: str = Field(..., alias="valueFieldId")
    document_type_id: Optional[str] = Field(
        None, alias="documentTypeId", description="None when no document can supply the value"
    )
    search_terms: List[str] = Field(default_factory=list, alias="searchTerms")
    is_required: bool = Field(False, alias="isRequired", description="Reserved, display only")
    calculation_type: CalculationType = Field(..., alias="calculationType")
    data_type: DataType = Field(DataType.CURRENCY, alias="dataType")
    confidence: MappingConfidence = Field(MappingConfidence.HIGH)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator('search_terms')
    @classmethod
    def dedupe_search_terms(cls, v):
        return list(dict.fromkeys(v))

    @property
    def is_extractable(self) -> bool:
        return self.document_type_id is not None
