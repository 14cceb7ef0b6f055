"""
Pydantic models for requirement sets, extraction tasks and extraction plans
"""
from typing import Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from .profile import PersonRole
from .rules import CalculationType, DataType, ValueToDocumentMapping


class PersonValueRequirement(BaseModel):
    """Facts that matter for one person and one calculation purpose"""
    person_id: str = Field(..., alias="personId")
    person_name: str = Field(..., alias="personName")
    role: PersonRole = Field(..., alias="personType")
    person_uuid: Optional[str] = Field(None, alias="personUuid")
    applicant_key: str = Field(..., alias="applicantKey")
    calculation_type: CalculationType = Field(..., alias="calculationType")
    required_values: List[ValueToDocumentMapping] = Field(default_factory=list, alias="requiredValues")

    model_config = ConfigDict(populate_by_name=True)


class ExtractionValue(BaseModel):
    """One fact to look for inside a scanned document"""
    value_field_id: str = Field(..., alias="valueId")
    search_terms: List[str] = Field(default_factory=list, alias="searchTerms")
    calculation_type: CalculationType = Field(..., alias="calculationType")
    data_type: DataType = Field(DataType.CURRENCY, alias="dataType")
    is_required: bool = Field(False, alias="isRequired")

    model_config = ConfigDict(populate_by_name=True)


class ExtractionTask(BaseModel):
    """One scan job per (document type, person)"""
    document_type_id: str = Field(..., alias="documentId")
    document_title: str = Field(..., alias="documentTitle")
    person_id: str = Field(..., alias="personId")
    person_name: str = Field(..., alias="personName")
    role: PersonRole = Field(..., alias="personType")
    person_uuid: Optional[str] = Field(None, alias="personUuid")
    applicant_key: str = Field(..., alias="applicantKey")
    values_to_extract: List[ExtractionValue] = Field(default_factory=list, alias="valuesToExtract")

    model_config = ConfigDict(populate_by_name=True)

    @property
    def key(self):
        return (self.document_type_id, self.person_id)

    def find_value(self, value_field_id: str) -> Optional[ExtractionValue]:
        for value in self.values_to_extract:
            if value.value_field_id == value_field_id:
                return value
        return None


class UnverifiableValue(BaseModel):
    """A claimed fact no document can corroborate; needs manual review"""
    person_id: str = Field(..., alias="personId")
    person_name: str = Field(..., alias="personName")
    value_field_id: str = Field(..., alias="valueId")
    calculation_type: CalculationType = Field(..., alias="calculationType")

    model_config = ConfigDict(populate_by_name=True)


class ExtractionPlan(BaseModel):
    """Result of one planning run; rebuilt per request, never stored"""
    household_income_requirements: List[PersonValueRequirement] = Field(
        default_factory=list, alias="householdIncomeRequirements"
    )
    available_monthly_income_requirements: List[PersonValueRequirement] = Field(
        default_factory=list, alias="availableMonthlyIncomeRequirements"
    )
    consolidated_extraction_tasks: List[ExtractionTask] = Field(
        default_factory=list, alias="consolidatedExtractionTasks"
    )
    unverifiable_values: List[UnverifiableValue] = Field(default_factory=list, alias="unverifiableValues")
    total_persons: int = Field(0, alias="totalPersons")
    total_documents_to_scan: int = Field(0, alias="totalDocumentsToScan")
    total_values_to_extract: int = Field(0, alias="totalValuesToExtract")
    rule_table_version: Optional[str] = Field(None, alias="ruleTableVersion")

    model_config = ConfigDict(populate_by_name=True)


class SummaryEntry(BaseModel):
    docid: Optional[str] = None
    search_terms: List[str] = Field(default_factory=list, alias="searchTerms")

    model_config = ConfigDict(populate_by_name=True)


class ExtractionSummary(BaseModel):
    """Person-name keyed view of a plan, meant for reviewers and AI prompts"""
    household_income: Dict[str, Dict[str, SummaryEntry]] = Field(default_factory=dict, alias="householdIncome")
    available_monthly_income: Dict[str, Dict[str, SummaryEntry]] = Field(
        default_factory=dict, alias="availableMonthlyIncome"
    )
    values_per_person: Dict[str, Dict[str, SummaryEntry]] = Field(default_factory=dict, alias="valuesPerPerson")

    model_config = ConfigDict(populate_by_name=True)


class DocumentExtractionTask(BaseModel):
    """Work item handed to the external OCR/AI extractor for one uploaded file"""
    document_type_id: str = Field(..., alias="documentTypeId")
    person_key: str = Field(..., alias="personKey")
    file_name: str = Field(..., alias="fileName")
    file_path: Optional[str] = Field(None, alias="filePath")
    values_to_extract: List[ExtractionValue] = Field(default_factory=list, alias="valuesToExtract")

    model_config = ConfigDict(populate_by_name=True)
