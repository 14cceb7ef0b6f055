"""
Pydantic models for the persisted extraction structure

Persisted shape, one JSON document per application:

    person_key -> document_type_id -> {
        extractionComplete, relevantValues, numberOfFiles,
        <fileName> -> {confidence, methodUsed, filePath, uploadedAt,
                       <valueFieldId> -> value record}
    }

File and value entries sit beside the fixed attributes in the persisted
document. The models keep them in explicit ``files`` / ``values`` mappings and
flatten them again on serialization.
"""
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Union
from pydantic import BaseModel, Field, ConfigDict, model_serializer, model_validator


class ValueShape(str, Enum):
    GROSS = "gross"
    NET = "net"
    OBLIGATION = "obligation"
    COMMITMENT = "commitment"
    CALENDAR = "calendar"
    GENERIC = "generic"


VALUE_SHAPES: Dict[str, ValueShape] = {
    # gross annual income
    "prior_year_earning": ValueShape.GROSS,
    "wheinachtsgeld_last12": ValueShape.GROSS,
    "urlaubsgeld_last12": ValueShape.GROSS,
    "otherincome_last12": ValueShape.GROSS,
    "incomebusiness": ValueShape.GROSS,
    "incomeagriculture": ValueShape.GROSS,
    "incomerent": ValueShape.GROSS,
    "incomepension": ValueShape.GROSS,
    "incomeablg": ValueShape.GROSS,
    "incomeforeign": ValueShape.GROSS,
    "incomeunterhalttaxfree": ValueShape.GROSS,
    "incomeunterhalttaxable": ValueShape.GROSS,
    "incomepauschal": ValueShape.GROSS,
    # net income
    "monthlynetsalary": ValueShape.NET,
    "wheinachtsgeld_next12_net": ValueShape.NET,
    "urlaubsgeld_next12_net": ValueShape.NET,
    "otheremploymentmonthlynetincome": ValueShape.NET,
    "incomeagriculture_net": ValueShape.NET,
    "incomerent_net": ValueShape.NET,
    "yearlycapitalnetincome": ValueShape.NET,
    "yearlybusinessnetincome": ValueShape.NET,
    "yearlyselfemployednetincome": ValueShape.NET,
    "pensionmonthlynetincome": ValueShape.NET,
    "incomeunterhalttaxable_net": ValueShape.NET,
    "monthlykindergeldnetincome": ValueShape.NET,
    "monthlypflegegeldnetincome": ValueShape.NET,
    "monthlyelterngeldnetincome": ValueShape.NET,
    "othermonthlynetincome": ValueShape.NET,
    # deductible amounts and obligations
    "werbungskosten": ValueShape.OBLIGATION,
    "kinderbetreuungskosten": ValueShape.OBLIGATION,
    "unterhaltszahlungen": ValueShape.OBLIGATION,
    "unterhaltszahlungenTotal": ValueShape.OBLIGATION,
    # running commitments
    "betragotherinsurancetaxexpenses": ValueShape.COMMITMENT,
    "loans": ValueShape.COMMITMENT,
    "zwischenkredit": ValueShape.COMMITMENT,
    "otherzahlungsverpflichtung": ValueShape.COMMITMENT,
    "sparratebausparvertraege": ValueShape.COMMITMENT,
    "praemiekapitalrentenversicherung": ValueShape.COMMITMENT,
    # calendar facts
    "prior_year": ValueShape.CALENDAR,
}


class ValueRecord(BaseModel):
    """Base of all value records; subclasses fix the set of keys"""
    shape: ClassVar[ValueShape] = ValueShape.GENERIC

    confidence: Any = ""

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def field_for_key(cls, key: str) -> Optional[str]:
        """Map a wire or attribute name onto a field name, None if unknown"""
        for name, info in cls.model_fields.items():
            if key == name or key == info.alias:
                return name
        return None

    def apply(self, extracted: Dict[str, Any]) -> List[str]:
        """Copy the keys this record defines, ignore the rest.

        Returns the field names that were written.
        """
        applied = []
        for key, value in extracted.items():
            name = self.field_for_key(key)
            if name is None:
                continue
            setattr(self, name, value)
            applied.append(name)
        return applied


class GrossValueRecord(ValueRecord):
    shape: ClassVar[ValueShape] = ValueShape.GROSS

    gross_value: Any = ""
    year: Any = ""
    month: Any = ""
    is_monthly: Optional[Any] = Field(None, alias="isMonthly")


class NetValueRecord(ValueRecord):
    shape: ClassVar[ValueShape] = ValueShape.NET

    net_value: Any = ""
    year: Any = ""
    month: Any = ""
    is_monthly: Optional[Any] = Field(None, alias="isMonthly")


class ObligationValueRecord(ValueRecord):
    shape: ClassVar[ValueShape] = ValueShape.OBLIGATION

    amount: Any = ""
    year: Any = ""
    month: Any = ""
    is_monthly: Optional[Any] = Field(None, alias="isMonthly")
    is_recurring: Optional[Any] = Field(None, alias="isRecurring")
    laufzeit: Any = ""


class CommitmentValueRecord(ValueRecord):
    shape: ClassVar[ValueShape] = ValueShape.COMMITMENT

    amount: Any = ""
    year: Any = ""
    month: Any = ""
    is_monthly: Optional[Any] = Field(None, alias="isMonthly")
    laufzeit: Any = ""


class CalendarValueRecord(ValueRecord):
    shape: ClassVar[ValueShape] = ValueShape.CALENDAR

    year: Any = ""


class GenericValueRecord(ValueRecord):
    shape: ClassVar[ValueShape] = ValueShape.GENERIC

    gross_value: Any = ""
    net_value: Any = ""
    year: Any = ""
    month: Any = ""
    is_monthly: Optional[Any] = Field(None, alias="isMonthly")
    is_recurring: Optional[Any] = Field(None, alias="isRecurring")
    laufzeit: Any = ""


AnyValueRecord = Union[
    GrossValueRecord,
    NetValueRecord,
    ObligationValueRecord,
    CommitmentValueRecord,
    CalendarValueRecord,
    GenericValueRecord,
]

RECORD_TYPES: Dict[ValueShape, type] = {
    ValueShape.GROSS: GrossValueRecord,
    ValueShape.NET: NetValueRecord,
    ValueShape.OBLIGATION: ObligationValueRecord,
    ValueShape.COMMITMENT: CommitmentValueRecord,
    ValueShape.CALENDAR: CalendarValueRecord,
    ValueShape.GENERIC: GenericValueRecord,
}


def value_shape_for(value_field_id: str) -> ValueShape:
    return VALUE_SHAPES.get(value_field_id, ValueShape.GENERIC)


def value_record_for(value_field_id: str, data: Optional[Dict[str, Any]] = None) -> ValueRecord:
    """Build the record type fixed for a value field, empty unless data is given"""
    record_type = RECORD_TYPES[value_shape_for(value_field_id)]
    if isinstance(data, ValueRecord):
        data = data.model_dump(by_alias=True)
    return record_type.model_validate(data or {})


FILE_ATTRIBUTES = {
    "confidence", "methodUsed", "method_used", "filePath", "file_path", "uploadedAt", "uploaded_at"
}
DOCUMENT_ATTRIBUTES = {
    "extractionComplete", "extraction_complete",
    "relevantValues", "relevant_values",
    "numberOfFiles", "number_of_files",
}
RESERVED_NODE_KEYS = {"files", "values"} | FILE_ATTRIBUTES | DOCUMENT_ATTRIBUTES
FAILED_CONFIDENCES = (None, "", 0, "0")


class FileNode(BaseModel):
    """Extraction results for one uploaded file"""
    confidence: Any = ""
    method_used: Any = Field("", alias="methodUsed")
    file_path: Optional[str] = Field(None, alias="filePath")
    uploaded_at: Optional[str] = Field(None, alias="uploadedAt")
    values: Dict[str, AnyValueRecord] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def collect_values(cls, data):
        if not isinstance(data, dict):
            return data
        node = {key: value for key, value in data.items() if key in FILE_ATTRIBUTES}
        entries = data.get("values") if isinstance(data.get("values"), dict) else {
            key: value for key, value in data.items()
            if key not in FILE_ATTRIBUTES and isinstance(value, (dict, ValueRecord))
        }
        node["values"] = {
            value_field_id: value_record_for(value_field_id, record)
            for value_field_id, record in entries.items()
        }
        return node

    @model_serializer(mode="wrap")
    def flatten_values(self, handler):
        data = handler(self)
        values = data.pop("values", {})
        data.update(values)
        return data

    @property
    def is_processed(self) -> bool:
        """A confidence of "0" marks a failed extraction"""
        return self.confidence not in FAILED_CONFIDENCES


class DocumentNode(BaseModel):
    """One (person, document type) entry of the structure"""
    extraction_complete: bool = Field(False, alias="extractionComplete")
    relevant_values: List[str] = Field(default_factory=list, alias="relevantValues")
    number_of_files: int = Field(0, alias="numberOfFiles")
    files: Dict[str, FileNode] = Field(default_factory=dict)

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def collect_files(cls, data):
        if not isinstance(data, dict):
            return data
        node = {key: value for key, value in data.items() if key in DOCUMENT_ATTRIBUTES}
        if isinstance(data.get("files"), dict):
            node["files"] = data["files"]
        else:
            node["files"] = {
                key: value for key, value in data.items()
                if key not in DOCUMENT_ATTRIBUTES and isinstance(value, (dict, FileNode))
            }
        return node

    @model_serializer(mode="wrap")
    def flatten_files(self, handler):
        data = handler(self)
        files = data.pop("files", {})
        data.update(files)
        return data

    def add_relevant_values(self, value_field_ids: List[str]) -> None:
        for value_field_id in value_field_ids:
            if value_field_id not in self.relevant_values:
                self.relevant_values.append(value_field_id)

    @property
    def is_processed(self) -> bool:
        """At least one file, and every file carries an extraction confidence"""
        return bool(self.files) and all(
            file.is_processed for file in self.files.values()
        )


class ExtractionStructure(BaseModel):
    """Everything extracted for one application, plus its stored revision"""
    persons: Dict[str, Dict[str, DocumentNode]] = Field(default_factory=dict)
    version: int = Field(0, ge=0, description="Revision the structure was read at")

    def node(self, person_key: str, document_type_id: str) -> Optional[DocumentNode]:
        return self.persons.get(person_key, {}).get(document_type_id)

    def file(self, person_key: str, document_type_id: str, file_name: str) -> Optional[FileNode]:
        document = self.node(person_key, document_type_id)
        if document is None:
            return None
        return document.files.get(file_name)

    def iter_documents(self):
        for person_key, documents in self.persons.items():
            for document_type_id, document in documents.items():
                yield person_key, document_type_id, document

    def to_document(self) -> Dict[str, Any]:
        """Persisted JSON shape, without the revision"""
        return {
            person_key: {
                document_type_id: document.model_dump(by_alias=True, mode="json")
                for document_type_id, document in documents.items()
            }
            for person_key, documents in self.persons.items()
        }

    @classmethod
    def from_document(cls, document: Optional[Dict[str, Any]], version: int = 0) -> "ExtractionStructure":
        return cls(persons=document or {}, version=version)


class ExtractionResultUpdate(BaseModel):
    """Extractor output for one value of one uploaded file"""
    person_key: str = Field(..., alias="personKey")
    document_type_id: str = Field(..., alias="documentTypeId")
    file_name: str = Field(..., alias="fileName")
    value_field_id: str = Field(..., alias="valueFieldId")
    extracted_fields: Dict[str, Any] = Field(default_factory=dict, alias="extractedFields")
    expected_version: Optional[int] = Field(None, ge=0, alias="expectedVersion")

    model_config = ConfigDict(populate_by_name=True)
