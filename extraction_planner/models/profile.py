"""
Pydantic models for household members, their financial profiles and uploads
"""
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator, ConfigDict

MAIN_APPLICANT_ID = "main_applicant"
MAIN_APPLICANT_DOCUMENT_KEY = "hauptantragsteller"


class PersonRole(str, Enum):
    MAIN_APPLICANT = "main_applicant"
    ADDITIONAL_APPLICANT = "additional_applicant"


class FinancialProfile(BaseModel):
    """Declared financial facts of one person, read-only to the planner"""
    values: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)

    def flag(self, name: str) -> bool:
        """Truthiness of a has-X gating flag"""
        return bool(self.values.get(name))

    @property
    def is_empty(self) -> bool:
        return not self.values


class HouseholdMember(BaseModel):
    """Roster entry after legacy-shape normalization"""
    key: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    no_income: bool = False
    not_household: bool = False
    raw: Dict[str, Any] = Field(default_factory=dict)

    @property
    def display_name(self) -> str:
        return f"{self.first_name or 'Person'} {self.last_name or ''}".strip()


class Person(BaseModel):
    """A household member who is a source of income for the application"""
    id: str = Field(..., description="'main_applicant' or the member's stable key")
    display_name: str = Field(..., alias="displayName")
    role: PersonRole
    uuid: Optional[str] = Field(None, description="Roster key of additional applicants")
    profile: FinancialProfile = Field(default_factory=FinancialProfile)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_main_applicant(self) -> bool:
        return self.role == PersonRole.MAIN_APPLICANT

    @property
    def applicant_key(self) -> str:
        """Key under which the document inventory files this person's uploads"""
        if self.is_main_applicant:
            return MAIN_APPLICANT_DOCUMENT_KEY
        return f"applicant_{self.uuid}"

    @property
    def person_key(self) -> str:
        """Key of this person in the extraction structure"""
        return self.id


class UploadedFile(BaseModel):
    """One entry of the uploaded-file inventory"""
    file_name: str = Field(..., alias="fileName")
    file_path: Optional[str] = Field(None, alias="filePath")
    uploaded_at: Optional[str] = Field(None, alias="uploadedAt")
    uploaded: bool = False

    model_config = ConfigDict(populate_by_name=True)

    @field_validator('uploaded_at', mode='before')
    @classmethod
    def format_uploaded_at(cls, v):
        # Mongo hands back datetimes, the structure stores ISO strings
        if isinstance(v, datetime):
            return v.isoformat()
        return v
