"""
Error taxonomy for extraction planning and structure persistence
"""
from typing import Optional


class ExtractionPlannerError(Exception):
    """Base class for all planner errors"""


class ProfileLoadError(ExtractionPlannerError):
    """The core user record could not be fetched; planning is impossible."""

    def __init__(self, resident_id: str, reason: str = "user record not found"):
        self.resident_id = resident_id
        self.reason = reason
        super().__init__(f"Could not load profile for resident {resident_id}: {reason}")


class PersistenceError(ExtractionPlannerError):
    """Reading or writing an extraction structure failed. Safe to retry."""

    def __init__(self, application_id: str, message: str):
        self.application_id = application_id
        super().__init__(f"Application {application_id}: {message}")


class StaleStructureError(PersistenceError):
    """Save rejected because the stored structure moved past the caller's version."""

    def __init__(self, application_id: str, expected_version: int, stored_version: Optional[int] = None):
        self.expected_version = expected_version
        self.stored_version = stored_version
        message = f"stale extraction structure (expected version {expected_version}"
        if stored_version is not None:
            message += f", stored version {stored_version}"
        super().__init__(application_id, message + ")")


class RuleTableError(ExtractionPlannerError):
    """The value/document rule table violates an authoring invariant."""


class StructureAddressingWarning(UserWarning):
    """An extractor result addressed a node the plan never created.

    Recorded and logged by the structure updater, never raised.
    """

    def __init__(self, person_key: str, document_type_id: str, file_name: str, value_field_id: str):
        self.person_key = person_key
        self.document_type_id = document_type_id
        self.file_name = file_name
        self.value_field_id = value_field_id
        super().__init__(
            f"Could not find structure for {person_key}/{document_type_id}/{file_name}/{value_field_id}"
        )

    @property
    def path(self) -> str:
        return f"{self.person_key}/{self.document_type_id}/{self.file_name}/{self.value_field_id}"
