"""Pytest configuration and shared fixtures."""

import copy
import os
from typing import Any, Dict, Optional, Tuple

import pytest

# Keep the test run independent of a developer's .env
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("API_PREFIX", "/api/v1")

from fastapi.testclient import TestClient

from extraction_planner.exceptions import PersistenceError, StaleStructureError
from extraction_planner.main import app
from extraction_planner.models import MAIN_APPLICANT_ID, FinancialProfile, Person, PersonRole
from extraction_planner.routes import get_extraction_service
from extraction_planner.rule_table import build_default_rule_table
from extraction_planner.services import DocumentValueExtractionService

APPLICATION_ID = "app-1"
RESIDENT_ID = "res-1"


class InMemoryStore:
    """Dict-backed stand-in for MongoService with the same async interface"""

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {}
        self.financials: Dict[str, Dict[str, Any]] = {}
        self.applications: Dict[str, Dict[str, Any]] = {}
        self.document_status: Dict[str, Dict[str, Any]] = {}
        self.structures: Dict[str, Tuple[Dict[str, Any], int]] = {}
        self.save_calls = 0

    async def get_user_record(self, resident_id: str) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.users.get(resident_id))

    async def get_financial_record(self, resident_id: str) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.financials.get(resident_id))

    async def get_application(self, application_id: str) -> Optional[Dict[str, Any]]:
        return copy.deepcopy(self.applications.get(application_id))

    async def get_document_status(self, resident_id: str) -> Dict[str, Any]:
        return copy.deepcopy(self.document_status.get(resident_id, {}))

    async def load_extraction_structure(self, application_id: str):
        stored = self.structures.get(application_id)
        if stored is None:
            return None
        document, version = stored
        return copy.deepcopy(document), version

    async def save_extraction_structure(self, application_id: str, document: Dict[str, Any],
                                        expected_version: int) -> int:
        if application_id not in self.applications:
            raise PersistenceError(application_id, "application not found")
        stored_version = self.structures.get(application_id, ({}, 0))[1]
        if stored_version != expected_version:
            raise StaleStructureError(application_id, expected_version, stored_version)
        self.save_calls += 1
        self.structures[application_id] = (copy.deepcopy(document), stored_version + 1)
        return stored_version + 1


def make_person(values: Optional[Dict[str, Any]] = None, person_id: str = MAIN_APPLICANT_ID,
                name: str = "Max Mustermann") -> Person:
    if person_id == MAIN_APPLICANT_ID:
        return Person(id=person_id, display_name=name, role=PersonRole.MAIN_APPLICANT,
                      profile=FinancialProfile(values=values or {}))
    return Person(id=person_id, display_name=name, role=PersonRole.ADDITIONAL_APPLICANT, uuid=person_id,
                  profile=FinancialProfile(values=values or {}))


@pytest.fixture
def rule_table():
    return build_default_rule_table()


@pytest.fixture
def store() -> InMemoryStore:
    """Store holding one application of one salaried main applicant"""
    store = InMemoryStore()
    store.applications[APPLICATION_ID] = {"id": APPLICATION_ID, "resident_id": RESIDENT_ID}
    store.users[RESIDENT_ID] = {
        "id": RESIDENT_ID,
        "firstname": "Max",
        "lastname": "Mustermann",
        "noIncome": False,
    }
    store.financials[RESIDENT_ID] = {
        "user_id": RESIDENT_ID,
        "isEarningRegularIncome": True,
        "prior_year_earning": "45000",
        "prior_year": "2023",
        "wheinachtsgeld_last12": None,
    }
    store.document_status[RESIDENT_ID] = {
        "hauptantragsteller": {
            "lohn_gehaltsbescheinigungen": [
                {"fileName": "lohn_jan.pdf", "filePath": "res-1/lohn_jan.pdf",
                 "uploadedAt": "2024-02-01T10:00:00", "uploaded": True},
                {"fileName": "lohn_feb.pdf", "filePath": "res-1/lohn_feb.pdf",
                 "uploadedAt": "2024-03-01T10:00:00", "uploaded": True},
            ]
        }
    }
    return store


@pytest.fixture
def service(store, rule_table) -> DocumentValueExtractionService:
    return DocumentValueExtractionService(store, rule_table)


@pytest.fixture
def test_client(service) -> TestClient:
    """Create FastAPI test client wired to the in-memory store.

    The client is not entered as a context manager, so the lifespan never
    connects to MongoDB.
    """
    app.dependency_overrides[get_extraction_service] = lambda: service
    return TestClient(app)


@pytest.fixture(autouse=True)
def clear_dependency_overrides():
    """Ensure FastAPI dependency overrides are reset between tests."""
    app.dependency_overrides = {}
    yield
    app.dependency_overrides = {}
