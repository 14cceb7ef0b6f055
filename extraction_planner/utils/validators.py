"""
Utility functions for presence checks and legacy record normalization
"""
import logging
from typing import Any, Dict, List, Tuple

from ..models.profile import HouseholdMember, UploadedFile

logger = logging.getLogger(__name__)


def has_value(value: Any) -> bool:
    """
    Check if a declared value is present

    Args:
        value: Raw profile value

    Returns:
        False for None, the empty string and numeric zero, True otherwise.
        Booleans count as values.
    """
    if value is None or value == "":
        return False
    if isinstance(value, bool):
        return True
    if isinstance(value, (int, float)) and value == 0:
        return False
    return True


def has_array_value(value: Any) -> bool:
    """
    Check if a list of line items holds at least one amount

    Args:
        value: Raw profile value, expected to be a list of dicts

    Returns:
        True when some item carries an ``amount`` (or else ``amountTotal``)
        that satisfies ``has_value``
    """
    if not isinstance(value, list) or not value:
        return False
    for item in value:
        if not isinstance(item, dict):
            continue
        amount = item.get("amount") or item.get("amountTotal")
        if amount and has_value(amount):
            return True
    return False


def normalize_keyed_records(records: Any) -> List[Tuple[str, Dict[str, Any]]]:
    """
    Normalize the two historical storage shapes of per-person records

    Args:
        records: Either a list of records (legacy) or a dict keyed by UUID

    Returns:
        Ordered (key, record) pairs. List entries are keyed by their ``id``
        or, failing that, ``legacy_<index>``.
    """
    if not records:
        return []

    if isinstance(records, list):
        entries = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                logger.warning(f"Skipping non-object legacy record at index {index}")
                continue
            entries.append((str(record.get("id") or f"legacy_{index}"), record))
        return entries

    if isinstance(records, dict):
        return [(str(key), record) for key, record in records.items() if isinstance(record, dict)]

    logger.warning(f"Unexpected record container type: {type(records).__name__}")
    return []


def normalize_household_members(roster: Any) -> List[HouseholdMember]:
    """Build normalized household members from a list- or map-shaped roster"""
    members = []
    for key, record in normalize_keyed_records(roster):
        members.append(HouseholdMember(
            key=key,
            first_name=record.get("firstName") or record.get("firstname"),
            last_name=record.get("lastName") or record.get("lastname"),
            no_income=bool(record.get("noIncome")),
            not_household=bool(record.get("notHousehold")),
            raw=record
        ))
    return members


def parse_document_status(document_status: Any) -> Dict[str, Dict[str, List[UploadedFile]]]:
    """
    Turn the raw document status blob into the uploaded-file inventory

    Args:
        document_status: applicant key -> document type -> list of file dicts

    Returns:
        The same nesting with validated ``UploadedFile`` entries. Entries
        without a file name are dropped.
    """
    inventory: Dict[str, Dict[str, List[UploadedFile]]] = {}
    if not isinstance(document_status, dict):
        return inventory

    for applicant_key, documents in document_status.items():
        if not isinstance(documents, dict):
            continue
        applicant_inventory = inventory.setdefault(applicant_key, {})
        for document_type_id, files in documents.items():
            if not isinstance(files, list):
                continue
            applicant_inventory[document_type_id] = [
                UploadedFile.model_validate(entry)
                for entry in files
                if isinstance(entry, dict) and entry.get("fileName")
            ]
    return inventory
