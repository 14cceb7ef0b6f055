"""
Structure updater

Writes OCR/AI extractor results into an in-memory extraction structure and
derives completion, summaries and progress from it.
"""
import logging
from collections import deque
from typing import Any, Deque, Dict, List

from ..exceptions import StructureAddressingWarning
from ..models.structure import ExtractionStructure

logger = logging.getLogger(__name__)

RECENT_SKIPPED_UPDATES = 100


class StructureUpdater:
    """Apply extractor results; unaddressable results are recorded, not raised"""

    def __init__(self, max_recent: int = RECENT_SKIPPED_UPDATES):
        self._skipped_count = 0
        # Only the latest warnings are kept; the count covers the whole lifetime
        self.skipped_updates: Deque[StructureAddressingWarning] = deque(maxlen=max_recent)

    @property
    def skipped_update_count(self) -> int:
        return self._skipped_count

    def update(
        self,
        structure: ExtractionStructure,
        person_key: str,
        document_type_id: str,
        file_name: str,
        value_field_id: str,
        extracted_fields: Dict[str, Any]
    ) -> bool:
        """
        Copy extracted fields into one value placeholder

        Args:
            structure: Structure to mutate in place
            person_key: 'main_applicant' or the member's key
            document_type_id: Document type of the file
            file_name: Uploaded file the values came from
            value_field_id: Value the fields belong to
            extracted_fields: Extractor output; keys the placeholder does not
                define are ignored. ``confidence``/``methodUsed`` go to the
                file node.

        Returns:
            True if the placeholder was found and updated
        """
        file = structure.file(person_key, document_type_id, file_name)
        record = file.values.get(value_field_id) if file is not None else None

        if record is None:
            warning = StructureAddressingWarning(person_key, document_type_id, file_name, value_field_id)
            self._skipped_count += 1
            self.skipped_updates.append(warning)
            logger.warning(str(warning))
            return False

        record.apply(extracted_fields)

        if extracted_fields.get("confidence"):
            file.confidence = extracted_fields["confidence"]
        method_used = extracted_fields.get("methodUsed") or extracted_fields.get("method_used")
        if method_used:
            file.method_used = method_used
        return True

    def refresh_completion(self, structure: ExtractionStructure) -> None:
        for _, _, document in structure.iter_documents():
            document.extraction_complete = document.is_processed

    def summarize(self, structure: ExtractionStructure) -> Dict[str, Dict[str, Dict[str, List[Dict[str, Any]]]]]:
        """person -> document type -> value id -> extracted data per file"""
        summary: Dict[str, Dict[str, Dict[str, List[Dict[str, Any]]]]] = {}
        for person_key, document_type_id, document in structure.iter_documents():
            values: Dict[str, List[Dict[str, Any]]] = {}
            for file_name, file in document.files.items():
                for value_field_id in document.relevant_values:
                    record = file.values.get(value_field_id)
                    if record is None:
                        continue
                    values.setdefault(value_field_id, []).append({
                        "fileName": file_name,
                        "filePath": file.file_path,
                        "data": record.model_dump(by_alias=True, mode="json"),
                        "confidence": file.confidence,
                        "methodUsed": file.method_used,
                    })
            summary.setdefault(person_key, {})[document_type_id] = values
        return summary

    def progress(self, structure: ExtractionStructure) -> Dict[str, Any]:
        total_files = 0
        processed_files = 0
        total_documents = 0
        completed_documents = 0

        for _, _, document in structure.iter_documents():
            if not document.files:
                continue
            total_documents += 1
            total_files += len(document.files)
            processed_files += sum(1 for file in document.files.values() if file.is_processed)
            if document.extraction_complete:
                completed_documents += 1

        percentage = round(processed_files / total_files * 100) if total_files else 0
        return {
            "totalFiles": total_files,
            "processedFiles": processed_files,
            "completedDocuments": completed_documents,
            "totalDocuments": total_documents,
            "progressPercentage": percentage,
        }
