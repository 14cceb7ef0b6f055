"""
Extraction structure builder
"""
import logging
from typing import Dict, List, Optional, Sequence

from ..models.plan import ExtractionTask
from ..models.profile import UploadedFile
from ..models.structure import (
    RESERVED_NODE_KEYS,
    DocumentNode,
    ExtractionStructure,
    FileNode,
    value_record_for
)

logger = logging.getLogger(__name__)

Inventory = Dict[str, Dict[str, List[UploadedFile]]]


class ExtractionStructureBuilder:
    """Create the empty result schema for a plan and the uploaded files"""

    def build(
        self,
        tasks: Sequence[ExtractionTask],
        inventory: Inventory,
        previous: Optional[ExtractionStructure] = None
    ) -> ExtractionStructure:
        """
        Build the extraction structure

        Args:
            tasks: Consolidated extraction tasks
            inventory: applicant key -> document type id -> uploaded files
            previous: Structure of an earlier run whose results should survive

        Returns:
            One document node per (person, document type) of the tasks, even
            when nothing has been uploaded for it yet
        """
        structure = ExtractionStructure(version=previous.version if previous else 0)

        for task in tasks:
            documents = structure.persons.setdefault(task.person_id, {})
            document = documents.get(task.document_type_id)
            if document is None:
                document = DocumentNode()
                documents[task.document_type_id] = document
            document.add_relevant_values([value.value_field_id for value in task.values_to_extract])

            uploaded = [
                entry for entry in inventory.get(task.applicant_key, {}).get(task.document_type_id, [])
                if entry.uploaded
            ]
            for entry in uploaded:
                if entry.file_name in RESERVED_NODE_KEYS:
                    logger.warning(
                        f"Skipping upload {entry.file_name!r} of {task.document_type_id}: "
                        f"file name collides with a structure key"
                    )
                    continue
                document.files.setdefault(entry.file_name, FileNode(
                    file_path=entry.file_path,
                    uploaded_at=entry.uploaded_at
                ))
            document.number_of_files = len(document.files)

        for person_key, document_type_id, document in structure.iter_documents():
            for file_name, file in document.files.items():
                for value_field_id in document.relevant_values:
                    if value_field_id not in file.values:
                        file.values[value_field_id] = value_record_for(value_field_id)
                if previous is not None:
                    self._carry_over(file, previous.file(person_key, document_type_id, file_name))
            document.extraction_complete = document.is_processed

        logger.info(
            f"Built extraction structure: {len(structure.persons)} persons, "
            f"{sum(1 for _ in structure.iter_documents())} document nodes"
        )
        return structure

    @staticmethod
    def _carry_over(file: FileNode, previous_file: Optional[FileNode]) -> None:
        if previous_file is None:
            return
        file.confidence = previous_file.confidence
        file.method_used = previous_file.method_used
        for value_field_id, record in previous_file.values.items():
            if value_field_id in file.values:
                file.values[value_field_id] = value_record_for(value_field_id, record)
