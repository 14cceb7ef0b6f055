"""
Document value extraction service

Facade over loader, resolver, consolidator, builder, updater and store. Planning
is rebuilt on every call; only the extraction structure is persisted.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..exceptions import ProfileLoadError
from ..models.plan import (
    DocumentExtractionTask,
    ExtractionPlan,
    ExtractionSummary,
    PersonValueRequirement,
    SummaryEntry,
)
from ..models.profile import Person, UploadedFile
from ..models.rules import CalculationType
from ..models.structure import RESERVED_NODE_KEYS, ExtractionResultUpdate, ExtractionStructure
from ..rule_table import RuleTable
from ..utils.validators import parse_document_status
from .profile_loader import FinancialProfileLoader
from .requirement_resolver import RequirementResolver
from .structure_builder import ExtractionStructureBuilder, Inventory
from .structure_updater import StructureUpdater
from .task_consolidator import TaskConsolidator

logger = logging.getLogger(__name__)


class DocumentValueExtractionService:
    """Plan document value extraction for applications and keep its results"""

    def __init__(
        self,
        store,
        rule_table: RuleTable,
        resolver: Optional[RequirementResolver] = None,
        updater: Optional[StructureUpdater] = None
    ):
        self.store = store
        self.rule_table = rule_table
        self.loader = FinancialProfileLoader(store)
        self.resolver = resolver or RequirementResolver(rule_table)
        self.consolidator = TaskConsolidator(rule_table)
        self.builder = ExtractionStructureBuilder()
        self.updater = updater or StructureUpdater()

    @property
    def skipped_update_count(self) -> int:
        return self.updater.skipped_update_count

    # Inputs
    async def get_resident_id(self, application_id: str) -> str:
        application = await self.store.get_application(application_id)
        if not application or not application.get("resident_id"):
            raise ProfileLoadError(application_id, "application not found")
        return application["resident_id"]

    async def load_inputs(self, application_id: str) -> Tuple[List[Person], Inventory]:
        """Fetch people and uploaded-file inventory of an application concurrently"""
        resident_id = await self.get_resident_id(application_id)
        records, document_status = await asyncio.gather(
            self.loader.fetch_records(resident_id),
            self.store.get_document_status(resident_id)
        )
        people = self.loader.build_people(*records)
        return people, parse_document_status(document_status)

    async def get_inventory(self, application_id: str) -> Inventory:
        resident_id = await self.get_resident_id(application_id)
        return parse_document_status(await self.store.get_document_status(resident_id))

    # Planning
    def plan_for_people(self, people: Sequence[Person]) -> ExtractionPlan:
        """Pure planning step: same people in, same plan out"""
        household = self.resolver.resolve_all(people, CalculationType.HOUSEHOLD_INCOME)
        available = self.resolver.resolve_all(people, CalculationType.AVAILABLE_MONTHLY_INCOME)
        tasks = self.consolidator.consolidate(household, available)

        return ExtractionPlan(
            household_income_requirements=household,
            available_monthly_income_requirements=available,
            consolidated_extraction_tasks=tasks,
            unverifiable_values=self.consolidator.collect_unverifiable(household, available),
            total_persons=len(people),
            total_documents_to_scan=len(tasks),
            total_values_to_extract=sum(len(task.values_to_extract) for task in tasks),
            rule_table_version=self.rule_table.version
        )

    async def create_extraction_plan(self, application_id: str) -> ExtractionPlan:
        """
        Create the extraction plan of an application

        Args:
            application_id: Application to plan for

        Returns:
            Requirements per purpose, consolidated tasks and totals

        Raises:
            ProfileLoadError: application or user record missing
        """
        resident_id = await self.get_resident_id(application_id)
        people = await self.loader.load_people(resident_id)
        plan = self.plan_for_people(people)
        logger.info(
            f"Extraction plan for {application_id}: {plan.total_persons} persons, "
            f"{plan.total_documents_to_scan} documents, {plan.total_values_to_extract} values"
        )
        return plan

    async def generate_extraction_summary(self, application_id: str) -> ExtractionSummary:
        plan = await self.create_extraction_plan(application_id)
        return self.summary_for_plan(plan)

    def summary_for_plan(self, plan: ExtractionPlan) -> ExtractionSummary:
        summary = ExtractionSummary(
            household_income=self._requirements_by_name(plan.household_income_requirements),
            available_monthly_income=self._requirements_by_name(plan.available_monthly_income_requirements)
        )
        for task in plan.consolidated_extraction_tasks:
            person_values = summary.values_per_person.setdefault(task.person_name, {})
            for value in task.values_to_extract:
                self._merge_entry(person_values, value.value_field_id, task.document_type_id, value.search_terms)
        return summary

    def _requirements_by_name(
        self,
        requirements: Sequence[PersonValueRequirement]
    ) -> Dict[str, Dict[str, SummaryEntry]]:
        by_name: Dict[str, Dict[str, SummaryEntry]] = {}
        for requirement in requirements:
            person_values = by_name.setdefault(requirement.person_name, {})
            for mapping in requirement.required_values:
                self._merge_entry(person_values, mapping.value_field_id, mapping.document_type_id,
                                  mapping.search_terms)
        return by_name

    @staticmethod
    def _merge_entry(entries: Dict[str, SummaryEntry], value_field_id: str, document_type_id: Optional[str],
                     search_terms: Sequence[str]) -> None:
        entry = entries.get(value_field_id)
        if entry is None:
            entries[value_field_id] = SummaryEntry(docid=document_type_id, search_terms=list(search_terms))
            return
        for term in search_terms:
            if term not in entry.search_terms:
                entry.search_terms.append(term)

    # Structure
    async def generate_document_extraction_structure(
        self,
        application_id: str,
        preserve_existing: bool = False
    ) -> ExtractionStructure:
        """
        Build the extraction structure for the current plan and uploads

        Args:
            application_id: Application to build for
            preserve_existing: Carry over results of the stored structure

        Returns:
            A structure at the stored version when preserving, else version 0
        """
        people, inventory = await self.load_inputs(application_id)
        plan = self.plan_for_people(people)

        previous = None
        if preserve_existing:
            previous = await self.load_extraction_structure_from_database(application_id)

        return self.builder.build(plan.consolidated_extraction_tasks, inventory, previous=previous)

    def update_extraction_structure_with_results(
        self,
        structure: ExtractionStructure,
        person_key: str,
        document_type_id: str,
        file_name: str,
        value_field_id: str,
        extracted_fields: Dict[str, Any]
    ) -> None:
        self.updater.update(structure, person_key, document_type_id, file_name, value_field_id, extracted_fields)

    async def save_extraction_structure_to_database(
        self,
        application_id: str,
        structure: ExtractionStructure,
        expected_version: Optional[int] = None
    ) -> None:
        """Persist the structure; its version is bumped on success

        Raises:
            StaleStructureError: someone saved since the structure was read
            PersistenceError: the write failed
        """
        if expected_version is None:
            expected_version = structure.version
        structure.version = await self.store.save_extraction_structure(
            application_id, structure.to_document(), expected_version
        )

    async def load_extraction_structure_from_database(self, application_id: str) -> Optional[ExtractionStructure]:
        stored = await self.store.load_extraction_structure(application_id)
        if stored is None:
            return None
        document, version = stored
        return ExtractionStructure.from_document(document, version=version)

    async def create_and_save_extraction_structure(
        self,
        application_id: str,
        preserve_existing: bool = False
    ) -> ExtractionStructure:
        """Rebuild the structure and overwrite the stored one at its current version"""
        (people, inventory), stored = await asyncio.gather(
            self.load_inputs(application_id),
            self.load_extraction_structure_from_database(application_id)
        )
        plan = self.plan_for_people(people)
        structure = self.builder.build(
            plan.consolidated_extraction_tasks,
            inventory,
            previous=stored if preserve_existing else None
        )
        await self.save_extraction_structure_to_database(
            application_id, structure, expected_version=stored.version if stored else 0
        )
        return structure

    async def record_extraction_result(
        self,
        application_id: str,
        update: ExtractionResultUpdate
    ) -> Tuple[Optional[ExtractionStructure], bool]:
        """
        Load, update, refresh completion and save in one step

        Returns:
            (structure, applied). The structure is None when nothing is stored
            yet; applied is False when the result addressed an unknown node.
        """
        structure = await self.load_extraction_structure_from_database(application_id)
        if structure is None:
            return None, False

        applied = self.updater.update(
            structure,
            update.person_key,
            update.document_type_id,
            update.file_name,
            update.value_field_id,
            update.extracted_fields
        )
        if not applied:
            return structure, False

        self.updater.refresh_completion(structure)
        await self.save_extraction_structure_to_database(
            application_id, structure, expected_version=update.expected_version
        )
        return structure, True

    # Extractor hand-off and review
    async def build_document_extraction_tasks(self, application_id: str) -> List[DocumentExtractionTask]:
        """One work item per uploaded file of every planned (person, document type)"""
        people, inventory = await self.load_inputs(application_id)
        plan = self.plan_for_people(people)

        work_items = []
        for task in plan.consolidated_extraction_tasks:
            for entry in inventory.get(task.applicant_key, {}).get(task.document_type_id, []):
                if not entry.uploaded or entry.file_name in RESERVED_NODE_KEYS:
                    continue
                work_items.append(DocumentExtractionTask(
                    document_type_id=task.document_type_id,
                    person_key=task.person_id,
                    file_name=entry.file_name,
                    file_path=entry.file_path,
                    values_to_extract=task.values_to_extract
                ))
        return work_items

    async def get_extraction_progress(self, application_id: str) -> Dict[str, Any]:
        structure = await self.load_extraction_structure_from_database(application_id)
        if structure is None:
            return self.updater.progress(ExtractionStructure())
        return self.updater.progress(structure)

    def get_extraction_summary_from_structure(self, structure: ExtractionStructure) -> Dict[str, Any]:
        return self.updater.summarize(structure)

    async def list_uploaded_files(
        self,
        application_id: str,
        applicant_key: str,
        document_type_id: str
    ) -> List[UploadedFile]:
        inventory = await self.get_inventory(application_id)
        return [
            entry for entry in inventory.get(applicant_key, {}).get(document_type_id, [])
            if entry.uploaded
        ]

    async def is_document_uploaded_for_person(
        self,
        application_id: str,
        applicant_key: str,
        document_type_id: str
    ) -> bool:
        return bool(await self.list_uploaded_files(application_id, applicant_key, document_type_id))

    async def get_uploaded_document_paths(
        self,
        application_id: str,
        applicant_key: str,
        document_type_id: str
    ) -> List[str]:
        files = await self.list_uploaded_files(application_id, applicant_key, document_type_id)
        return [entry.file_path for entry in files if entry.file_path]
