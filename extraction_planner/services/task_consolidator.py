"""
Task consolidator
"""
import logging
from typing import Dict, List, Sequence, Tuple

from ..models.plan import ExtractionTask, ExtractionValue, PersonValueRequirement, UnverifiableValue
from ..models.rules import CalculationType
from ..rule_table import RuleTable

logger = logging.getLogger(__name__)


class TaskConsolidator:
    """Merge per-purpose requirement sets into one task per (document type, person)"""

    def __init__(self, rule_table: RuleTable):
        self.rule_table = rule_table

    def consolidate(
        self,
        household_requirements: Sequence[PersonValueRequirement],
        available_requirements: Sequence[PersonValueRequirement]
    ) -> List[ExtractionTask]:
        """
        Build the deduplicated scan tasks

        Args:
            household_requirements: Requirement sets for household income
            available_requirements: Requirement sets for available monthly income

        Returns:
            Tasks in the order their key was first introduced
        """
        tasks: Dict[Tuple[str, str], ExtractionTask] = {}

        for requirement in [*household_requirements, *available_requirements]:
            for mapping in requirement.required_values:
                if not mapping.is_extractable:
                    continue

                key = (mapping.document_type_id, requirement.person_id)
                task = tasks.get(key)
                if task is None:
                    task = ExtractionTask(
                        document_type_id=mapping.document_type_id,
                        document_title=self.rule_table.document_title(mapping.document_type_id),
                        person_id=requirement.person_id,
                        person_name=requirement.person_name,
                        role=requirement.role,
                        person_uuid=requirement.person_uuid,
                        applicant_key=requirement.applicant_key,
                        values_to_extract=[]
                    )
                    tasks[key] = task

                existing = task.find_value(mapping.value_field_id)
                if existing is None:
                    task.values_to_extract.append(ExtractionValue(
                        value_field_id=mapping.value_field_id,
                        search_terms=list(mapping.search_terms),
                        calculation_type=requirement.calculation_type,
                        data_type=mapping.data_type,
                        is_required=mapping.is_required
                    ))
                    continue

                for term in mapping.search_terms:
                    if term not in existing.search_terms:
                        existing.search_terms.append(term)
                if existing.calculation_type != requirement.calculation_type:
                    existing.calculation_type = CalculationType.BOTH

        logger.debug(f"Consolidated {len(tasks)} extraction tasks")
        return list(tasks.values())

    def collect_unverifiable(self, *requirement_lists: Sequence[PersonValueRequirement]) -> List[UnverifiableValue]:
        """Declared facts no document type can supply, one entry per person and value"""
        unverifiable: List[UnverifiableValue] = []
        seen = set()
        for requirements in requirement_lists:
            for requirement in requirements:
                for mapping in requirement.required_values:
                    if mapping.is_extractable:
                        continue
                    key = (requirement.person_id, mapping.value_field_id, requirement.calculation_type)
                    if key in seen:
                        continue
                    seen.add(key)
                    unverifiable.append(UnverifiableValue(
                        person_id=requirement.person_id,
                        person_name=requirement.person_name,
                        value_field_id=mapping.value_field_id,
                        calculation_type=requirement.calculation_type
                    ))
        return unverifiable
