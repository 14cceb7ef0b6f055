"""
Tests for the value/document rule table
"""
import pytest

from extraction_planner.exceptions import RuleTableError
from extraction_planner.models import (
    CalculationType,
    DataType,
    DocumentType,
    ValueField,
    ValueToDocumentMapping,
)
from extraction_planner.rule_table import RuleTable, build_default_rule_table


def small_table_parts():
    fields = [
        ValueField(id="incomerent", label="Miete"),
        ValueField(id="prior_year", label="Jahr", data_type=DataType.NUMBER),
    ]
    documents = [
        DocumentType(document_type_id="einkommenssteuerbescheid", title="Einkommenssteuerbescheid"),
    ]
    return fields, documents


class TestDefaultRuleTable:

    def test_catalogue_size_and_version(self):
        table = build_default_rule_table()
        assert table.version == "2024.1"
        assert len(table.mappings) == 42
        assert len(table.document_types) == 22
        assert len(table.value_fields) == 40

    def test_unknown_version_is_rejected(self):
        with pytest.raises(RuleTableError, match="1999.9"):
            build_default_rule_table("1999.9")

    def test_every_mapping_points_at_known_entries(self, rule_table):
        for mapping in rule_table.mappings:
            assert rule_table.value_field(mapping.value_field_id) is not None
            if mapping.document_type_id is not None:
                assert rule_table.document_type(mapping.document_type_id) is not None
                assert mapping.search_terms

    def test_incomerent_has_two_documents(self, rule_table):
        documents = [
            m.document_type_id for m in rule_table.mappings_for(["incomerent"], CalculationType.HOUSEHOLD_INCOME)
        ]
        assert documents == ["einkommenssteuerbescheid", "einkommenssteuererklaerung"]

    def test_incomeothers_has_no_document(self, rule_table):
        mappings = rule_table.mappings_for(["incomeothers"], CalculationType.HOUSEHOLD_INCOME)
        assert len(mappings) == 1
        assert mappings[0].is_extractable is False

    def test_data_type_copied_from_value_field(self, rule_table):
        mapping = rule_table.mappings_for(["prior_year"], CalculationType.HOUSEHOLD_INCOME)[0]
        assert mapping.data_type == DataType.NUMBER

    def test_mappings_for_filters_by_purpose(self, rule_table):
        household = rule_table.mappings_for(["incomeunterhalttaxfree"], CalculationType.HOUSEHOLD_INCOME)
        available = rule_table.mappings_for(["incomeunterhalttaxfree"], CalculationType.AVAILABLE_MONTHLY_INCOME)
        assert [m.search_terms[0] for m in household] == ["payment"]
        assert [m.search_terms[0] for m in available] == ["maintenance_net_amount"]

    def test_document_title_falls_back_to_id(self, rule_table):
        assert rule_table.document_title("lohn_gehaltsbescheinigungen") == "Lohn-/Gehaltsbescheinigungen"
        assert rule_table.document_title("unknown_doc") == "unknown_doc"

    def test_to_dict_uses_wire_names(self, rule_table):
        dumped = rule_table.to_dict()
        assert dumped["version"] == "2024.1"
        assert "valueFieldId" in dumped["mappings"][0]


class TestRuleTableValidation:

    def test_rejects_duplicate_triple(self):
        fields, documents = small_table_parts()
        mapping = ValueToDocumentMapping(
            value_field_id="incomerent",
            document_type_id="einkommenssteuerbescheid",
            search_terms=["annual_gross_income"],
            calculation_type=CalculationType.HOUSEHOLD_INCOME
        )
        with pytest.raises(RuleTableError, match="Duplicate mapping"):
            RuleTable(fields, documents, [mapping, mapping])

    def test_rejects_empty_search_terms(self):
        fields, documents = small_table_parts()
        mapping = ValueToDocumentMapping(
            value_field_id="incomerent",
            document_type_id="einkommenssteuerbescheid",
            search_terms=[],
            calculation_type=CalculationType.HOUSEHOLD_INCOME
        )
        with pytest.raises(RuleTableError, match="no search terms"):
            RuleTable(fields, documents, [mapping])

    def test_rejects_both_in_table(self):
        fields, documents = small_table_parts()
        mapping = ValueToDocumentMapping(
            value_field_id="incomerent",
            document_type_id="einkommenssteuerbescheid",
            search_terms=["x"],
            calculation_type=CalculationType.BOTH
        )
        with pytest.raises(RuleTableError, match="single calculation type"):
            RuleTable(fields, documents, [mapping])

    def test_rejects_unknown_references(self):
        fields, documents = small_table_parts()
        unknown_field = ValueToDocumentMapping(
            value_field_id="nope", document_type_id=None, calculation_type=CalculationType.HOUSEHOLD_INCOME
        )
        unknown_document = ValueToDocumentMapping(
            value_field_id="incomerent", document_type_id="nope", search_terms=["x"],
            calculation_type=CalculationType.HOUSEHOLD_INCOME
        )
        with pytest.raises(RuleTableError, match="unknown value field"):
            RuleTable(fields, documents, [unknown_field])
        with pytest.raises(RuleTableError, match="unknown document type"):
            RuleTable(fields, documents, [unknown_document])

    def test_mapping_without_document_needs_no_search_terms(self):
        fields, documents = small_table_parts()
        mapping = ValueToDocumentMapping(
            value_field_id="incomerent", document_type_id=None, calculation_type=CalculationType.HOUSEHOLD_INCOME
        )
        table = RuleTable(fields, documents, [mapping], version="test")
        assert table.version == "test"
        assert len(table.mappings) == 1

    def test_search_terms_deduplicated(self):
        mapping = ValueToDocumentMapping(
            value_field_id="incomerent",
            document_type_id="einkommenssteuerbescheid",
            search_terms=["a", "b", "a"],
            calculation_type=CalculationType.HOUSEHOLD_INCOME
        )
        assert mapping.search_terms == ["a", "b"]
