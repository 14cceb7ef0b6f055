"""
Tests for presence predicates and requirement resolution
"""
import pytest

from conftest import make_person
from extraction_planner.models import CalculationType
from extraction_planner.services import (
    AVAILABLE_MONTHLY_INCOME_RULES,
    HOUSEHOLD_INCOME_RULES,
    PresenceRule,
    RequirementResolver,
)
from extraction_planner.utils import has_array_value, has_value

HOUSEHOLD = CalculationType.HOUSEHOLD_INCOME
AVAILABLE = CalculationType.AVAILABLE_MONTHLY_INCOME

GATED_RULES = [
    (HOUSEHOLD, rule) for rule in HOUSEHOLD_INCOME_RULES if rule.gate_flag
] + [
    (AVAILABLE, rule) for rule in AVAILABLE_MONTHLY_INCOME_RULES if rule.gate_flag
]


def filled_amount(rule):
    return [{"amount": "100"}] if rule.array else "100"


class TestPresencePredicates:

    @pytest.mark.parametrize("value,expected", [
        (None, False),
        ("", False),
        (0, False),
        (0.0, False),
        ("0", True),
        ("45000", True),
        (1200, True),
        (False, True),
        (True, True),
    ])
    def test_has_value(self, value, expected):
        assert has_value(value) is expected

    def test_has_array_value(self):
        assert has_array_value([{"amount": "120"}])
        assert has_array_value([{"amount": "", "amountTotal": 50}])
        assert not has_array_value([])
        assert not has_array_value([{"amount": 0}])
        assert not has_array_value([{"label": "x"}])
        assert not has_array_value("120")
        assert not has_array_value(None)


class TestRequirementResolver:

    def value_ids(self, requirement):
        return [m.value_field_id for m in requirement.required_values]

    def test_salaried_applicant(self, rule_table):
        person = make_person({
            "isEarningRegularIncome": True,
            "prior_year_earning": "45000",
            "prior_year": "2023",
            "wheinachtsgeld_last12": None,
        })
        requirement = RequirementResolver(rule_table).resolve(person, HOUSEHOLD)

        assert self.value_ids(requirement) == ["prior_year_earning", "prior_year"]
        assert {m.document_type_id for m in requirement.required_values} == {"lohn_gehaltsbescheinigungen"}
        assert requirement.applicant_key == "hauptantragsteller"

    def test_gate_flag_off_suppresses_salary(self, rule_table):
        person = make_person({"isEarningRegularIncome": False, "prior_year_earning": "45000"})
        assert RequirementResolver(rule_table).resolve(person, HOUSEHOLD) is None

    def test_gate_flag_on_without_amount(self, rule_table):
        person = make_person({"isEarningRegularIncome": True, "prior_year_earning": ""})
        assert RequirementResolver(rule_table).resolve(person, HOUSEHOLD) is None

    def test_ungated_income_kinds(self, rule_table):
        person = make_person({"incomerent": "6000", "incomepension": 0, "kinderbetreuungskosten": "900"})
        requirement = RequirementResolver(rule_table).resolve(person, HOUSEHOLD)
        assert self.value_ids(requirement) == ["incomerent", "incomerent", "kinderbetreuungskosten"]

    def test_unterhalt_gated_by_paying_flag(self, rule_table):
        resolver = RequirementResolver(rule_table)
        without_flag = make_person({"unterhaltszahlungen": "300"})
        with_flag = make_person({"unterhaltszahlungen": "300", "ispayingunterhalt": True})
        assert resolver.resolve(without_flag, HOUSEHOLD) is None
        assert self.value_ids(resolver.resolve(with_flag, HOUSEHOLD)) == ["unterhaltszahlungen"]

    def test_incomeothers_is_required_but_not_extractable(self, rule_table):
        person = make_person({"incomeothers": "500"})
        requirement = RequirementResolver(rule_table).resolve(person, HOUSEHOLD)
        assert len(requirement.required_values) == 1
        assert requirement.required_values[0].is_extractable is False

    def test_available_income_salary_and_arrays(self, rule_table):
        person = make_person({
            "hasSalaryIncome": True,
            "monthlynetsalary": "2800",
            "otheremploymentmonthlynetincome": [{"amount": "150"}],
            "betragotherinsurancetaxexpenses": [{"amount": 0}],
            "haspensionincome": True,
            "pensionmonthlynetincome": [{"amount": "", "amountTotal": ""}],
        })
        requirement = RequirementResolver(rule_table).resolve(person, AVAILABLE)
        assert self.value_ids(requirement) == ["monthlynetsalary", "otheremploymentmonthlynetincome"]

    def test_business_flag_covers_two_values(self, rule_table):
        person = make_person({
            "hasbusinessincome": True,
            "yearlybusinessnetincome": "20000",
            "yearlyselfemployednetincome": "5000",
        })
        requirement = RequirementResolver(rule_table).resolve(person, AVAILABLE)
        assert self.value_ids(requirement) == ["yearlybusinessnetincome", "yearlyselfemployednetincome"]

    def test_loans_have_no_presence_rule(self, rule_table):
        person = make_person({"loans": [{"amount": "400"}], "zwischenkredit": [{"amount": "100"}]})
        assert RequirementResolver(rule_table).resolve(person, AVAILABLE) is None

    def test_resolution_is_pure(self, rule_table):
        resolver = RequirementResolver(rule_table)
        person = make_person({"isEarningRegularIncome": True, "prior_year_earning": "45000", "incomerent": 1})
        first = resolver.resolve(person, HOUSEHOLD)
        second = resolver.resolve(person, HOUSEHOLD)
        assert first == second

    def test_resolve_all_skips_people_without_requirements(self, rule_table):
        people = [
            make_person({"incomerent": "100"}),
            make_person({}, person_id="uuid-a", name="Erika"),
        ]
        requirements = RequirementResolver(rule_table).resolve_all(people, HOUSEHOLD)
        assert [r.person_id for r in requirements] == ["main_applicant"]

    def test_custom_rules_injected(self, rule_table):
        rules = [PresenceRule(value_field_ids=("incomerent",), amount_field="rent_flag_amount")]
        resolver = RequirementResolver(rule_table, household_income_rules=rules)
        requirement = resolver.resolve(make_person({"rent_flag_amount": 5}), HOUSEHOLD)
        assert self.value_ids(requirement) == ["incomerent", "incomerent"]

    def test_both_is_not_a_resolvable_purpose(self, rule_table):
        with pytest.raises(ValueError):
            RequirementResolver(rule_table).resolve(make_person({}), CalculationType.BOTH)


class TestGatedRules:

    @pytest.mark.parametrize("calculation_type,rule", GATED_RULES,
                             ids=[f"{rule.gate_flag}-{rule.amount_field}" for _, rule in GATED_RULES])
    @pytest.mark.parametrize("flag_values", [{}, {"flag": False}], ids=["flag-absent", "flag-false"])
    def test_amount_ignored_without_flag(self, rule_table, calculation_type, rule, flag_values):
        values = {rule.amount_field: filled_amount(rule)}
        if flag_values:
            values[rule.gate_flag] = flag_values["flag"]
        person = make_person(values)
        resolver = RequirementResolver(rule_table)

        assert not set(rule.value_field_ids) & set(resolver.relevant_value_ids(person, calculation_type))
        requirement = resolver.resolve(person, calculation_type)
        resolved = [] if requirement is None else [m.value_field_id for m in requirement.required_values]
        assert not set(rule.value_field_ids) & set(resolved)

    @pytest.mark.parametrize("calculation_type,rule", GATED_RULES,
                             ids=[f"{rule.gate_flag}-{rule.amount_field}" for _, rule in GATED_RULES])
    def test_amount_required_with_flag(self, rule_table, calculation_type, rule):
        person = make_person({rule.amount_field: filled_amount(rule), rule.gate_flag: True})
        value_ids = RequirementResolver(rule_table).relevant_value_ids(person, calculation_type)
        assert set(rule.value_field_ids) <= set(value_ids)

    def test_every_has_flag_is_covered(self):
        flags = {rule.gate_flag for _, rule in GATED_RULES}
        assert flags == {
            "isEarningRegularIncome", "ispayingunterhalt", "hasSalaryIncome", "hasagricultureincome",
            "hasrentincome", "hascapitalincome", "hasbusinessincome", "haspensionincome",
            "hastaxfreeunterhaltincome", "hastaxableunterhaltincome", "haspflegegeldincome",
            "haselterngeldincome",
        }
