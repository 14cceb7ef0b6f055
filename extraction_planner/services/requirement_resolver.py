"""
Requirement resolver

Decides, per person and calculation purpose, which declared facts need
document corroboration. Presence rules are plain data so the income model can
be read (and tested) without walking through branching code.
"""
import logging
from typing import List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..models.plan import PersonValueRequirement
from ..models.profile import Person
from ..models.rules import CalculationType
from ..rule_table import RuleTable
from ..utils.validators import has_array_value, has_value

logger = logging.getLogger(__name__)


class PresenceRule(BaseModel):
    """Require ``value_field_ids`` when ``amount_field`` carries a value

    If ``gate_flag`` is set, the rule only applies when that has-X flag of the
    profile is truthy.
    """
    value_field_ids: Tuple[str, ...]
    amount_field: str
    gate_flag: Optional[str] = None
    array: bool = False

    model_config = ConfigDict(frozen=True)

    def is_satisfied(self, person: Person) -> bool:
        profile = person.profile
        if self.gate_flag and not profile.flag(self.gate_flag):
            return False
        amount = profile.get(self.amount_field)
        return has_array_value(amount) if self.array else has_value(amount)


def _rule(amount_field: str, gate_flag: Optional[str] = None, array: bool = False,
          also: Sequence[str] = ()) -> PresenceRule:
    return PresenceRule(
        value_field_ids=(amount_field, *also),
        amount_field=amount_field,
        gate_flag=gate_flag,
        array=array
    )


HOUSEHOLD_INCOME_RULES: Tuple[PresenceRule, ...] = (
    # regular employment
    _rule("prior_year_earning", "isEarningRegularIncome", also=("prior_year",)),
    _rule("wheinachtsgeld_last12", "isEarningRegularIncome"),
    _rule("urlaubsgeld_last12", "isEarningRegularIncome"),
    _rule("otherincome_last12", "isEarningRegularIncome"),
    # other income kinds
    _rule("incomebusiness"),
    _rule("incomeagriculture"),
    _rule("incomerent"),
    _rule("incomepension"),
    _rule("incomeablg"),
    _rule("incomeforeign"),
    _rule("incomeunterhalttaxfree"),
    _rule("incomeunterhalttaxable"),
    _rule("incomeothers"),
    _rule("incomepauschal"),
    # deductions
    _rule("werbungskosten", "isEarningRegularIncome"),
    _rule("kinderbetreuungskosten"),
    _rule("unterhaltszahlungen", "ispayingunterhalt"),
)

AVAILABLE_MONTHLY_INCOME_RULES: Tuple[PresenceRule, ...] = (
    # salaried employment
    _rule("monthlynetsalary", "hasSalaryIncome"),
    _rule("wheinachtsgeld_next12_net", "hasSalaryIncome"),
    _rule("urlaubsgeld_next12_net", "hasSalaryIncome"),
    _rule("otheremploymentmonthlynetincome", "hasSalaryIncome", array=True),
    # other net income
    _rule("incomeagriculture_net", "hasagricultureincome"),
    _rule("incomerent_net", "hasrentincome"),
    _rule("yearlycapitalnetincome", "hascapitalincome"),
    _rule("yearlybusinessnetincome", "hasbusinessincome"),
    _rule("yearlyselfemployednetincome", "hasbusinessincome"),
    _rule("pensionmonthlynetincome", "haspensionincome", array=True),
    _rule("incomeunterhalttaxfree", "hastaxfreeunterhaltincome"),
    _rule("incomeunterhalttaxable_net", "hastaxableunterhaltincome"),
    _rule("monthlypflegegeldnetincome", "haspflegegeldincome"),
    _rule("monthlyelterngeldnetincome", "haselterngeldincome"),
    # expenses
    _rule("betragotherinsurancetaxexpenses", array=True),
    _rule("unterhaltszahlungenTotal", "ispayingunterhalt", array=True),
)


class RequirementResolver:
    """Map a person's declared facts to the rule table entries they trigger"""

    def __init__(
        self,
        rule_table: RuleTable,
        household_income_rules: Sequence[PresenceRule] = HOUSEHOLD_INCOME_RULES,
        available_monthly_income_rules: Sequence[PresenceRule] = AVAILABLE_MONTHLY_INCOME_RULES
    ):
        self.rule_table = rule_table
        self._rules = {
            CalculationType.HOUSEHOLD_INCOME: tuple(household_income_rules),
            CalculationType.AVAILABLE_MONTHLY_INCOME: tuple(available_monthly_income_rules),
        }

    def rules_for(self, calculation_type: CalculationType) -> Tuple[PresenceRule, ...]:
        if calculation_type not in self._rules:
            raise ValueError(f"No presence rules for calculation type: {calculation_type}")
        return self._rules[calculation_type]

    def relevant_value_ids(self, person: Person, calculation_type: CalculationType) -> List[str]:
        """Value field ids whose presence rule fires, in rule order"""
        value_ids: List[str] = []
        for rule in self.rules_for(calculation_type):
            if not rule.is_satisfied(person):
                continue
            for value_field_id in rule.value_field_ids:
                if value_field_id not in value_ids:
                    value_ids.append(value_field_id)
        return value_ids

    def resolve(self, person: Person, calculation_type: CalculationType) -> Optional[PersonValueRequirement]:
        """
        Resolve one person's requirements for one purpose

        Args:
            person: Income-bearing household member
            calculation_type: household_income or available_monthly_income

        Returns:
            The requirement set, or None when nothing needs corroboration
        """
        value_ids = self.relevant_value_ids(person, calculation_type)
        if not value_ids:
            return None

        mappings = self.rule_table.mappings_for(value_ids, calculation_type)
        if not mappings:
            return None

        return PersonValueRequirement(
            person_id=person.id,
            person_name=person.display_name,
            role=person.role,
            person_uuid=person.uuid,
            applicant_key=person.applicant_key,
            calculation_type=calculation_type,
            required_values=mappings
        )

    def resolve_all(self, people: Sequence[Person], calculation_type: CalculationType) -> List[PersonValueRequirement]:
        requirements = []
        for person in people:
            requirement = self.resolve(person, calculation_type)
            if requirement is not None:
                requirements.append(requirement)
        logger.debug(f"Resolved {len(requirements)} {calculation_type.value} requirement sets")
        return requirements
