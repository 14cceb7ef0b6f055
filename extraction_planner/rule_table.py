"""
Value/document rule table

The table is the single source of truth for what can be extracted and from
which document. It is built once at startup and handed to the resolver and
the consolidator; tests build their own fixture tables.
"""
import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .exceptions import RuleTableError
from .models.rules import (
    CalculationMethod,
    CalculationType,
    DataType,
    DocumentType,
    MappingConfidence,
    ValueField,
    ValueToDocumentMapping,
)

logger = logging.getLogger(__name__)

DEFAULT_RULE_TABLE_VERSION = "2024.1"


class RuleTable:
    """Validated, read-only catalogue of value/document mappings"""

    def __init__(
        self,
        value_fields: Iterable[ValueField],
        document_types: Iterable[DocumentType],
        mappings: Iterable[ValueToDocumentMapping],
        version: str = DEFAULT_RULE_TABLE_VERSION
    ):
        self.version = version
        self._value_fields: Dict[str, ValueField] = {}
        for field in value_fields:
            if field.id in self._value_fields:
                raise RuleTableError(f"Duplicate value field: {field.id}")
            self._value_fields[field.id] = field

        self._document_types: Dict[str, DocumentType] = {}
        for document_type in document_types:
            if document_type.document_type_id in self._document_types:
                raise RuleTableError(f"Duplicate document type: {document_type.document_type_id}")
            self._document_types[document_type.document_type_id] = document_type

        self._mappings: Tuple[ValueToDocumentMapping, ...] = tuple(
            self._validate_mappings(mappings)
        )
        logger.debug(
            f"Rule table {version} loaded: {len(self._mappings)} mappings, "
            f"{len(self._value_fields)} value fields, {len(self._document_types)} document types"
        )

    def _validate_mappings(self, mappings: Iterable[ValueToDocumentMapping]) -> List[ValueToDocumentMapping]:
        seen = set()
        validated = []
        for mapping in mappings:
            field = self._value_fields.get(mapping.value_field_id)
            if field is None:
                raise RuleTableError(f"Mapping references unknown value field: {mapping.value_field_id}")

            if mapping.document_type_id is not None and mapping.document_type_id not in self._document_types:
                raise RuleTableError(
                    f"Mapping for {mapping.value_field_id} references unknown document type: "
                    f"{mapping.document_type_id}"
                )

            if mapping.calculation_type == CalculationType.BOTH:
                raise RuleTableError(
                    f"Mapping for {mapping.value_field_id} must name a single calculation type"
                )

            if mapping.document_type_id is not None and not mapping.search_terms:
                raise RuleTableError(
                    f"Mapping {mapping.value_field_id} -> {mapping.document_type_id} has no search terms"
                )

            triple = (mapping.value_field_id, mapping.document_type_id, mapping.calculation_type)
            if triple in seen:
                raise RuleTableError(f"Duplicate mapping: {triple[0]} / {triple[1]} / {triple[2].value}")
            seen.add(triple)

            validated.append(mapping.model_copy(update={"data_type": field.data_type}))
        return validated

    @property
    def mappings(self) -> Tuple[ValueToDocumentMapping, ...]:
        return self._mappings

    @property
    def value_fields(self) -> List[ValueField]:
        return list(self._value_fields.values())

    @property
    def document_types(self) -> List[DocumentType]:
        return list(self._document_types.values())

    def value_field(self, value_field_id: str) -> Optional[ValueField]:
        return self._value_fields.get(value_field_id)

    def document_type(self, document_type_id: str) -> Optional[DocumentType]:
        return self._document_types.get(document_type_id)

    def document_title(self, document_type_id: str) -> str:
        document_type = self._document_types.get(document_type_id)
        return document_type.title if document_type else document_type_id

    def mappings_for(
        self,
        value_field_ids: Sequence[str],
        calculation_type: CalculationType
    ) -> List[ValueToDocumentMapping]:
        """Mappings of the given value fields for one purpose, in table order"""
        wanted = set(value_field_ids)
        return [
            mapping for mapping in self._mappings
            if mapping.value_field_id in wanted
            and mapping.calculation_type in (calculation_type, CalculationType.BOTH)
        ]

    def to_dict(self) -> Dict:
        return {
            "version": self.version,
            "value_fields": [field.model_dump(by_alias=True) for field in self.value_fields],
            "document_types": [doc.model_dump(by_alias=True) for doc in self.document_types],
            "mappings": [mapping.model_dump(by_alias=True) for mapping in self._mappings],
        }


def _field(value_field_id: str, label: str, method: CalculationMethod, data_type: DataType = DataType.CURRENCY,
           is_array: bool = False) -> ValueField:
    return ValueField(id=value_field_id, label=label, data_type=data_type, calculation_method=method, is_array=is_array)


def _document(document_type_id: str, title: str, supports_multiple: bool = True) -> DocumentType:
    return DocumentType(document_type_id=document_type_id, title=title, supports_multiple=supports_multiple)


def _mapping(value_field_id: str, document_type_id: Optional[str], search_terms: List[str],
             calculation_type: CalculationType,
             confidence: MappingConfidence = MappingConfidence.HIGH) -> ValueToDocumentMapping:
    return ValueToDocumentMapping(
        value_field_id=value_field_id,
        document_type_id=document_type_id,
        search_terms=search_terms,
        calculation_type=calculation_type,
        confidence=confidence
    )


MONTHLY = CalculationMethod.MONTHLY
YEARLY = CalculationMethod.YEARLY
HOUSEHOLD = CalculationType.HOUSEHOLD_INCOME
AVAILABLE = CalculationType.AVAILABLE_MONTHLY_INCOME
MEDIUM = MappingConfidence.MEDIUM

DEFAULT_VALUE_FIELDS = [
    # Gross annual household income
    _field("prior_year_earning", "Bruttojahreseinkommen Vorjahr", YEARLY),
    _field("prior_year", "Bezugsjahr", CalculationMethod.NONE, DataType.NUMBER),
    _field("wheinachtsgeld_last12", "Weihnachtsgeld (letzte 12 Monate)", YEARLY),
    _field("urlaubsgeld_last12", "Urlaubsgeld (letzte 12 Monate)", YEARLY),
    _field("otherincome_last12", "Sonstige Bezüge (letzte 12 Monate)", YEARLY),
    _field("incomebusiness", "Einkünfte aus Gewerbebetrieb", YEARLY),
    _field("incomeagriculture", "Einkünfte aus Land-/Forstwirtschaft", YEARLY),
    _field("incomerent", "Einkünfte aus Vermietung und Verpachtung", YEARLY),
    _field("incomepension", "Einkünfte aus Renten/Versorgungsbezügen", MONTHLY),
    _field("incomeablg", "Arbeitslosengeld", MONTHLY),
    _field("incomeforeign", "Ausländische Einkünfte", YEARLY),
    _field("incomeunterhalttaxfree", "Steuerfreie Unterhaltsleistungen", MONTHLY),
    _field("incomeunterhalttaxable", "Steuerpflichtige Unterhaltsleistungen", MONTHLY),
    _field("incomeothers", "Sonstige Einkünfte", YEARLY),
    _field("incomepauschal", "Pauschal besteuerter Arbeitslohn", YEARLY),
    _field("werbungskosten", "Werbungskosten", YEARLY),
    _field("kinderbetreuungskosten", "Kinderbetreuungskosten", YEARLY),
    _field("unterhaltszahlungen", "Unterhaltszahlungen", YEARLY),
    # Net monthly disposable income
    _field("monthlynetsalary", "Monatliches Nettoeinkommen", MONTHLY),
    _field("wheinachtsgeld_next12_net", "Weihnachtsgeld (nächste 12 Monate)", YEARLY),
    _field("urlaubsgeld_next12_net", "Urlaubsgeld (nächste 12 Monate)", YEARLY),
    _field("otheremploymentmonthlynetincome", "Sonstige Einkünfte aus nichtselbstständiger Arbeit",
           MONTHLY, is_array=True),
    _field("incomeagriculture_net", "Einkünfte aus Land-/Forstwirtschaft (netto)", YEARLY),
    _field("incomerent_net", "Einkünfte aus Vermietung (netto)", YEARLY),
    _field("yearlycapitalnetincome", "Kapitalerträge (netto)", YEARLY),
    _field("yearlybusinessnetincome", "Jährliches Gewerbeeinkommen (netto)", YEARLY),
    _field("yearlyselfemployednetincome", "Jährliches selbstständiges Einkommen (netto)", YEARLY),
    _field("pensionmonthlynetincome", "Monatliche Renten (netto)", MONTHLY, is_array=True),
    _field("incomeunterhalttaxable_net", "Steuerpflichtige Unterhaltsleistungen (netto)", MONTHLY),
    _field("monthlykindergeldnetincome", "Monatliches Kindergeld (netto)", MONTHLY),
    _field("monthlypflegegeldnetincome", "Monatliches Pflegegeld (netto)", MONTHLY),
    _field("monthlyelterngeldnetincome", "Monatliches Elterngeld (netto)", MONTHLY),
    _field("othermonthlynetincome", "Sonstige monatliche Nettoeinkommen", MONTHLY, is_array=True),
    # Monthly expenses and obligations
    _field("betragotherinsurancetaxexpenses", "Sonstige Versicherungs- und Steuerausgaben",
           MONTHLY, is_array=True),
    _field("loans", "Darlehen", MONTHLY, is_array=True),
    _field("zwischenkredit", "Zwischenkredit", MONTHLY, is_array=True),
    _field("unterhaltszahlungenTotal", "Unterhaltszahlungen (gesamt)", MONTHLY, is_array=True),
    _field("otherzahlungsverpflichtung", "Sonstige Zahlungsverpflichtungen", MONTHLY, is_array=True),
    _field("sparratebausparvertraege", "Bausparvertrag Sparrate", MONTHLY),
    _field("praemiekapitalrentenversicherung", "Kapitalrentenversicherung Prämie", MONTHLY),
]

DEFAULT_DOCUMENT_TYPES = [
    _document("lohn_gehaltsbescheinigungen", "Lohn-/Gehaltsbescheinigungen"),
    _document("guv_euer_nachweis", "GuV/EÜR Nachweis"),
    _document("einkommenssteuerbescheid", "Einkommenssteuerbescheid", supports_multiple=False),
    _document("einkommenssteuererklaerung", "Einkommenssteuererklärung", supports_multiple=False),
    _document("rentenbescheid", "Rentenbescheid"),
    _document("arbeitslosengeldbescheid", "Arbeitslosengeldbescheid", supports_multiple=False),
    _document("nachweis_ausland", "Nachweis Ausländische Einkünfte"),
    _document("unterhaltsleistungen_nachweis", "Nachweis Unterhaltsleistungen"),
    _document("werbungskosten_nachweis", "Nachweis Werbungskosten"),
    _document("kinderbetreuungskosten_nachweis", "Nachweis Kinderbetreuungskosten"),
    _document("unterhaltsverpflichtung_nachweis", "Nachweis Unterhaltsverpflichtung"),
    _document("nachweis_kapitalertraege", "Nachweis Kapitalerträge"),
    _document("kindergeld_nachweis", "Kindergeld Nachweis"),
    _document("pflegegeld_nachweis", "Pflegegeld Nachweis"),
    _document("elterngeld_nachweis", "Elterngeld Nachweis"),
    _document("sonstige_einkommen_nachweis", "Nachweis sonstige Einkommen"),
    _document("versicherung_steuer_nachweis", "Nachweis Versicherungen und Steuern"),
    _document("darlehen_nachweis", "Nachweis Darlehen"),
    _document("zwischenkredit_nachweis", "Nachweis Zwischenkredit"),
    _document("zahlungsverpflichtungen_nachweis", "Nachweis Zahlungsverpflichtungen"),
    _document("bausparvertrag_nachweis", "Nachweis Bausparvertrag"),
    _document("rentenversicherung_nachweis", "Nachweis Rentenversicherung"),
]

DEFAULT_MAPPINGS = [
    # Household income
    _mapping("prior_year_earning", "lohn_gehaltsbescheinigungen",
             ["gross_salary", "year", "month", "isMonthly"], HOUSEHOLD),
    _mapping("prior_year", "lohn_gehaltsbescheinigungen", ["year"], HOUSEHOLD),
    _mapping("wheinachtsgeld_last12", "lohn_gehaltsbescheinigungen", ["wheinachtsgeld_gross"], HOUSEHOLD),
    _mapping("urlaubsgeld_last12", "lohn_gehaltsbescheinigungen",
             ["urlaubsgeld_gross", "year", "month"], HOUSEHOLD),
    _mapping("otherincome_last12", "lohn_gehaltsbescheinigungen",
             ["other_income", "year", "month", "isRecurring", "isMonthly"], HOUSEHOLD, MEDIUM),
    _mapping("incomebusiness", "guv_euer_nachweis",
             ["annual_gross_income", "year", "month", "isMonthly"], HOUSEHOLD),
    _mapping("incomeagriculture", "guv_euer_nachweis",
             ["annual_gross_income", "year", "month", "isMonthly"], HOUSEHOLD),
    _mapping("incomerent", "einkommenssteuerbescheid",
             ["annual_gross_income", "year", "month", "isMonthly"], HOUSEHOLD),
    _mapping("incomerent", "einkommenssteuererklaerung",
             ["annual_gross_income", "year", "month", "isMonthly"], HOUSEHOLD, MEDIUM),
    _mapping("incomepension", "rentenbescheid", ["gross_payment", "year", "isMonthly", "rentenart"], HOUSEHOLD),
    _mapping("incomeablg", "arbeitslosengeldbescheid",
             ["gross_payment", "year", "isMonthly", "timeframe"], HOUSEHOLD),
    _mapping("incomeforeign", "nachweis_ausland", ["annual_gross_income", "year", "isMonthly"], HOUSEHOLD),
    _mapping("incomeunterhalttaxfree", "unterhaltsleistungen_nachweis",
             ["payment", "year", "isMonthly", "laufzeit"], HOUSEHOLD),
    _mapping("incomeunterhalttaxable", "unterhaltsleistungen_nachweis",
             ["gross_payment", "year", "isMonthly", "laufzeit"], HOUSEHOLD),
    _mapping("incomeothers", None, [], HOUSEHOLD),
    _mapping("incomepauschal", "lohn_gehaltsbescheinigungen",
             ["gross_salary", "year", "month", "isMonthly"], HOUSEHOLD),
    _mapping("werbungskosten", "werbungskosten_nachweis",
             ["yearly_amount", "year", "month", "isMonthly"], HOUSEHOLD),
    _mapping("kinderbetreuungskosten", "kinderbetreuungskosten_nachweis",
             ["amount", "year", "month", "isMonthly", "isRecurring"], HOUSEHOLD),
    _mapping("unterhaltszahlungen", "unterhaltsverpflichtung_nachweis",
             ["amount", "year", "isMonthly", "laufzeit"], HOUSEHOLD),

    # Available monthly income
    _mapping("monthlynetsalary", "lohn_gehaltsbescheinigungen",
             ["net_salary", "netto_lohn", "netto_gehalt", "monatlich"], AVAILABLE),
    _mapping("wheinachtsgeld_next12_net", "lohn_gehaltsbescheinigungen",
             ["weihnachtsgeld_netto", "christmas_bonus_net", "jahresbetrag"], AVAILABLE),
    _mapping("urlaubsgeld_next12_net", "lohn_gehaltsbescheinigungen",
             ["urlaubsgeld_netto", "vacation_pay_net", "jahresbetrag"], AVAILABLE),
    _mapping("otheremploymentmonthlynetincome", "lohn_gehaltsbescheinigungen",
             ["other_income_net", "sonstige_einkuenfte_netto", "additional_income_net"], AVAILABLE, MEDIUM),
    _mapping("incomeagriculture_net", "guv_euer_nachweis",
             ["agriculture_net_income", "landwirtschaft_netto", "jahresbetrag"], AVAILABLE),
    _mapping("incomerent_net", "einkommenssteuerbescheid",
             ["rental_income_net", "mieteinnahmen_netto", "jahresbetrag"], AVAILABLE),
    _mapping("yearlycapitalnetincome", "nachweis_kapitalertraege",
             ["capital_income_net", "kapitalertraege_netto", "year", "isMonthly", "einmalzahlung"],
             AVAILABLE, MEDIUM),
    _mapping("yearlybusinessnetincome", "guv_euer_nachweis",
             ["business_net_income", "gewerbe_netto", "jahresbetrag"], AVAILABLE),
    _mapping("yearlyselfemployednetincome", "guv_euer_nachweis",
             ["self_employed_net_income", "selbststaendig_netto", "jahresbetrag"], AVAILABLE),
    _mapping("pensionmonthlynetincome", "rentenbescheid",
             ["pension_net_amount", "rente_netto", "monatlich", "rentenart"], AVAILABLE),
    _mapping("incomeunterhalttaxfree", "unterhaltsleistungen_nachweis",
             ["maintenance_net_amount", "unterhalt_netto", "monatlich"], AVAILABLE),
    _mapping("incomeunterhalttaxable_net", "unterhaltsleistungen_nachweis",
             ["maintenance_net_amount", "unterhalt_netto", "monatlich"], AVAILABLE),
    _mapping("monthlykindergeldnetincome", "kindergeld_nachweis",
             ["kindergeld_amount", "child_benefit", "monatlich"], AVAILABLE),
    _mapping("monthlypflegegeldnetincome", "pflegegeld_nachweis",
             ["pflegegeld_amount", "care_benefit", "monatlich"], AVAILABLE),
    _mapping("monthlyelterngeldnetincome", "elterngeld_nachweis",
             ["elterngeld_amount", "parental_benefit", "monatlich"], AVAILABLE),
    _mapping("othermonthlynetincome", "sonstige_einkommen_nachweis",
             ["other_income_net", "sonstige_einkommen_netto", "monatlich"], AVAILABLE, MEDIUM),
    _mapping("betragotherinsurancetaxexpenses", "versicherung_steuer_nachweis",
             ["insurance_amount", "tax_amount", "versicherung", "steuer", "monatlich"], AVAILABLE, MEDIUM),
    _mapping("loans", "darlehen_nachweis", ["loan_amount", "darlehen_betrag", "monatlich", "laufzeit"], AVAILABLE),
    _mapping("zwischenkredit", "zwischenkredit_nachweis",
             ["credit_amount", "kredit_betrag", "monatlich", "laufzeit"], AVAILABLE),
    _mapping("unterhaltszahlungenTotal", "unterhaltsverpflichtung_nachweis",
             ["payment_amount_total", "unterhalt_gesamt", "monatlich", "laufzeit"], AVAILABLE),
    _mapping("otherzahlungsverpflichtung", "zahlungsverpflichtungen_nachweis",
             ["obligation_amount", "verpflichtung_betrag", "monatlich", "laufzeit"], AVAILABLE, MEDIUM),
    _mapping("sparratebausparvertraege", "bausparvertrag_nachweis", ["savings_rate", "sparrate", "monatlich"],
             AVAILABLE),
    _mapping("praemiekapitalrentenversicherung", "rentenversicherung_nachweis",
             ["premium_amount", "praemie", "monatlich"], AVAILABLE),
]


def build_default_rule_table(version: str = DEFAULT_RULE_TABLE_VERSION) -> RuleTable:
    """
    Build the canonical rule table used by the portal

    Raises:
        RuleTableError: If a different catalogue version is requested; only
            the built-in one ships with this package
    """
    if version != DEFAULT_RULE_TABLE_VERSION:
        raise RuleTableError(
            f"Rule table version {version} is not available, built-in version is {DEFAULT_RULE_TABLE_VERSION}"
        )
    return RuleTable(DEFAULT_VALUE_FIELDS, DEFAULT_DOCUMENT_TYPES, DEFAULT_MAPPINGS, version=version)
