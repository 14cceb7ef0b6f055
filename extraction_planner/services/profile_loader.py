"""
Financial profile loader

Turns the stored user record and financial record of a resident into the
ordered list of income-bearing household members.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional

from ..exceptions import PersistenceError, ProfileLoadError
from ..models.profile import MAIN_APPLICANT_ID, FinancialProfile, Person, PersonRole
from ..utils.validators import normalize_household_members, normalize_keyed_records

logger = logging.getLogger(__name__)


def main_applicant_name(user_record: Dict[str, Any]) -> str:
    first_name = user_record.get("firstname") or "Hauptantragsteller"
    last_name = user_record.get("lastname") or ""
    return f"{first_name} {last_name}".strip()


class FinancialProfileLoader:
    """Load the people whose income matters for an application"""

    def __init__(self, store):
        self.store = store

    async def fetch_records(self, resident_id: str):
        """
        Fetch the raw user and financial records of a resident

        Args:
            resident_id: Owner of the application

        Returns:
            (user_record, financial_record); the financial record may be None

        Raises:
            ProfileLoadError: the user record is missing or unreadable
        """
        user_record, financial_record = await asyncio.gather(
            self.store.get_user_record(resident_id),
            self.store.get_financial_record(resident_id),
            return_exceptions=True
        )

        if isinstance(user_record, PersistenceError):
            logger.error(f"Failed to fetch user record for {resident_id}: {user_record}")
            raise ProfileLoadError(resident_id, str(user_record)) from user_record
        if isinstance(user_record, BaseException):
            raise user_record
        if isinstance(financial_record, BaseException):
            raise financial_record

        if not user_record:
            raise ProfileLoadError(resident_id)

        if not financial_record:
            logger.info(f"No financial record for resident {resident_id}, using empty profile")
        return user_record, financial_record

    async def load_people(self, resident_id: str) -> List[Person]:
        user_record, financial_record = await self.fetch_records(resident_id)
        return self.build_people(user_record, financial_record)

    def build_people(
        self,
        user_record: Dict[str, Any],
        financial_record: Optional[Dict[str, Any]]
    ) -> List[Person]:
        """
        Build income-bearing persons from already fetched records

        Main applicant first (unless flagged noIncome), then additional
        household members in roster order. A member needs a financial
        sub-record to be included.
        """
        financial_record = financial_record or {}
        people: List[Person] = []

        if not user_record.get("noIncome"):
            people.append(Person(
                id=MAIN_APPLICANT_ID,
                display_name=main_applicant_name(user_record),
                role=PersonRole.MAIN_APPLICANT,
                profile=FinancialProfile(values=financial_record)
            ))

        members = normalize_household_members(user_record.get("weitere_antragstellende_personen"))
        member_financials = dict(normalize_keyed_records(financial_record.get("additional_applicants_financials")))

        for member in members:
            if member.not_household or member.no_income:
                continue
            member_financial = member_financials.get(member.key)
            if member_financial is None:
                logger.debug(f"Skipping household member {member.key}: no financial record")
                continue
            people.append(Person(
                id=member.key,
                display_name=member.display_name,
                role=PersonRole.ADDITIONAL_APPLICANT,
                uuid=member.key,
                profile=FinancialProfile(values=member_financial)
            ))

        return people
