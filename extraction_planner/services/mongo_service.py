"""
MongoDB service for profile, document inventory and extraction structure storage
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError
import logging

from ..config import settings
from ..exceptions import PersistenceError, StaleStructureError

logger = logging.getLogger(__name__)


class MongoService:
    """Service for MongoDB operations"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db = None

    async def connect(self):
        """Connect to MongoDB"""
        try:
            self.client = AsyncIOMotorClient(settings.mongodb_url)
            self.db = self.client[settings.mongodb_db_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Connected to MongoDB successfully")

        except Exception as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

    async def close(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            logger.info("MongoDB connection closed")

    async def health_check(self) -> bool:
        """Check MongoDB connection health"""
        if self.client is None:
            return False
        try:
            await self.client.admin.command('ping')
            return True
        except PyMongoError:
            return False

    @property
    def user_data(self):
        return self.db[settings.user_data_collection]

    @property
    def financials(self):
        return self.db[settings.financials_collection]

    @property
    def applications(self):
        return self.db[settings.applications_collection]

    # Profile store
    async def get_user_record(self, resident_id: str) -> Optional[Dict[str, Any]]:
        """Get the core user record of a resident"""
        try:
            return await self.user_data.find_one({"id": resident_id}, {"_id": 0})
        except PyMongoError as e:
            logger.error(f"Failed to get user record {resident_id}: {e}")
            raise PersistenceError(resident_id, f"user record read failed: {e}") from e

    async def get_financial_record(self, resident_id: str) -> Optional[Dict[str, Any]]:
        """Get the financial record of a resident, None when not yet filled in"""
        try:
            return await self.financials.find_one({"user_id": resident_id}, {"_id": 0})
        except PyMongoError as e:
            logger.error(f"Failed to get financial record {resident_id}: {e}")
            raise PersistenceError(resident_id, f"financial record read failed: {e}") from e

    async def get_application(self, application_id: str) -> Optional[Dict[str, Any]]:
        """Get an application without its extraction structure"""
        try:
            return await self.applications.find_one(
                {"id": application_id},
                {"_id": 0, "extraction_structure": 0}
            )
        except PyMongoError as e:
            logger.error(f"Failed to get application {application_id}: {e}")
            raise PersistenceError(application_id, f"application read failed: {e}") from e

    # Document inventory
    async def get_document_status(self, resident_id: str) -> Dict[str, Any]:
        """Get the uploaded-file inventory blob of a resident"""
        try:
            doc = await self.user_data.find_one({"id": resident_id}, {"_id": 0, "document_status": 1})
        except PyMongoError as e:
            logger.error(f"Failed to get document status {resident_id}: {e}")
            raise PersistenceError(resident_id, f"document status read failed: {e}") from e
        if not doc:
            return {}
        return doc.get("document_status") or {}

    # Extraction structure store
    async def load_extraction_structure(self, application_id: str) -> Optional[Tuple[Dict[str, Any], int]]:
        """
        Load the persisted extraction structure of an application

        Returns:
            (document, version), or None when no structure was saved yet
        """
        try:
            doc = await self.applications.find_one(
                {"id": application_id},
                {"_id": 0, "extraction_structure": 1, "extraction_structure_version": 1}
            )
        except PyMongoError as e:
            logger.error(f"Failed to load extraction structure {application_id}: {e}")
            raise PersistenceError(application_id, f"load failed: {e}") from e

        if not doc or doc.get("extraction_structure") is None:
            return None
        return doc["extraction_structure"], int(doc.get("extraction_structure_version") or 0)

    async def save_extraction_structure(
        self,
        application_id: str,
        document: Dict[str, Any],
        expected_version: int
    ) -> int:
        """
        Overwrite the extraction structure if nobody saved since expected_version

        Returns:
            The new stored version

        Raises:
            StaleStructureError: the stored version moved on
            PersistenceError: the application is missing or the write failed
        """
        new_version = expected_version + 1
        version_filter: Dict[str, Any] = {"extraction_structure_version": expected_version}
        if expected_version == 0:
            version_filter = {"$or": [
                {"extraction_structure_version": 0},
                {"extraction_structure_version": {"$exists": False}},
                {"extraction_structure_version": None},
            ]}

        try:
            result = await self.applications.update_one(
                {"id": application_id, **version_filter},
                {"$set": {
                    "extraction_structure": document,
                    "extraction_structure_version": new_version,
                    "updated_at": datetime.now(timezone.utc),
                }}
            )
            if result.matched_count:
                logger.info(f"Extraction structure saved for {application_id} at version {new_version}")
                return new_version

            current = await self.applications.find_one(
                {"id": application_id},
                {"_id": 0, "extraction_structure_version": 1}
            )
        except PyMongoError as e:
            logger.error(f"Failed to save extraction structure {application_id}: {e}")
            raise PersistenceError(application_id, f"save failed: {e}") from e

        if current is None:
            raise PersistenceError(application_id, "application not found")
        stored_version = int(current.get("extraction_structure_version") or 0)
        logger.warning(
            f"Rejected stale extraction structure for {application_id}: "
            f"expected {expected_version}, stored {stored_version}"
        )
        raise StaleStructureError(application_id, expected_version, stored_version)


# Global MongoDB service instance
mongo_service = MongoService()
