"""
Tests for the MongoDB adapter, with motor collections mocked out
"""
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from pymongo.errors import ServerSelectionTimeoutError

from extraction_planner.exceptions import PersistenceError, StaleStructureError
from extraction_planner.services import MongoService


@pytest.fixture
def collection() -> Mock:
    collection = Mock()
    collection.find_one = AsyncMock(return_value=None)
    collection.update_one = AsyncMock()
    return collection


@pytest.fixture
def mongo(collection) -> MongoService:
    service = MongoService()
    service.db = MagicMock()
    service.db.__getitem__.return_value = collection
    return service


class TestMongoService:

    @pytest.mark.asyncio
    async def test_get_user_record(self, mongo, collection):
        collection.find_one.return_value = {"id": "res-1", "firstname": "Max"}
        record = await mongo.get_user_record("res-1")
        assert record["firstname"] == "Max"
        assert collection.find_one.await_args.args[0] == {"id": "res-1"}

    @pytest.mark.asyncio
    async def test_financial_record_keyed_by_user_id(self, mongo, collection):
        await mongo.get_financial_record("res-1")
        assert collection.find_one.await_args.args[0] == {"user_id": "res-1"}

    @pytest.mark.asyncio
    async def test_read_failure_becomes_persistence_error(self, mongo, collection):
        collection.find_one.side_effect = ServerSelectionTimeoutError("no primary")
        with pytest.raises(PersistenceError) as exc_info:
            await mongo.get_user_record("res-1")
        assert isinstance(exc_info.value.__cause__, ServerSelectionTimeoutError)

    @pytest.mark.asyncio
    async def test_document_status(self, mongo, collection):
        collection.find_one.return_value = {"document_status": {"hauptantragsteller": {}}}
        assert await mongo.get_document_status("res-1") == {"hauptantragsteller": {}}

        collection.find_one.return_value = None
        assert await mongo.get_document_status("res-1") == {}

    @pytest.mark.asyncio
    async def test_load_extraction_structure(self, mongo, collection):
        assert await mongo.load_extraction_structure("app-1") is None

        collection.find_one.return_value = {"extraction_structure": {"main_applicant": {}}}
        assert await mongo.load_extraction_structure("app-1") == ({"main_applicant": {}}, 0)

        collection.find_one.return_value = {"extraction_structure": {}, "extraction_structure_version": 4}
        assert await mongo.load_extraction_structure("app-1") == ({}, 4)

    @pytest.mark.asyncio
    async def test_save_bumps_version(self, mongo, collection):
        collection.update_one.return_value = Mock(matched_count=1)

        new_version = await mongo.save_extraction_structure("app-1", {"main_applicant": {}}, 2)

        assert new_version == 3
        query, update = collection.update_one.await_args.args
        assert query == {"id": "app-1", "extraction_structure_version": 2}
        assert update["$set"]["extraction_structure"] == {"main_applicant": {}}
        assert update["$set"]["extraction_structure_version"] == 3
        assert "updated_at" in update["$set"]

    @pytest.mark.asyncio
    async def test_first_save_accepts_missing_version(self, mongo, collection):
        collection.update_one.return_value = Mock(matched_count=1)
        await mongo.save_extraction_structure("app-1", {}, 0)
        query = collection.update_one.await_args.args[0]
        assert {"extraction_structure_version": {"$exists": False}} in query["$or"]

    @pytest.mark.asyncio
    async def test_stale_save(self, mongo, collection):
        collection.update_one.return_value = Mock(matched_count=0)
        collection.find_one.return_value = {"extraction_structure_version": 5}

        with pytest.raises(StaleStructureError) as exc_info:
            await mongo.save_extraction_structure("app-1", {}, 2)

        assert exc_info.value.expected_version == 2
        assert exc_info.value.stored_version == 5

    @pytest.mark.asyncio
    async def test_save_to_missing_application(self, mongo, collection):
        collection.update_one.return_value = Mock(matched_count=0)
        collection.find_one.return_value = None

        with pytest.raises(PersistenceError) as exc_info:
            await mongo.save_extraction_structure("app-1", {}, 0)
        assert not isinstance(exc_info.value, StaleStructureError)

    @pytest.mark.asyncio
    async def test_health_check_without_client(self):
        assert await MongoService().health_check() is False
