# app/database/usage.py
"""
Usage persistence on the ``users`` collection.

Counter mutations are single-document conditional updates, so a check and its
increment can never be split by a concurrent request.
"""
import logging
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument
from pymongo.errors import PyMongoError

from app.core.exceptions import StorageUnavailableError
from app.database.models import UsageCounters, UsageRecord

logger = logging.getLogger(__name__)

USAGE_PROJECTION = {"tier": 1, "subscription_end_date": 1, "usage": 1}


def _object_id(user_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        return None


class UsageRepository:
    def __init__(self, db):
        self.db = db
        self.users = db["users"]

    async def load_usage_record(self, user_id: str) -> Optional[UsageRecord]:
        oid = _object_id(user_id)
        if oid is None:
            return None
        try:
            user_doc = await self.users.find_one({"_id": oid}, USAGE_PROJECTION)
        except PyMongoError as e:
            logger.error(f"Error loading usage for user {user_id}: {e}")
            raise StorageUnavailableError(str(e), operation="load")
        if not user_doc:
            return None
        return UsageRecord.from_document(user_doc)

    async def apply_reset(self, user_id: str, observed: UsageCounters, update: dict) -> bool:
        """
        Zero rolled-over counters if nobody else has reset them since ``observed`` was read.

        Returns False when another request already advanced the reset timestamps.
        """
        try:
            result = await self.users.update_one(
                {
                    "_id": _object_id(user_id),
                    "usage.last_daily_reset": observed.last_daily_reset,
                    "usage.last_monthly_reset": observed.last_monthly_reset,
                },
                {"$set": update},
            )
        except PyMongoError as e:
            logger.error(f"Error resetting usage counters for user {user_id}: {e}")
            raise StorageUnavailableError(str(e), operation="reset")
        return result.modified_count == 1

    async def increment_if_below(self, user_id: str, path: str, ceiling: int) -> Optional[dict]:
        """
        Atomically add one to ``path`` only while it is below ``ceiling``.

        Returns the updated usage document, or None when the ceiling was already reached.
        """
        if ceiling <= 0:
            return None
        try:
            return await self.users.find_one_and_update(
                {
                    "_id": _object_id(user_id),
                    "$or": [{path: {"$lt": ceiling}}, {path: {"$exists": False}}],
                },
                {"$inc": {path: 1}},
                projection={"usage": 1},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Error incrementing {path} for user {user_id}: {e}")
            raise StorageUnavailableError(str(e), operation="increment")

    async def increment(self, user_id: str, path: str) -> None:
        try:
            await self.users.update_one({"_id": _object_id(user_id)}, {"$inc": {path: 1}})
        except PyMongoError as e:
            logger.error(f"Error incrementing {path} for user {user_id}: {e}")
            raise StorageUnavailableError(str(e), operation="increment")

    async def count_entities(self, user_id: str, collection: str) -> int:
        try:
            return await self.db[collection].count_documents({"user_id": user_id})
        except PyMongoError as e:
            logger.error(f"Error counting {collection} for user {user_id}: {e}")
            raise StorageUnavailableError(str(e), operation="count")
