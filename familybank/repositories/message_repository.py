from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING

from familybank.models.message import MessageDocument


def _object_ids(values: List[str]) -> List[ObjectId]:
    return [ObjectId(v) for v in values if ObjectId.is_valid(v)]


class MessageRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["messages"]

    async def ensure_indexes(self) -> None:
        await self.collection.create_index([("family_id", ASCENDING), ("timestamp", DESCENDING)])
        await self.collection.create_index([("conversation_id", ASCENDING), ("timestamp", DESCENDING)])
        await self.collection.create_index([("message_type", ASCENDING), ("family_id", ASCENDING)])

    async def save_message(
        self,
        family_id: str,
        sender_id: str,
        message_type: str,
        message: str,
        recipient_id: Optional[str] = None,
        conversation_id: Optional[str] = None,
    ) -> MessageDocument:
        doc: MessageDocument = {
            "family_id": family_id,
            "sender": sender_id,
            "message_type": message_type,
            "message": message,
            "timestamp": datetime.now(timezone.utc),
            "read_by": [],
            "deleted_for_everyone": False,
            "deleted_by": [],
        }
        if message_type == "dm":
            doc["recipient"] = recipient_id
            doc["conversation_id"] = conversation_id
        result = await self.collection.insert_one(doc)
        doc["_id"] = str(result.inserted_id)
        return doc

    def _visible_unread(self, user_id: str) -> Dict[str, Any]:
        return {
            "read_by.user": {"$ne": user_id},
            "deleted_for_everyone": False,
            "deleted_by": {"$ne": user_id},
        }

    async def count_unread_group(self, family_id: str, user_id: str) -> int:
        query = {"family_id": family_id, "message_type": "group", "sender": {"$ne": user_id}}
        query.update(self._visible_unread(user_id))
        return await self.collection.count_documents(query)

    async def count_unread_dm(self, family_id: str, user_id: str) -> int:
        query = {"family_id": family_id, "message_type": "dm", "recipient": user_id}
        query.update(self._visible_unread(user_id))
        return await self.collection.count_documents(query)

    async def find_unread_for(
        self,
        user_id: str,
        family_id: str,
        conversation_id: Optional[str] = None,
        message_ids: Optional[List[str]] = None,
    ) -> List[MessageDocument]:
        query: Dict[str, Any] = {"family_id": family_id, "sender": {"$ne": user_id}, "read_by.user": {"$ne": user_id}}
        if conversation_id:
            query["conversation_id"] = conversation_id
            query["recipient"] = user_id
        elif message_ids:
            query["_id"] = {"$in": _object_ids(message_ids)}
            # a DM can only be read by its recipient
            query["$or"] = [{"message_type": "group"}, {"recipient": user_id}]
        else:
            return []
        items = await self.collection.find(query).sort("timestamp", 1).to_list(length=1000)
        for it in items:
            it["_id"] = str(it.get("_id"))
        return items

    async def add_read_receipt(self, message_ids: List[str], user_id: str, read_at: datetime) -> int:
        if not message_ids:
            return 0
        result = await self.collection.update_many(
            {"_id": {"$in": _object_ids(message_ids)}, "read_by.user": {"$ne": user_id}},
            {"$push": {"read_by": {"user": user_id, "read_at": read_at}}},
        )
        return result.modified_count or 0
