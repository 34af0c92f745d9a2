from datetime import datetime, timezone
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING

from familybank.models.transaction import TransactionDocument


class TransactionRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._db = db

    @property
    def collection(self):
        return self._db["transactions"]

    async def create(self, family_id: str, data: Dict[str, Any]) -> TransactionDocument:
        doc = TransactionDocument(**data)
        doc["family_id"] = family_id
        doc.setdefault("status", "approved")
        if not doc.get("date"):
            doc["date"] = datetime.now(timezone.utc)
        result = await self.collection.insert_one(doc)
        doc["_id"] = str(result.inserted_id)
        return doc

    async def list_for_family(self, family_id: str, limit: int = 500) -> List[TransactionDocument]:
        cursor = self.collection.find({"family_id": family_id}).sort("date", DESCENDING).limit(limit)
        items = await cursor.to_list(length=limit)
        for it in items:
            it["_id"] = str(it.get("_id"))
        return items
