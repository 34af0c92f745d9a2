from typing import List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from familybank.models.goal import GoalDocument


class GoalRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("goals")

    async def list_for_family(self, family_id: str) -> List[GoalDocument]:
        items = await self._collection.find({"family_id": family_id}).to_list(length=200)
        for it in items:
            it["_id"] = str(it["_id"])
        return items

    async def create(self, family_id: str, title: str, target_amount: float, current_amount: float = 0) -> GoalDocument:
        doc: GoalDocument = {
            "title": title,
            "target_amount": target_amount,
            "current_amount": current_amount,
            "family_id": family_id,
        }
        result = await self._collection.insert_one(doc)
        doc["_id"] = str(result.inserted_id)
        return doc

    async def add_amount(self, goal_id: str, family_id: str, amount: float) -> Optional[GoalDocument]:
        if not ObjectId.is_valid(goal_id):
            return None
        goal = await self._collection.find_one_and_update(
            {"_id": ObjectId(goal_id), "family_id": family_id},
            {"$inc": {"current_amount": amount}},
            return_document=ReturnDocument.AFTER,
        )
        if goal:
            goal["_id"] = str(goal["_id"])
        return goal
