from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase

from familybank.models.user import UserDocument


def _oid(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


class UserRepository:

    def __init__(self, db: AsyncIOMotorDatabase) -> None:
        self._collection = db.get_collection("users")

    async def get_user_by_id(self, user_id: str) -> Optional[UserDocument]:
        oid = _oid(str(user_id))
        if oid is None:
            return None
        user = await self._collection.find_one({"_id": oid})
        if user:
            user["_id"] = str(user["_id"])  # normalize to string for API layer
        return user

    async def get_user_by_email(self, email: str) -> Optional[UserDocument]:
        user = await self._collection.find_one({"email": email})
        if user:
            user["_id"] = str(user["_id"])
        return user

    async def get_user_by_login(self, login: str) -> Optional[UserDocument]:
        """Look a user up by email or by display name."""
        user = await self._collection.find_one({"$or": [{"email": login}, {"name": login}]})
        if user:
            user["_id"] = str(user["_id"])
        return user

    async def create_user(self, name: str, email: str, hashed_password: str, role: str = "member") -> str:
        doc: UserDocument = {
            "name": name,
            "email": email,
            "hashed_password": hashed_password,
            "role": role,
            "family_id": None,
            "balance": 0,
        }
        result = await self._collection.insert_one(doc)
        return str(result.inserted_id)

    async def get_summary(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Public fields only, used to embed a user inside an emitted document."""
        oid = _oid(str(user_id))
        if oid is None:
            return None
        user = await self._collection.find_one({"_id": oid}, {"name": 1, "email": 1})
        if user:
            user["_id"] = str(user["_id"])
        return user

    async def list_family_members(self, family_id: str, exclude_user_id: Optional[str] = None) -> List[UserDocument]:
        query: Dict[str, Any] = {"family_id": family_id}
        if exclude_user_id:
            excluded = _oid(str(exclude_user_id))
            if excluded is not None:
                query["_id"] = {"$ne": excluded}
        items = await self._collection.find(query).to_list(length=500)
        for it in items:
            it["_id"] = str(it["_id"])
        return items

    async def adjust_balance(self, user_id: str, delta: float) -> bool:
        oid = _oid(str(user_id))
        if oid is None:
            return False
        result = await self._collection.update_one({"_id": oid}, {"$inc": {"balance": delta}})
        return bool(result.modified_count)

    async def delete_user(self, user_id: str) -> bool:
        oid = _oid(str(user_id))
        if oid is None:
            return False
        result = await self._collection.delete_one({"_id": oid})
        return result.deleted_count > 0
