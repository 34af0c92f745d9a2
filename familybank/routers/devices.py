from fastapi import APIRouter, Depends

from familybank.database.connection import mongo_db_dependency
from familybank.repositories.device_repository import DeviceRepository
from familybank.schemas.device import DeviceRegister
from familybank.utils.dependencies import get_current_user


router = APIRouter(prefix="/api/devices", tags=["push"])


def get_device_repository(db = Depends(mongo_db_dependency)) -> DeviceRepository:
    return DeviceRepository(db)


@router.post("/register")
async def register_device(body: DeviceRegister, current_user: dict = Depends(get_current_user), repo: DeviceRepository = Depends(get_device_repository)):
    doc = await repo.register(current_user["_id"], body.platform, body.token)
    return {"ok": True, "device": {"platform": doc["platform"], "token": doc["token"]}}
