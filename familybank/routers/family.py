from fastapi import APIRouter, Depends, HTTPException

from familybank.database.connection import mongo_db_dependency
from familybank.repositories.device_repository import DeviceRepository
from familybank.repositories.user_repository import UserRepository
from familybank.services.family_service import FamilyService
from familybank.utils.dependencies import require_family
from familybank.utils.realtime_bus import RealtimeBus, get_bus


router = APIRouter(prefix="/api/family", tags=["family"])


def get_family_service(db = Depends(mongo_db_dependency), bus: RealtimeBus = Depends(get_bus)) -> FamilyService:
    return FamilyService(UserRepository(db), DeviceRepository(db), bus)


@router.delete("/member/{user_id}")
async def remove_member(user_id: str, current_user: dict = Depends(require_family), service: FamilyService = Depends(get_family_service)):
    try:
        await service.remove_member(current_user, user_id)
    except PermissionError as exc:
        raise HTTPException(status_code=403, detail=str(exc))
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"message": "User deleted successfully"}
