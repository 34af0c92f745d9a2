from fastapi import APIRouter, Depends, HTTPException, status

from familybank.database.connection import mongo_db_dependency
from familybank.repositories.goal_repository import GoalRepository
from familybank.schemas.goal import GoalAddFunds, GoalCreate
from familybank.services.goal_service import GoalService
from familybank.utils.dependencies import require_family
from familybank.utils.realtime_bus import RealtimeBus, get_bus


router = APIRouter(prefix="/api/goals", tags=["goals"])


def get_goal_service(db = Depends(mongo_db_dependency), bus: RealtimeBus = Depends(get_bus)) -> GoalService:
    return GoalService(GoalRepository(db), bus)


@router.get("")
async def list_goals(current_user: dict = Depends(require_family), service: GoalService = Depends(get_goal_service)):
    return await service.list_goals(current_user["family_id"])


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_goal(body: GoalCreate, current_user: dict = Depends(require_family), service: GoalService = Depends(get_goal_service)):
    try:
        return await service.create_goal(current_user["family_id"], body)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


@router.post("/{goal_id}/add")
async def add_funds(goal_id: str, body: GoalAddFunds, current_user: dict = Depends(require_family), service: GoalService = Depends(get_goal_service)):
    try:
        return await service.add_funds(current_user["family_id"], goal_id, body.amount)
    except LookupError:
        raise HTTPException(status_code=404, detail="Goal not found")
