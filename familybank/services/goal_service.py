from typing import Any, Dict, List

from familybank.repositories.goal_repository import GoalRepository
from familybank.schemas.goal import GoalCreate
from familybank.utils.realtime_bus import RealtimeBus, family_room


class GoalService:

    def __init__(self, goal_repo: GoalRepository, bus: RealtimeBus) -> None:
        self._goal_repo = goal_repo
        self._bus = bus

    async def list_goals(self, family_id: str) -> List[Dict[str, Any]]:
        return await self._goal_repo.list_for_family(family_id)

    async def create_goal(self, family_id: str, data: GoalCreate) -> Dict[str, Any]:
        if not data.title or data.target_amount is None:
            raise ValueError("Title and target amount are required")
        return await self._goal_repo.create(family_id, data.title, data.target_amount, data.current_amount or 0)

    async def add_funds(self, family_id: str, goal_id: str, amount: float) -> Dict[str, Any]:
        goal = await self._goal_repo.add_amount(goal_id, family_id, amount)
        if not goal:
            raise LookupError("Goal not found")
        await self._bus.publish(family_room(family_id), "update-goal", goal)
        return goal
