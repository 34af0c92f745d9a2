import logging

from familybank.repositories.device_repository import DeviceRepository
from familybank.repositories.user_repository import UserRepository
from familybank.utils.realtime_bus import RealtimeBus, family_room


logger = logging.getLogger(__name__)


class FamilyService:

    def __init__(self, user_repo: UserRepository, device_repo: DeviceRepository, bus: RealtimeBus) -> None:
        self._user_repo = user_repo
        self._device_repo = device_repo
        self._bus = bus

    async def remove_member(self, actor: dict, user_id: str) -> None:
        if actor.get("role") != "moderator":
            raise PermissionError("Only moderators can delete members")
        if user_id == actor["_id"]:
            raise ValueError("Cannot delete yourself")
        target = await self._user_repo.get_user_by_id(user_id)
        if not target:
            raise LookupError("User not found")
        if str(target.get("family_id")) != str(actor.get("family_id")):
            raise PermissionError("Cannot delete users from other families")

        # announce before deleting so the removed user's sessions still get it
        await self._bus.publish(family_room(actor["family_id"]), "user-removed", {"user_id": user_id})
        await self._user_repo.delete_user(user_id)
        await self._device_repo.remove_for_user(user_id)
        logger.info("User %s removed from family %s by %s", user_id, actor["family_id"], actor["_id"])
