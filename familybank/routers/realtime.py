import logging
from typing import Any, Callable

import jwt
from motor.motor_asyncio import AsyncIOMotorDatabase

from familybank.repositories.device_repository import DeviceRepository
from familybank.repositories.message_repository import MessageRepository
from familybank.repositories.user_repository import UserRepository
from familybank.services.chat_service import ChatService
from familybank.utils.notifications import get_push
from familybank.utils.realtime_bus import (
    RealtimeBus,
    conversation_id_for,
    dm_room,
    family_chat_room,
    family_room,
    user_room,
)
from familybank.utils.security import decode_access_token


logger = logging.getLogger(__name__)


def register_socket_handlers(bus: RealtimeBus, db_provider: Callable[[], AsyncIOMotorDatabase]) -> None:
    """Attach the room membership and chat events to the Socket.IO server."""
    sio = bus.sio

    async def chat_service() -> ChatService:
        db = db_provider()
        return ChatService(MessageRepository(db), UserRepository(db), bus, DeviceRepository(db), push=await get_push())

    async def report_error(sid: str, message: str) -> None:
        await bus.send_to(sid, "message-error", {"message": message})

    @sio.event
    async def connect(sid: str, environ: dict, auth: Any = None):
        # JWT required: client passes {"token": ...} as connect auth
        token = auth.get("token") if isinstance(auth, dict) else None
        if not token:
            raise ConnectionRefusedError("unauthorized")
        try:
            payload = decode_access_token(token)
        except jwt.PyJWTError:
            raise ConnectionRefusedError("unauthorized")
        user = await UserRepository(db_provider()).get_user_by_id(payload.get("sub", ""))
        if not user:
            raise ConnectionRefusedError("unauthorized")
        await sio.save_session(sid, {"user_id": user["_id"], "family_id": user.get("family_id")})
        logger.info("Socket %s connected as user %s", sid, user["_id"])

    @sio.event
    async def disconnect(sid: str):
        logger.info("Socket %s disconnected", sid)

    async def own_family(sid: str, family_id: Any) -> bool:
        session = await sio.get_session(sid)
        if not family_id or str(family_id) != str(session.get("family_id")):
            logger.warning("Socket %s refused room for family %s", sid, family_id)
            return False
        return True

    async def own_user(sid: str, user_id: Any) -> bool:
        session = await sio.get_session(sid)
        if not user_id or str(user_id) != str(session.get("user_id")):
            logger.warning("Socket %s refused room for user %s", sid, user_id)
            return False
        return True

    @sio.on("join-family")
    async def join_family(sid: str, family_id: Any):
        if await own_family(sid, family_id):
            await sio.enter_room(sid, family_room(family_id))

    @sio.on("leave-family")
    async def leave_family(sid: str, family_id: Any):
        await sio.leave_room(sid, family_room(family_id))

    @sio.on("join-family-chat")
    async def join_family_chat(sid: str, family_id: Any):
        if await own_family(sid, family_id):
            await sio.enter_room(sid, family_chat_room(family_id))

    @sio.on("leave-family-chat")
    async def leave_family_chat(sid: str, family_id: Any):
        await sio.leave_room(sid, family_chat_room(family_id))

    @sio.on("join-user-room")
    async def join_user_room(sid: str, user_id: Any):
        if await own_user(sid, user_id):
            await sio.enter_room(sid, user_room(user_id))

    @sio.on("leave-user-room")
    async def leave_user_room(sid: str, user_id: Any):
        await sio.leave_room(sid, user_room(user_id))

    @sio.on("join-dm-room")
    async def join_dm_room(sid: str, data: Any):
        # {"user_id1": ..., "user_id2": ...}; the caller must be one of the pair
        session = await sio.get_session(sid)
        data = data if isinstance(data, dict) else {}
        first, second = data.get("user_id1"), data.get("user_id2")
        if not first or not second:
            return
        if str(session["user_id"]) not in (str(first), str(second)):
            logger.warning("Socket %s refused DM room %s_%s", sid, first, second)
            return
        await sio.enter_room(sid, dm_room(conversation_id_for(first, second)))

    @sio.on("leave-dm-room")
    async def leave_dm_room(sid: str, data: Any):
        data = data if isinstance(data, dict) else {}
        if data.get("user_id1") and data.get("user_id2"):
            await sio.leave_room(sid, dm_room(conversation_id_for(data["user_id1"], data["user_id2"])))

    @sio.on("send-message")
    async def send_message(sid: str, data: Any):
        session = await sio.get_session(sid)
        text = data.get("message") if isinstance(data, dict) else None
        try:
            service = await chat_service()
            await service.send_group_message(session["family_id"], session["user_id"], text or "")
        except (ValueError, LookupError) as exc:
            await report_error(sid, str(exc))
        except Exception:
            logger.exception("Error sending group message from %s", session.get("user_id"))
            await report_error(sid, "Failed to send message")

    @sio.on("send-dm")
    async def send_dm(sid: str, data: Any):
        session = await sio.get_session(sid)
        if not isinstance(data, dict) or not data.get("recipient_id"):
            await report_error(sid, "recipient_id required")
            return
        try:
            service = await chat_service()
            await service.send_direct_message(
                session["family_id"], session["user_id"], str(data["recipient_id"]), data.get("message") or ""
            )
        except (ValueError, LookupError) as exc:
            await report_error(sid, str(exc))
        except Exception:
            logger.exception("Error sending DM from %s", session.get("user_id"))
            await report_error(sid, "Failed to send DM")

    @sio.on("mark-read")
    async def mark_read(sid: str, data: Any):
        session = await sio.get_session(sid)
        data = data if isinstance(data, dict) else {}
        try:
            service = await chat_service()
            await service.mark_read(
                session["user_id"],
                session["family_id"],
                conversation_id=data.get("conversation_id"),
                message_ids=data.get("message_ids"),
            )
        except Exception:
            logger.exception("Error marking messages as read for %s", session.get("user_id"))
