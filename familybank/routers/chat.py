from fastapi import APIRouter, Depends

from familybank.database.connection import mongo_db_dependency
from familybank.repositories.device_repository import DeviceRepository
from familybank.repositories.message_repository import MessageRepository
from familybank.repositories.user_repository import UserRepository
from familybank.schemas.chat import MarkReadRequest, MarkReadResult, UnreadSnapshot
from familybank.services.chat_service import ChatService
from familybank.utils.dependencies import require_family
from familybank.utils.realtime_bus import RealtimeBus, get_bus


router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_chat_service(db = Depends(mongo_db_dependency), bus: RealtimeBus = Depends(get_bus)) -> ChatService:
    return ChatService(MessageRepository(db), UserRepository(db), bus, device_repo=DeviceRepository(db))


@router.get("/unread-count", response_model=UnreadSnapshot)
async def unread_count(current_user: dict = Depends(require_family), service: ChatService = Depends(get_chat_service)):
    return await service.unread_count(current_user["_id"], current_user["family_id"])


@router.post("/mark-read", response_model=MarkReadResult)
async def mark_read(body: MarkReadRequest, current_user: dict = Depends(require_family), service: ChatService = Depends(get_chat_service)):
    count = await service.mark_read(
        current_user["_id"],
        current_user["family_id"],
        conversation_id=body.conversation_id,
        message_ids=body.message_ids,
    )
    return MarkReadResult(count=count)
