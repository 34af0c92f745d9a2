import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from familybank.repositories.device_repository import DeviceRepository
from familybank.repositories.message_repository import MessageRepository
from familybank.repositories.user_repository import UserRepository
from familybank.schemas.chat import MessagesReadEvent, UnreadSnapshot
from familybank.utils.realtime_bus import (
    RealtimeBus,
    conversation_id_for,
    dm_room,
    family_chat_room,
    user_room,
)


logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000
CHAT_TOPIC = "chat"


class ChatService:

    def __init__(
        self,
        message_repo: MessageRepository,
        user_repo: UserRepository,
        bus: RealtimeBus,
        device_repo: Optional[DeviceRepository] = None,
        push=None,
    ) -> None:
        self._message_repo = message_repo
        self._user_repo = user_repo
        self._bus = bus
        self._device_repo = device_repo
        self._push = push

    async def unread_count(self, user_id: str, family_id: str) -> UnreadSnapshot:
        group = await self._message_repo.count_unread_group(family_id, user_id)
        dm = await self._message_repo.count_unread_dm(family_id, user_id)
        total = group + dm
        return UnreadSnapshot(total=total, group=group, dm=dm, by_topic={CHAT_TOPIC: total})

    async def mark_read(
        self,
        user_id: str,
        family_id: str,
        conversation_id: Optional[str] = None,
        message_ids: Optional[List[str]] = None,
    ) -> int:
        """Record a read receipt and tell every interested device.

        The ``messages-read`` event goes to the room the messages live in and
        to the reader's own user room, so their other devices reconcile.
        Senders hear about it in their user rooms.
        """
        messages = await self._message_repo.find_unread_for(
            user_id, family_id, conversation_id=conversation_id, message_ids=message_ids
        )
        if not messages:
            return 0
        read_at = datetime.now(timezone.utc)
        ids = [m["_id"] for m in messages]
        updated = await self._message_repo.add_read_receipt(ids, user_id, read_at)
        if not updated:
            return 0

        first = messages[0]
        event = MessagesReadEvent(
            conversation_id=first.get("conversation_id"),
            message_ids=ids,
            user_id=user_id,
            read_at=read_at,
        )
        if first.get("message_type") == "group":
            room = family_chat_room(family_id)
        else:
            room = dm_room(first["conversation_id"])
        await self._bus.publish([room, user_room(user_id)], "messages-read", event.model_dump())

        senders = {str(m["sender"]) for m in messages} - {str(user_id)}
        for sender_id in sorted(senders):
            await self._bus.publish(
                user_room(sender_id),
                "messages-read",
                {"conversation_id": event.conversation_id, "user_id": user_id},
            )
        logger.info("User %s marked %d messages as read", user_id, updated)
        return updated

    async def send_group_message(self, family_id: str, sender_id: str, message: str) -> Dict[str, Any]:
        text = self._clean(message)
        saved = await self._message_repo.save_message(family_id, sender_id, "group", text)
        sender = await self._user_repo.get_summary(sender_id)
        saved["sender"] = sender or sender_id
        await self._bus.publish(family_chat_room(family_id), "message-received", saved)

        sender_name = sender["name"] if sender and sender.get("name") else "Family"
        recipients = await self._user_repo.list_family_members(family_id, exclude_user_id=sender_id)
        for recipient in recipients:
            await self._bus.publish(
                user_room(recipient["_id"]),
                "dm-notification",
                {"sender_id": sender_id, "type": "group", "message": "New group message"},
            )
            await self._notify_offline(
                recipient["_id"], f"{sender_name} (Family Chat)", text, {"type": "group", "family_id": family_id}
            )
        return saved

    async def send_direct_message(self, family_id: str, sender_id: str, recipient_id: str, message: str) -> Dict[str, Any]:
        text = self._clean(message)
        recipient = await self._user_repo.get_summary(recipient_id)
        if not recipient:
            raise LookupError("Recipient not found")
        conversation_id = conversation_id_for(sender_id, recipient_id)
        saved = await self._message_repo.save_message(
            family_id, sender_id, "dm", text, recipient_id=recipient_id, conversation_id=conversation_id
        )
        sender = await self._user_repo.get_summary(sender_id)
        saved["sender"] = sender or sender_id
        saved["recipient"] = recipient
        # the recipient's user room carries it to devices that never opened the conversation
        await self._bus.publish([dm_room(conversation_id), user_room(recipient_id)], "dm-received", saved)
        await self._bus.publish(
            user_room(recipient_id),
            "dm-notification",
            {"sender_id": sender_id, "conversation_id": conversation_id, "message": "New unread message"},
        )
        title = sender["name"] if sender and sender.get("name") else "New Message"
        await self._notify_offline(
            recipient_id, title, text, {"type": "dm", "conversation_id": conversation_id, "sender_id": sender_id}
        )
        return saved

    def _clean(self, message: str) -> str:
        if not message or not message.strip():
            raise ValueError("Message content cannot be empty")
        text = message.strip()
        if len(text) > MAX_MESSAGE_LENGTH:
            raise ValueError(f"Message longer than {MAX_MESSAGE_LENGTH} characters")
        return text

    async def _notify_offline(self, receiver_id: str, title: str, body: str, data: dict) -> None:
        if self._push is None or self._device_repo is None or not getattr(self._push, "enabled", False):
            return
        try:
            tokens = await self._device_repo.get_tokens(receiver_id, platform="fcm")
            if tokens:
                await self._push.send(tokens, title, body[:100], data)
        except Exception:
            logger.exception("Push notification to %s failed", receiver_id)
