from __future__ import annotations

import itertools
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest
from socketio.exceptions import BadNamespaceError, ConnectionError as SocketConnectionError

from familybank.client.api import FamilyBankAPI


_ids = itertools.count(1)


def next_id() -> str:
    return f"{next(_ids):024x}"


class FakeSocketIOClient:
    """Stands in for socketio.AsyncClient: one handler per event, records emits."""

    def __init__(self, fail_connect: bool = False) -> None:
        self.connected = False
        self.fail_connect = fail_connect
        self.handlers: Dict[str, Any] = {}
        self.emitted: List[tuple] = []
        self.connect_calls = 0
        self.connect_kwargs: Dict[str, Any] = {}

    def on(self, event, handler):
        self.handlers[event] = handler

    async def connect(self, url, **kwargs):
        self.connect_calls += 1
        self.connect_kwargs = kwargs
        if self.fail_connect:
            raise SocketConnectionError("refused")
        self.connected = True
        if "connect" in self.handlers:
            await self.handlers["connect"]()

    async def disconnect(self):
        self.connected = False

    async def emit(self, event, data=None):
        if not self.connected:
            raise BadNamespaceError("/ is not a connected namespace.")
        self.emitted.append((event, data))

    async def deliver(self, event, data=None):
        handler = self.handlers.get(event)
        if handler is not None:
            await handler(data)

    def emitted_events(self) -> List[str]:
        return [event for event, _ in self.emitted]


class RecordingBus:
    """RealtimeBus double: ``emits`` keeps each publish, ``published`` one entry per room."""

    enabled = True
    redis_enabled = False

    def __init__(self) -> None:
        self.published: List[tuple] = []
        self.emits: List[tuple] = []
        self.direct: List[tuple] = []

    async def publish(self, room, event: str, data: Any) -> None:
        rooms = (room,) if isinstance(room, str) else tuple(room)
        self.emits.append((rooms, event, data))
        for r in rooms:
            self.published.append((r, event, data))

    async def send_to(self, sid: str, event: str, data: Any) -> None:
        self.direct.append((sid, event, data))

    def events_for(self, room: str) -> List[str]:
        return [event for r, event, _ in self.published if r == room]


class FakeUserRepository:

    def __init__(self, users: Optional[List[dict]] = None) -> None:
        self.users: Dict[str, dict] = {u["_id"]: dict(u) for u in users or []}

    async def get_user_by_id(self, user_id: str) -> Optional[dict]:
        user = self.users.get(user_id)
        return dict(user) if user else None

    async def get_user_by_email(self, email: str) -> Optional[dict]:
        return next((dict(u) for u in self.users.values() if u.get("email") == email), None)

    async def get_user_by_login(self, login: str) -> Optional[dict]:
        return next((dict(u) for u in self.users.values() if login in (u.get("email"), u.get("name"))), None)

    async def create_user(self, name, email, hashed_password, role="member") -> str:
        user_id = next_id()
        self.users[user_id] = {"_id": user_id, "name": name, "email": email, "hashed_password": hashed_password,
                               "role": role, "family_id": None, "balance": 0}
        return user_id

    async def get_summary(self, user_id: str) -> Optional[dict]:
        user = self.users.get(user_id)
        if not user:
            return None
        return {"_id": user["_id"], "name": user.get("name"), "email": user.get("email")}

    async def list_family_members(self, family_id: str, exclude_user_id: Optional[str] = None) -> List[dict]:
        return [
            dict(u) for u in self.users.values()
            if u.get("family_id") == family_id and u["_id"] != exclude_user_id
        ]

    async def adjust_balance(self, user_id: str, delta: float) -> bool:
        if user_id not in self.users:
            return False
        self.users[user_id]["balance"] = self.users[user_id].get("balance", 0) + delta
        return True

    async def delete_user(self, user_id: str) -> bool:
        return self.users.pop(user_id, None) is not None


class FakeMessageRepository:

    def __init__(self, messages: Optional[List[dict]] = None) -> None:
        self.messages: List[dict] = [dict(m) for m in messages or []]

    @staticmethod
    def _unread_by(message: dict, user_id: str) -> bool:
        return (
            all(r["user"] != user_id for r in message.get("read_by", []))
            and not message.get("deleted_for_everyone", False)
            and user_id not in message.get("deleted_by", [])
        )

    async def save_message(self, family_id, sender_id, message_type, message, recipient_id=None, conversation_id=None):
        doc = {
            "_id": next_id(),
            "family_id": family_id,
            "sender": sender_id,
            "message_type": message_type,
            "message": message,
            "timestamp": datetime.now(timezone.utc),
            "read_by": [],
            "deleted_for_everyone": False,
            "deleted_by": [],
        }
        if message_type == "dm":
            doc["recipient"] = recipient_id
            doc["conversation_id"] = conversation_id
        self.messages.append(doc)
        return dict(doc)

    async def count_unread_group(self, family_id, user_id):
        return sum(
            1 for m in self.messages
            if m["family_id"] == family_id and m["message_type"] == "group"
            and m["sender"] != user_id and self._unread_by(m, user_id)
        )

    async def count_unread_dm(self, family_id, user_id):
        return sum(
            1 for m in self.messages
            if m["family_id"] == family_id and m["message_type"] == "dm"
            and m.get("recipient") == user_id and self._unread_by(m, user_id)
        )

    async def find_unread_for(self, user_id, family_id, conversation_id=None, message_ids=None):
        if conversation_id:
            match = lambda m: m.get("conversation_id") == conversation_id and m.get("recipient") == user_id  # noqa: E731
        elif message_ids:
            match = lambda m: m["_id"] in message_ids and (  # noqa: E731
                m["message_type"] == "group" or m.get("recipient") == user_id
            )
        else:
            return []
        return [
            dict(m) for m in self.messages
            if m["family_id"] == family_id and m["sender"] != user_id
            and all(r["user"] != user_id for r in m.get("read_by", [])) and match(m)
        ]

    async def add_read_receipt(self, message_ids, user_id, read_at):
        updated = 0
        for m in self.messages:
            if m["_id"] in message_ids and all(r["user"] != user_id for r in m["read_by"]):
                m["read_by"].append({"user": user_id, "read_at": read_at})
                updated += 1
        return updated


class FakeTransactionRepository:

    def __init__(self) -> None:
        self.items: List[dict] = []

    async def create(self, family_id, data):
        doc = dict(data)
        doc["_id"] = next_id()
        doc["family_id"] = family_id
        doc.setdefault("status", "approved")
        doc.setdefault("date", datetime.now(timezone.utc))
        self.items.append(doc)
        return dict(doc)

    async def list_for_family(self, family_id, limit=500):
        items = [dict(t) for t in self.items if t["family_id"] == family_id]
        return sorted(items, key=lambda t: t["date"], reverse=True)[:limit]


class FakeGoalRepository:

    def __init__(self) -> None:
        self.goals: Dict[str, dict] = {}

    async def list_for_family(self, family_id):
        return [dict(g) for g in self.goals.values() if g["family_id"] == family_id]

    async def create(self, family_id, title, target_amount, current_amount=0):
        doc = {"_id": next_id(), "title": title, "target_amount": target_amount,
               "current_amount": current_amount, "family_id": family_id}
        self.goals[doc["_id"]] = doc
        return dict(doc)

    async def add_amount(self, goal_id, family_id, amount):
        goal = self.goals.get(goal_id)
        if not goal or goal["family_id"] != family_id:
            return None
        goal["current_amount"] += amount
        return dict(goal)


class FakeDeviceRepository:

    def __init__(self) -> None:
        self.devices: List[dict] = []

    async def register(self, user_id, platform, token):
        doc = {"user_id": user_id, "platform": platform, "token": token}
        if doc not in self.devices:
            self.devices.append(doc)
        return doc

    async def get_tokens(self, user_id, platform=None):
        return [d["token"] for d in self.devices if d["user_id"] == user_id and (platform is None or d["platform"] == platform)]

    async def remove_for_user(self, user_id):
        before = len(self.devices)
        self.devices = [d for d in self.devices if d["user_id"] != user_id]
        return before - len(self.devices)


class FakePush:

    enabled = True

    def __init__(self) -> None:
        self.sent: List[tuple] = []

    async def send(self, tokens, title, body, data=None):
        self.sent.append((list(tokens), title, body, data))
        return len(tokens)


class UnreadServer:
    """httpx MockTransport handler serving the unread-count and mark-read routes."""

    def __init__(self, by_topic: Optional[Dict[str, int]] = None, fail: bool = False) -> None:
        self.by_topic = dict(by_topic or {"chat": 0})
        self.fail = fail
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail:
            return httpx.Response(503, json={"message": "Server error"})
        if request.url.path == "/api/chat/unread-count":
            total = sum(self.by_topic.values())
            return httpx.Response(200, json={"total": total, "group": total, "dm": 0, "by_topic": self.by_topic})
        if request.url.path == "/api/chat/mark-read":
            return httpx.Response(200, json={"message": "Messages marked as read", "count": 2})
        return httpx.Response(404, json={"detail": "Not Found"})

    def paths(self) -> List[str]:
        return [r.url.path for r in self.requests]


def make_api(server: UnreadServer, token: Optional[str] = "tok") -> FamilyBankAPI:
    client = httpx.AsyncClient(transport=httpx.MockTransport(server), base_url="http://test")
    return FamilyBankAPI("http://test", token_provider=lambda: token, client=client)


@pytest.fixture
def sio_client() -> FakeSocketIOClient:
    return FakeSocketIOClient()


@pytest.fixture
def unread_server() -> UnreadServer:
    return UnreadServer()
