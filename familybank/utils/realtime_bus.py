import logging
from typing import Any, List, Optional, Sequence, Union

import socketio
from fastapi import Request
from fastapi.encoders import jsonable_encoder


logger = logging.getLogger(__name__)


def family_room(family_id: str) -> str:
    return str(family_id)


def family_chat_room(family_id: str) -> str:
    return f"chat-{family_id}"


def user_room(user_id: str) -> str:
    return f"user-{user_id}"


def dm_room(conversation_id: str) -> str:
    return f"dm-{conversation_id}"


def conversation_id_for(user_a: str, user_b: str) -> str:
    first, second = sorted([str(user_a), str(user_b)])
    return f"{first}_{second}"


class RealtimeBus:
    """Room-addressed event fanout on top of a Socket.IO server.

    With a Redis URL the server uses ``AsyncRedisManager`` so every worker
    process sees every emit; without one, fanout stays in-process.
    """

    def __init__(self, sio: socketio.AsyncServer, redis_enabled: bool = False) -> None:
        self.sio = sio
        self.enabled = True
        self.redis_enabled = redis_enabled

    async def publish(self, room: Union[str, Sequence[str]], event: str, data: Any) -> None:
        # a list of rooms reaches each socket once even if it sits in several
        target = room if isinstance(room, str) else list(room)
        await self.sio.emit(event, jsonable_encoder(data), room=target)

    async def send_to(self, sid: str, event: str, data: Any) -> None:
        await self.sio.emit(event, jsonable_encoder(data), to=sid)


def create_bus(redis_url: Optional[str] = None, cors_origins: Optional[List[str]] = None) -> RealtimeBus:
    manager = None
    if redis_url:
        manager = socketio.AsyncRedisManager(redis_url)
        logger.info("Realtime fanout through Redis")
    sio = socketio.AsyncServer(
        async_mode="asgi",
        client_manager=manager,
        cors_allowed_origins=cors_origins or [],
    )
    return RealtimeBus(sio, redis_enabled=manager is not None)


def get_bus(request: Request) -> RealtimeBus:
    return request.app.state.bus
