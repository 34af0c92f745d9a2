import logging
from typing import Dict, FrozenSet, Optional, Set, Tuple

from socketio.exceptions import ConnectionError as SocketConnectionError, SocketIOError

from familybank.client.events import Identity
from familybank.client.transport import Handler, SocketTransport, Subscription


logger = logging.getLogger(__name__)

FAMILY = "family"
FAMILY_CHAT = "family-chat"
USER = "user"

JOIN_EVENTS: Dict[str, str] = {
    FAMILY: "join-family",
    FAMILY_CHAT: "join-family-chat",
    USER: "join-user-room",
}
LEAVE_EVENTS: Dict[str, str] = {
    FAMILY: "leave-family",
    FAMILY_CHAT: "leave-family-chat",
    USER: "leave-user-room",
}

Channel = Tuple[str, str]


def channels_for(identity: Optional[Identity]) -> Set[Channel]:
    # nothing is joined until both the user and the family are known
    if identity is None or not identity.family_id:
        return set()
    return {
        (FAMILY, identity.family_id),
        (FAMILY_CHAT, identity.family_id),
        (USER, identity.user_id),
    }


class ChannelController:
    """Keeps this session's channel membership and listeners in step with the identity."""

    def __init__(self, transport: SocketTransport) -> None:
        self._transport = transport
        self._membership: Set[Channel] = set()
        self._subscriptions: Dict[str, Subscription] = {}
        self._reconnect_sub: Optional[Subscription] = None

    @property
    def membership(self) -> FrozenSet[Channel]:
        return frozenset(self._membership)

    @property
    def subscribed_events(self) -> FrozenSet[str]:
        return frozenset(self._subscriptions)

    async def ensure_connected(self) -> bool:
        if self._reconnect_sub is None:
            # the server forgets rooms when the socket drops
            self._reconnect_sub = self._transport.on("connect", self._rejoin)
        if self._transport.connected:
            return True
        try:
            await self._transport.connect()
        except SocketConnectionError:
            logger.warning("Realtime connection failed; channels not joined", exc_info=True)
            return False
        return True

    async def join(self, identity: Optional[Identity]) -> bool:
        """Join the channels of ``identity`` and leave any others.

        Channels already joined are not joined again.
        """
        wanted = channels_for(identity)
        if not wanted and not self._membership:
            return False
        if not await self.ensure_connected():
            return False
        for channel in sorted(self._membership - wanted):
            await self._send(LEAVE_EVENTS, channel)
            self._membership.discard(channel)
        for channel in sorted(wanted - self._membership):
            if await self._send(JOIN_EVENTS, channel):
                self._membership.add(channel)
        return bool(wanted) and wanted <= self._membership

    async def leave_all(self) -> None:
        if self._transport.connected:
            for channel in sorted(self._membership):
                await self._send(LEAVE_EVENTS, channel)
        self._membership.clear()

    def listen(self, event: str, handler: Handler) -> Subscription:
        """Register ``handler`` for ``event`` unless this controller already listens to it."""
        existing = self._subscriptions.get(event)
        if existing is not None and existing.active:
            return existing
        subscription = self._transport.on(event, handler)
        self._subscriptions[event] = subscription
        return subscription

    def cancel_all(self) -> None:
        for subscription in self._subscriptions.values():
            subscription.cancel()
        self._subscriptions.clear()
        if self._reconnect_sub is not None:
            self._reconnect_sub.cancel()
            self._reconnect_sub = None

    async def _send(self, events: Dict[str, str], channel: Channel) -> bool:
        scope, identifier = channel
        try:
            await self._transport.emit(events[scope], identifier)
        except SocketIOError:
            logger.warning("Could not send %s for %s", events[scope], identifier, exc_info=True)
            return False
        return True

    async def _rejoin(self, _data=None) -> None:
        for channel in sorted(self._membership):
            await self._send(JOIN_EVENTS, channel)
