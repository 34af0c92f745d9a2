import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from familybank.client.api import FamilyBankAPI
from familybank.client.channels import ChannelController
from familybank.client.counter_store import CounterStore
from familybank.client.events import (
    MESSAGES_READ,
    NOTIFICATION_TOPICS,
    USER_REMOVED,
    Identity,
    InboundEvent,
    resolve_identity,
)
from familybank.client.notifications import NotificationCenter
from familybank.client.storage import JsonFileStore, KeyValueStore, MemoryStore
from familybank.client.transport import SocketTransport


logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


class ClientSession:
    """One signed-in client: owns the transport, channels and unread counters.

    Nothing here is module-global; build one per session, ``start`` it with an
    identity and ``logout`` or ``close`` it when done.
    """

    def __init__(
        self,
        transport: SocketTransport,
        api: FamilyBankAPI,
        store: KeyValueStore,
        counter_store: Optional[CounterStore] = None,
    ) -> None:
        self.transport = transport
        self.api = api
        self.store = store
        self.channels = ChannelController(transport)
        self.notifications = NotificationCenter(counter_store or CounterStore(store), api)
        self.identity: Optional[Identity] = None

    @classmethod
    def create(cls, base_url: str, store_path: Optional[Path | str] = None) -> "ClientSession":
        store: KeyValueStore = JsonFileStore(store_path) if store_path else MemoryStore()

        def token() -> Optional[str]:
            return store.get(TOKEN_KEY)

        transport = SocketTransport(base_url, token_provider=token)
        api = FamilyBankAPI(base_url, token_provider=token)
        return cls(transport, api, store)

    def save_login(self, token: str, user: Dict[str, Any]) -> Optional[Identity]:
        self.store.set(TOKEN_KEY, token)
        self.store.set(USER_KEY, json.dumps(user))
        return Identity.from_user(user)

    def restore_identity(self) -> Optional[Identity]:
        raw = self.store.get(USER_KEY)
        if not raw:
            return None
        try:
            user = json.loads(raw)
        except ValueError:
            logger.warning("Stored user record is not valid JSON")
            return None
        return Identity.from_user(user) if isinstance(user, dict) else None

    async def start(self, identity: Optional[Identity] = None) -> bool:
        identity = identity or self.restore_identity()
        if identity is None:
            return False
        self._set_identity(identity)
        self._listen()
        await self.channels.join(identity)
        await self.notifications.reconcile()
        return True

    async def change_identity(self, identity: Optional[Identity]) -> None:
        if identity is None:
            await self.logout()
            return
        if identity == self.identity:
            return
        previous = self.identity
        self._set_identity(identity)
        if previous is not None and previous.user_id != identity.user_id:
            # another account signed in; its badge must not start from ours
            self.notifications.reset(persist=True)
        self._listen()
        await self.channels.join(identity)
        await self.notifications.reconcile()

    async def logout(self) -> None:
        await self._teardown()
        self.store.clear()
        self.notifications.reset()
        await self.transport.disconnect()
        logger.info("Session logged out")

    async def close(self) -> None:
        await self._teardown()
        await self.transport.disconnect()
        await self.api.aclose()

    def _set_identity(self, identity: Identity) -> None:
        self.identity = identity
        self.notifications.current_user_id = identity.user_id

    def _listen(self) -> None:
        for kind in NOTIFICATION_TOPICS:
            self.channels.listen(kind, self._notification_handler(kind))
        self.channels.listen(MESSAGES_READ, self._on_messages_read)
        self.channels.listen(USER_REMOVED, self._on_user_removed)

    def _notification_handler(self, kind: str):
        def handle(data: Any) -> None:
            self.notifications.handle_event(InboundEvent.from_transport(kind, data))
        return handle

    async def _on_messages_read(self, _data: Any) -> None:
        # another device may have read them; the server count wins
        await self.notifications.reconcile()

    async def _on_user_removed(self, data: Any) -> None:
        removed = resolve_identity(data.get("user_id")) if isinstance(data, dict) else None
        if self.identity is not None and removed == self.identity.user_id:
            logger.info("Current user was removed from the family")
            await self.logout()

    async def _teardown(self) -> None:
        self.channels.cancel_all()
        await self.channels.leave_all()
        self.identity = None
        self.notifications.current_user_id = None
