import logging
from typing import Callable, List, Optional

import httpx

from familybank.client.api import FamilyBankAPI
from familybank.client.counter_store import CounterStore, UnreadCounters, default_counters
from familybank.client.events import CHAT, InboundEvent
from familybank.client.merge import apply_event


logger = logging.getLogger(__name__)

Listener = Callable[[UnreadCounters], None]


class NotificationCenter:
    """Session-local unread counters.

    Local changes (inbound events, mark-as-read) apply immediately; a
    reconcile replaces the topics the server reports with its values. Every
    change is persisted and pushed to listeners.
    """

    def __init__(self, counter_store: CounterStore, api: Optional[FamilyBankAPI] = None) -> None:
        self._store = counter_store
        self._api = api
        self._counters: UnreadCounters = counter_store.load()
        self._listeners: List[Listener] = []
        self.current_user_id: Optional[str] = None

    @property
    def unread(self) -> UnreadCounters:
        return dict(self._counters)

    def count(self, topic: str) -> int:
        return self._counters.get(topic, 0)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def cancel() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return cancel

    def handle_event(self, event: InboundEvent) -> bool:
        updated = apply_event(event, self.current_user_id, self._counters)
        if updated is self._counters:
            return False
        self._commit(updated)
        return True

    def mark_as_read(self, topic: str) -> None:
        if topic in self._counters and self._counters[topic] == 0:
            return
        updated = dict(self._counters)
        updated[topic] = 0
        self._commit(updated)

    async def mark_conversation_read(
        self,
        conversation_id: Optional[str] = None,
        message_ids: Optional[List[str]] = None,
        topic: str = CHAT,
    ) -> None:
        # local zero first; the server's messages-read event brings the real count back
        self.mark_as_read(topic)
        if self._api is None:
            return
        try:
            await self._api.mark_read(conversation_id=conversation_id, message_ids=message_ids)
        except (httpx.HTTPError, ValueError):
            logger.warning("mark-read for %s not confirmed by server", conversation_id or message_ids, exc_info=True)

    async def reconcile(self) -> bool:
        """Overwrite counters with the server snapshot; keep them if the fetch fails."""
        if self._api is None:
            return False
        try:
            snapshot = await self._api.unread_count()
        except (httpx.HTTPError, ValueError):
            logger.warning("Unread count fetch failed; keeping local counters", exc_info=True)
            return False
        updated = dict(self._counters)
        for topic, value in snapshot.by_topic.items():
            updated[topic] = max(0, value)
        self._commit(updated)
        return True

    def reset(self, persist: bool = False) -> None:
        """Back to all-zero. Persisted only on request; logout clears storage itself."""
        counters = default_counters(self._store.topics)
        if persist:
            self._commit(counters)
            return
        self._counters = counters
        self._notify()

    def _commit(self, counters: UnreadCounters) -> None:
        self._counters = counters
        self._store.save(counters)
        self._notify()

    def _notify(self) -> None:
        snapshot = self.unread
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Unread counter listener failed")
