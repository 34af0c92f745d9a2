from typing import Optional

from familybank.client.counter_store import UnreadCounters
from familybank.client.events import NEW_TRANSACTION, NOTIFICATION_TOPICS, InboundEvent, resolve_identity


def topic_for(event: InboundEvent) -> Optional[str]:
    topic = NOTIFICATION_TOPICS.get(event.kind)
    if topic is None:
        return None
    # only expenses show up on the expenses badge
    if event.kind == NEW_TRANSACTION and event.payload.get("type", "expense") != "expense":
        return None
    return topic


def is_self_authored(event: InboundEvent, current_user_id: Optional[str]) -> bool:
    me = resolve_identity(current_user_id)
    return me is not None and event.originator == me


def apply_event(event: InboundEvent, current_user_id: Optional[str], counters: UnreadCounters) -> UnreadCounters:
    """Fold one inbound event into the unread counters.

    Returns ``counters`` itself when the event does not count (unknown kind,
    non-expense transaction, or the current user's own action), otherwise a
    new mapping with the topic incremented by one. Redelivered events count
    again.
    """
    topic = topic_for(event)
    if topic is None or is_self_authored(event, current_user_id):
        return counters
    updated = dict(counters)
    updated[topic] = updated.get(topic, 0) + 1
    return updated
