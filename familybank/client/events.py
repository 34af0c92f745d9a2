from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


NEW_TRANSACTION = "new-transaction"
MESSAGE_RECEIVED = "message-received"
DM_RECEIVED = "dm-received"
MESSAGES_READ = "messages-read"
UPDATE_GOAL = "update-goal"
USER_REMOVED = "user-removed"

EXPENSES = "expenses"
CHAT = "chat"

# event kind -> topic whose unread counter it bumps
NOTIFICATION_TOPICS: Dict[str, str] = {
    NEW_TRANSACTION: EXPENSES,
    MESSAGE_RECEIVED: CHAT,
    DM_RECEIVED: CHAT,
}

# payload fields naming who produced the event, tried in order
ORIGINATOR_FIELDS: Dict[str, Tuple[str, ...]] = {
    NEW_TRANSACTION: ("payer",),
    MESSAGE_RECEIVED: ("sender", "sender_id"),
    DM_RECEIVED: ("sender", "sender_id"),
}
FALLBACK_ORIGINATOR_FIELDS: Tuple[str, ...] = ("originator_id", "sender_id")


def resolve_identity(value: Any) -> Optional[str]:
    """Reduce a raw id or an embedded user object to a comparable string."""
    if value is None:
        return None
    if isinstance(value, dict):
        for key in ("_id", "id"):
            if value.get(key) is not None:
                return resolve_identity(value[key])
        return None
    text = str(value)
    return text or None


def originator_from_payload(kind: str, payload: Dict[str, Any]) -> Any:
    for field in ORIGINATOR_FIELDS.get(kind, ()) + FALLBACK_ORIGINATOR_FIELDS:
        if payload.get(field) is not None:
            return payload[field]
    return None


class InboundEvent(BaseModel):
    """A named event delivered by the realtime transport."""

    model_config = ConfigDict(frozen=True)

    kind: str
    originator_id: Any = None
    payload: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_transport(cls, kind: str, data: Any) -> "InboundEvent":
        payload = data if isinstance(data, dict) else {}
        return cls(kind=kind, originator_id=originator_from_payload(kind, payload), payload=payload)

    @property
    def originator(self) -> Optional[str]:
        return resolve_identity(self.originator_id)


class Identity(BaseModel):

    model_config = ConfigDict(frozen=True)

    user_id: str
    family_id: Optional[str] = None

    @classmethod
    def from_user(cls, user: Dict[str, Any]) -> Optional["Identity"]:
        user_id = resolve_identity(user.get("_id") or user.get("id"))
        if not user_id:
            return None
        return cls(user_id=user_id, family_id=resolve_identity(user.get("family_id")))
