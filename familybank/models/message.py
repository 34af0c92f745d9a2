from datetime import datetime
from typing import List, Literal, Optional, TypedDict


MessageType = Literal["group", "dm"]


class ReadReceipt(TypedDict):
    user: str
    read_at: datetime


class MessageDocument(TypedDict, total=False):
    _id: str
    family_id: str
    sender: str
    message_type: MessageType
    # dm only
    recipient: Optional[str]
    conversation_id: Optional[str]
    message: str
    timestamp: datetime
    read_by: List[ReadReceipt]
    # deletion tracking
    deleted_for_everyone: bool
    deleted_by: List[str]
