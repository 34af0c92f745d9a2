from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class UnreadSnapshot(BaseModel):
    """Authoritative unread counts for one user."""

    total: int = 0
    group: int = 0
    dm: int = 0
    by_topic: Dict[str, int] = Field(default_factory=dict)


class MarkReadRequest(BaseModel):

    conversation_id: Optional[str] = None
    message_ids: Optional[List[str]] = None


class MarkReadResult(BaseModel):

    message: str = "Messages marked as read"
    count: int = 0


class MessagesReadEvent(BaseModel):

    conversation_id: Optional[str] = None
    message_ids: List[str] = Field(default_factory=list)
    user_id: str
    read_at: datetime
