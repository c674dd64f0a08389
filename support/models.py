"""
support/models.py -- Domain dataclasses for support chat threads.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class ChatStatus(str, Enum):
    open = "open"
    closed = "closed"


@dataclass
class ChatMessage:
    """One message in a thread.

    sender_name is copied at send time so the thread still reads correctly
    after the sender renames or is deleted. is_admin reflects the sender's
    stored role when the message was written.
    """

    chat_id: int
    sender_id: int
    sender_name: str
    body: str
    is_admin: bool = False
    sent_at: str = ""
    id: Optional[int] = None


@dataclass
class Chat:
    """The support thread owned by user_id. A user has at most one."""

    user_id: int
    status: str = ChatStatus.open.value
    created_at: str = ""
    last_message_at: str = ""
    messages: list[ChatMessage] = field(default_factory=list)
    id: Optional[int] = None
