"""Live chat schemas"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ChatMessageCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)


class AdminReply(ChatMessageCreate):
    chat_id: str


class ChatStatusUpdate(BaseModel):
    chat_id: str
    status: str = Field(..., pattern="^(open|closed)$")


class ChatMessageResponse(BaseModel):
    id: int
    sender: str
    sender_id: Optional[str] = None
    text: str
    is_read: bool
    created_at: datetime

    class Config:
        from_attributes = True


class ChatSessionResponse(BaseModel):
    chat_id: str
    user_id: str
    status: str
    last_message_at: datetime
    created_at: datetime
    messages: List[ChatMessageResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ChatSummary(BaseModel):
    chat_id: str
    user_id: str
    username: str
    email: str
    status: str
    last_message: Optional[str] = None
    unread_count: int
    last_message_at: datetime
