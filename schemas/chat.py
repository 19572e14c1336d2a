from typing import List, Optional

from pydantic import BaseModel

from schemas.common import CamelModel


class ChatMessage(BaseModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    messages: List[ChatMessage] = []


class ChatResponse(BaseModel):
    text: str
    intent: str


class CsChatRequest(CamelModel):
    user_email: str
    message: str
    user_name: Optional[str] = None


class CsChatDeleteRequest(CamelModel):
    user_email: str


class AdminReplyRequest(CamelModel):
    message_id: int
    reply: str
