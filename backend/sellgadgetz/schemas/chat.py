from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from sellgadgetz.core.config import CHAT_MESSAGE_MAX_LENGTH, MAX_DB_ID

class CamelModel(BaseModel):
    # DB 속성에서 읽고, JSON은 camelCase(roomId, userId, createdAt)로 내보냅니다.
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

class ChatRoomCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    type: Literal["support", "direct", "group"] = "support"

class ChatRoomRead(CamelModel):
    id: int
    name: str
    type: str
    created_at: datetime

class SupportRoomLookup(CamelModel):
    room: Optional[ChatRoomRead] = None

class ChatMessageCreate(CamelModel):
    message: str = Field(..., min_length=1, max_length=CHAT_MESSAGE_MAX_LENGTH)

class ChatMessageRead(CamelModel):
    id: int
    room_id: int
    user_id: int
    message: str
    read: bool
    created_at: datetime

class ChatSocketFrame(CamelModel):
    """웹소켓 수신 프레임: {"roomId": 7, "message": "hello"}"""
    model_config = ConfigDict(extra="ignore")

    room_id: int = Field(..., gt=0, le=MAX_DB_ID)
    message: str = Field(..., min_length=1)

class UnreadCount(BaseModel):
    count: int

class ChatStatus(BaseModel):
    status: str
    active_users: int
    active_connections: int

def serialize_message(message) -> dict:
    """ChatMessage 행을 소켓으로 보낼 JSON dict로 변환합니다."""
    return ChatMessageRead.model_validate(message).model_dump(mode="json", by_alias=True)
