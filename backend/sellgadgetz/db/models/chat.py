# backend/sellgadgetz/db/models/chat.py
from datetime import datetime

from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sellgadgetz.db.database import Base
from sellgadgetz.db.models.user import User, get_utc_now

# 채팅방 종류: support(유저당 1개, 관리자 전원 자동 참여), direct, group
ROOM_TYPE_SUPPORT = "support"
ROOM_TYPES = ("support", "direct", "group")

class ChatRoom(Base):
    __tablename__ = "chat_rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(20), default=ROOM_TYPE_SUPPORT, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now)

    participants: Mapped[list["ChatParticipant"]] = relationship(
        "ChatParticipant", back_populates="room"
    )

    def __str__(self):
        return f"{self.name} ({self.type})"

class ChatParticipant(Base):
    __tablename__ = "chat_participants"
    # (room, user) 쌍당 최대 1행
    __table_args__ = (UniqueConstraint("room_id", "user_id", name="uq_chat_participant_room_user"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("chat_rooms.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now)

    room: Mapped["ChatRoom"] = relationship("ChatRoom", back_populates="participants")
    user: Mapped["User"] = relationship("User", back_populates="chat_memberships")

class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    room_id: Mapped[int] = mapped_column(ForeignKey("chat_rooms.id"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    # 작성자 이외의 참여자가 한 번이라도 조회했는지 여부
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now, index=True)
