# backend/sellgadgetz/repositories/chat_repository.py
from typing import List, Optional

from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from sellgadgetz.db.models.chat import ChatRoom, ChatParticipant, ChatMessage
from sellgadgetz.db.models.user import User

class ChatRepository:
    """
    채팅 테이블 접근 계층. 도메인 규칙(권한, support 방 규칙)은 서비스에서 처리합니다.
    쓰기 메서드는 flush만 하고 commit은 호출 측에서 합니다.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Rooms ---

    async def get_room(self, room_id: int) -> Optional[ChatRoom]:
        return await self.db.get(ChatRoom, room_id)

    async def get_rooms_for_user(self, user_id: int) -> List[ChatRoom]:
        stmt = (
            select(ChatRoom)
            .join(ChatParticipant, ChatParticipant.room_id == ChatRoom.id)
            .where(ChatParticipant.user_id == user_id)
            .order_by(ChatRoom.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_room(self, name: str, room_type: str) -> ChatRoom:
        room = ChatRoom(name=name, type=room_type)
        self.db.add(room)
        await self.db.flush()
        await self.db.refresh(room)
        return room

    # --- Participants ---

    async def get_participant(self, room_id: int, user_id: int) -> Optional[ChatParticipant]:
        stmt = select(ChatParticipant).where(
            ChatParticipant.room_id == room_id,
            ChatParticipant.user_id == user_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def add_participant(self, room_id: int, user_id: int) -> ChatParticipant:
        """
        (room, user) 쌍을 한 번만 등록합니다. 이미 있으면 기존 행을 그대로 반환합니다.
        동시 요청은 unique 제약으로 막고, 충돌 시 savepoint만 되돌립니다.
        """
        existing = await self.get_participant(room_id, user_id)
        if existing:
            return existing

        participant = ChatParticipant(room_id=room_id, user_id=user_id)
        try:
            async with self.db.begin_nested():
                self.db.add(participant)
        except IntegrityError:
            existing = await self.get_participant(room_id, user_id)
            if existing is None:
                raise
            return existing
        await self.db.refresh(participant)
        return participant

    async def get_participant_ids(self, room_id: int) -> List[int]:
        stmt = (
            select(ChatParticipant.user_id)
            .where(ChatParticipant.room_id == room_id)
            .order_by(ChatParticipant.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get_participants(self, room_id: int) -> List[User]:
        stmt = (
            select(User)
            .join(ChatParticipant, ChatParticipant.user_id == User.id)
            .where(ChatParticipant.room_id == room_id)
            .order_by(ChatParticipant.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def is_participant(self, room_id: int, user_id: int) -> bool:
        return await self.get_participant(room_id, user_id) is not None

    async def get_admin_ids(self) -> List[int]:
        stmt = select(User.id).where(User.is_admin == True).order_by(User.id)  # noqa: E712
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    # --- Messages ---

    async def get_messages(self, room_id: int) -> List[ChatMessage]:
        stmt = (
            select(ChatMessage)
            .where(ChatMessage.room_id == room_id)
            .order_by(ChatMessage.created_at.asc(), ChatMessage.id.asc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_message(self, room_id: int, user_id: int, message: str) -> ChatMessage:
        new_msg = ChatMessage(room_id=room_id, user_id=user_id, message=message, read=False)
        self.db.add(new_msg)
        await self.db.flush()
        await self.db.refresh(new_msg)
        return new_msg

    async def mark_messages_read(self, room_id: int, reader_id: int) -> int:
        """다른 사람이 쓴 안 읽은 메시지만 읽음 처리합니다. 변경된 행 수를 반환합니다."""
        stmt = (
            update(ChatMessage)
            .where(
                ChatMessage.room_id == room_id,
                ChatMessage.user_id != reader_id,
                ChatMessage.read == False,  # noqa: E712
            )
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount or 0

    async def count_unread(self, user_id: int) -> int:
        my_rooms = select(ChatParticipant.room_id).where(ChatParticipant.user_id == user_id)
        stmt = select(func.count(ChatMessage.id)).where(
            ChatMessage.room_id.in_(my_rooms),
            ChatMessage.user_id != user_id,
            ChatMessage.read == False,  # noqa: E712
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()
