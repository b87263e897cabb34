# backend/sellgadgetz/services/chat_service.py
import logging
from typing import List, Optional, TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from sellgadgetz.core.config import CHAT_MESSAGE_MAX_LENGTH
from sellgadgetz.core.exceptions import AuthorizationError, BadRequestError, NotFoundError
from sellgadgetz.db.models.chat import ChatRoom, ChatMessage, ROOM_TYPES, ROOM_TYPE_SUPPORT
from sellgadgetz.db.models.user import User
from sellgadgetz.repositories.chat_repository import ChatRepository
from sellgadgetz.schemas.chat import serialize_message

if TYPE_CHECKING:
    from sellgadgetz.sockets.broadcaster import Broadcaster

logger = logging.getLogger(__name__)

class ChatService:
    """
    채팅방/메시지 비즈니스 로직.
    - support 방은 유저당 하나, 생성 시 관리자 전원이 자동 참여
    - 참여자 또는 관리자만 방을 조회/작성 가능
    - 메시지 목록 조회 시 다른 사람이 쓴 메시지를 읽음 처리
    """

    def __init__(self, db: AsyncSession, broadcaster: Optional["Broadcaster"] = None):
        self.db = db
        self.repo = ChatRepository(db)
        self.broadcaster = broadcaster

    # --- 권한 ---

    async def _require_room(self, room_id: int) -> ChatRoom:
        room = await self.repo.get_room(room_id)
        if not room:
            raise NotFoundError("Chat room not found")
        return room

    async def _require_access(self, room_id: int, user: User) -> ChatRoom:
        room = await self._require_room(room_id)
        if user.is_admin:
            return room
        if not await self.repo.is_participant(room_id, user.id):
            raise AuthorizationError("Access denied")
        return room

    # --- Rooms ---

    async def list_rooms(self, user: User) -> List[ChatRoom]:
        return await self.repo.get_rooms_for_user(user.id)

    async def get_room(self, room_id: int, user: User) -> ChatRoom:
        return await self._require_access(room_id, user)

    async def create_room(self, user: User, name: str, room_type: str = ROOM_TYPE_SUPPORT) -> ChatRoom:
        """방을 만들고 생성자를 참여시킵니다. support 방이면 관리자 전원도 참여시킵니다."""
        if room_type not in ROOM_TYPES:
            raise BadRequestError(f"Unknown room type: {room_type}")

        room = await self.repo.create_room(name=name, room_type=room_type)
        await self.repo.add_participant(room.id, user.id)

        if room.type == ROOM_TYPE_SUPPORT:
            for admin_id in await self.repo.get_admin_ids():
                if admin_id != user.id:
                    await self.repo.add_participant(room.id, admin_id)

        await self.db.commit()
        logger.info(f"[ChatService] 방 생성: room={room.id}, type={room.type}, creator={user.id}")
        return room

    async def find_support_room(self, user: User) -> Optional[ChatRoom]:
        """유저가 참여 중인 방 중 첫 번째 support 방을 찾습니다. 생성하지 않습니다."""
        for room in await self.repo.get_rooms_for_user(user.id):
            if room.type == ROOM_TYPE_SUPPORT:
                return room
        return None

    async def get_or_create_support_room(self, user: User) -> tuple[ChatRoom, bool]:
        """(room, created) 를 반환합니다."""
        room = await self.find_support_room(user)
        if room:
            return room, False
        room = await self.create_room(user, name=f"Support - {user.username}", room_type=ROOM_TYPE_SUPPORT)
        return room, True

    async def list_participants(self, room_id: int, user: User) -> List[User]:
        await self._require_access(room_id, user)
        return await self.repo.get_participants(room_id)

    # --- Messages ---

    async def send_message(self, room_id: int, user: User, text: str) -> ChatMessage:
        content = (text or "").strip()
        if not content:
            raise BadRequestError("Message must not be empty")
        if len(content) > CHAT_MESSAGE_MAX_LENGTH:
            raise BadRequestError(f"Message exceeds {CHAT_MESSAGE_MAX_LENGTH} characters")

        await self._require_access(room_id, user)

        new_msg = await self.repo.create_message(room_id=room_id, user_id=user.id, message=content)
        await self.db.commit()

        # 커밋 이후에만 실시간 전송
        if self.broadcaster is not None:
            await self.fan_out(new_msg)
        return new_msg

    async def fan_out(self, message: ChatMessage):
        """방의 현재 참여자 전원의 연결에 저장된 메시지를 전송합니다."""
        participant_ids = await self.repo.get_participant_ids(message.room_id)
        try:
            await self.broadcaster.publish(participant_ids, serialize_message(message))
        except Exception as e:
            # 실시간 전송 실패는 REST 재조회로 복구되므로 요청은 성공 처리
            logger.error(f"[ChatService] 메시지 전송 실패 (room {message.room_id}, msg {message.id}): {e}")

    async def list_messages(self, room_id: int, user: User) -> List[ChatMessage]:
        """
        메시지를 시간순으로 반환하고, 다른 사람이 쓴 메시지를 읽음 처리합니다.
        반환 목록의 read 값은 읽음 처리 직전 상태입니다.
        """
        await self._require_access(room_id, user)

        messages = await self.repo.get_messages(room_id)
        updated = await self.repo.mark_messages_read(room_id, user.id)
        await self.db.commit()

        if updated:
            logger.debug(f"[ChatService] 읽음 처리: room={room_id}, reader={user.id}, count={updated}")
        return messages

    async def unread_count(self, user: User) -> int:
        return await self.repo.count_unread(user.id)
