# backend/sellgadgetz/api/v1/chat.py
from typing import List

from fastapi import APIRouter, Depends, Path, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from sellgadgetz.core.config import MAX_DB_ID
from sellgadgetz.core.security import get_current_user
from sellgadgetz.db.database import get_db
from sellgadgetz.db.models.user import User
from sellgadgetz.schemas.chat import (
    ChatRoomCreate, ChatRoomRead, ChatMessageCreate, ChatMessageRead,
    SupportRoomLookup, UnreadCount, ChatStatus,
)
from sellgadgetz.schemas.user import ParticipantRead
from sellgadgetz.services.chat_service import ChatService

router = APIRouter()

def get_chat_service(request: Request, db: AsyncSession = Depends(get_db)) -> ChatService:
    # REST로 보낸 메시지도 웹소켓 참여자에게 전송되도록 broadcaster를 주입
    broadcaster = getattr(request.app.state, "chat_broadcaster", None)
    return ChatService(db, broadcaster=broadcaster)

@router.get("/status", response_model=ChatStatus)
async def get_chat_status(request: Request):
    """
    채팅 서버의 현재 상태(이 인스턴스의 접속자 수)를 확인합니다.
    """
    registry = request.app.state.chat_registry
    return {
        "status": "online",
        "active_users": len(registry.connected_user_ids()),
        "active_connections": registry.connection_count(),
    }

@router.get("/rooms", response_model=List[ChatRoomRead])
async def list_rooms(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """내가 참여 중인 방 목록"""
    return await service.list_rooms(current_user)

@router.post("/rooms", response_model=ChatRoomRead, status_code=status.HTTP_201_CREATED)
async def create_room(
    room_in: ChatRoomCreate,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """방 생성. 생성자는 자동 참여, support 방이면 관리자 전원도 참여"""
    return await service.create_room(current_user, name=room_in.name, room_type=room_in.type)

@router.get("/rooms/{room_id}", response_model=ChatRoomRead)
async def get_room(
    room_id: int = Path(..., gt=0, le=MAX_DB_ID),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return await service.get_room(room_id, current_user)

@router.get("/rooms/{room_id}/participants", response_model=List[ParticipantRead])
async def list_participants(
    room_id: int = Path(..., gt=0, le=MAX_DB_ID),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return await service.list_participants(room_id, current_user)

@router.get("/rooms/{room_id}/messages", response_model=List[ChatMessageRead])
async def list_messages(
    room_id: int = Path(..., gt=0, le=MAX_DB_ID),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """메시지 목록 (시간순). 조회하면 다른 사람이 보낸 메시지는 읽음 처리됩니다."""
    return await service.list_messages(room_id, current_user)

@router.post("/rooms/{room_id}/messages", response_model=ChatMessageRead, status_code=status.HTTP_201_CREATED)
async def send_message(
    message_in: ChatMessageCreate,
    room_id: int = Path(..., gt=0, le=MAX_DB_ID),
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    return await service.send_message(room_id, current_user, message_in.message)

@router.get("/unread", response_model=UnreadCount)
async def get_unread_count(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """뱃지용 안 읽은 메시지 수"""
    return {"count": await service.unread_count(current_user)}

@router.get("/support", response_model=SupportRoomLookup)
async def find_support_room(
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """내 support 방 조회 (생성하지 않음)"""
    return {"room": await service.find_support_room(current_user)}

@router.post("/support", response_model=ChatRoomRead)
async def open_support_room(
    response: Response,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service),
):
    """채팅 위젯 첫 오픈: 기존 support 방을 재사용하고, 없으면 생성합니다."""
    room, created = await service.get_or_create_support_room(current_user)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return room
