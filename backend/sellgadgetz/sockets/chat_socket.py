# backend/sellgadgetz/sockets/chat_socket.py
import json
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, WebSocket
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from sellgadgetz.core.security import authenticate_websocket
from sellgadgetz.db.database import AsyncSessionLocal
from sellgadgetz.db.models.chat import ChatMessage
from sellgadgetz.db.models.user import User
from sellgadgetz.schemas.chat import ChatSocketFrame
from sellgadgetz.services.chat_service import ChatService
from sellgadgetz.sockets.broadcaster import Broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()

def parse_frame(user_id: int, raw_data: str) -> Optional[dict]:
    """
    수신 프레임을 JSON으로 파싱합니다. 형식이 잘못되면 None.
    """
    try:
        data = json.loads(raw_data)
    except (json.JSONDecodeError, TypeError) as e:
        logger.warning(f"[ChatWS] 메시지 파싱 에러 (User {user_id}): {e}")
        return None
    if not isinstance(data, dict):
        logger.warning(f"[ChatWS] JSON 객체가 아닌 프레임 (User {user_id})")
        return None
    return data

async def process_frame(user_id: int, data: dict, broadcaster: Broadcaster) -> Optional[ChatMessage]:
    """
    파싱된 채팅 프레임 하나를 처리합니다.
    1. 필수 필드(roomId, message) 확인
    2. DB 저장 (프레임마다 별도 세션)
    3. 참여자 전원에게 전송
    실패하면 로그만 남기고 None을 반환합니다. (연결은 유지)
    """
    try:
        frame = ChatSocketFrame.model_validate(data)
    except ValidationError as e:
        logger.warning(f"[ChatWS] 필수 필드 누락 (User {user_id}): {e.errors()}")
        return None

    async with AsyncSessionLocal() as db:
        try:
            # 관리자 권한 변경을 반영하도록 프레임마다 유저를 다시 로드
            user = await db.get(User, user_id)
            if not user or not user.is_active:
                logger.warning(f"[ChatWS] 비활성 유저의 메시지 무시 (User {user_id})")
                return None
            service = ChatService(db, broadcaster=broadcaster)
            return await service.send_message(frame.room_id, user, frame.message)
        except HTTPException as e:
            logger.warning(f"[ChatWS] 메시지 거부 (User {user_id} -> room {frame.room_id}): {e.status_code} {e.detail}")
        except SQLAlchemyError as e:
            logger.error(f"[ChatWS] DB 저장 실패 (User {user_id} -> room {frame.room_id}): {e}")
            await db.rollback()
        except Exception:
            logger.exception(f"[ChatWS] 프레임 처리 중 예외 (User {user_id} -> room {frame.room_id})")
            await db.rollback()
    return None

@router.websocket("/ws/chat")
async def chat_endpoint(websocket: WebSocket):
    """
    실시간 채팅 웹소켓. 연결: /ws/chat?token=<JWT>
    수신 형식: {"roomId": 7, "message": "hello"}
    송신 형식: 저장된 메시지 {"id", "roomId", "userId", "message", "read", "createdAt"}
    """
    user = await authenticate_websocket(websocket)
    if user is None:
        return

    registry = websocket.app.state.chat_registry
    broadcaster = websocket.app.state.chat_broadcaster

    await websocket.accept()
    registry.register(user.id, websocket)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw_data = message.get("text")
            if raw_data is None and message.get("bytes") is not None:
                raw_data = message["bytes"].decode("utf-8", errors="replace")

            data = parse_frame(user.id, raw_data)
            if data is None:
                continue

            # [Heartbeat] PING 메시지 처리
            if data.get("type") == "PING":
                await websocket.send_json({"type": "PONG"})
                continue

            await process_frame(user.id, data, broadcaster)
    finally:
        registry.unregister(user.id, websocket)
