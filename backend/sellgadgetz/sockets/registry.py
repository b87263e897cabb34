# backend/sellgadgetz/sockets/registry.py
import logging
from typing import Dict, List, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)

def is_open(websocket: WebSocket) -> bool:
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )

class ConnectionRegistry:
    """
    현재 서버 프로세스에 붙어 있는 웹소켓 연결 목록.
    Key: user_id, Value: 해당 유저의 연결 집합 (탭 여러 개 가능)
    웹소켓 객체는 직렬화할 수 없으므로 프로세스 메모리에만 유지합니다.
    """

    def __init__(self):
        self.active_connections: Dict[int, Set[WebSocket]] = {}

    def register(self, user_id: int, websocket: WebSocket):
        self.active_connections.setdefault(user_id, set()).add(websocket)
        logger.info(f"[ChatWS] 유저 {user_id} 연결됨 (연결 {len(self.active_connections[user_id])}개)")

    def unregister(self, user_id: int, websocket: WebSocket):
        conns = self.active_connections.get(user_id)
        if not conns:
            return
        conns.discard(websocket)
        # 빈 집합은 남기지 않음
        if not conns:
            del self.active_connections[user_id]
        logger.info(f"[ChatWS] 유저 {user_id} 연결 끊김")

    def connections_for(self, user_id: int) -> List[WebSocket]:
        return list(self.active_connections.get(user_id, ()))

    def connected_user_ids(self) -> List[int]:
        return list(self.active_connections.keys())

    def connection_count(self) -> int:
        return sum(len(conns) for conns in self.active_connections.values())

    async def close_all(self, code: int = 1001):
        """서버 종료 시 남은 연결을 닫습니다."""
        for user_id in list(self.active_connections.keys()):
            for websocket in list(self.active_connections.get(user_id, ())):
                if is_open(websocket):
                    try:
                        await websocket.close(code=code)
                    except RuntimeError as e:
                        logger.debug(f"[ChatWS] 종료 중 close 실패 (User {user_id}): {e}")
        self.active_connections.clear()
