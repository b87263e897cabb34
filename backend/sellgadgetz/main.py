import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sellgadgetz.core.config import ALLOWED_ORIGINS
from sellgadgetz.core.exceptions import register_exception_handlers
from sellgadgetz.core.logger import setup_logging
from sellgadgetz.api.v1.routers import api_router
from sellgadgetz.sockets.chat_socket import router as chat_socket_router
from sellgadgetz.sockets.registry import ConnectionRegistry
from sellgadgetz.sockets.broadcaster import build_broadcaster
from sellgadgetz.db.database import init_db, close_db, engine
from sellgadgetz.db.database_redis import RedisManager
from sellgadgetz.admin_panel import setup_admin

logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    시작: 로깅 설정, DB 테이블 생성, 연결 레지스트리와 broadcaster 생성
    종료: broadcaster 중지, 남은 소켓 종료, DB/Redis 연결 해제
    """
    setup_logging()
    await init_db()

    registry = ConnectionRegistry()
    broadcaster = build_broadcaster(registry)
    await broadcaster.start()
    app.state.chat_registry = registry
    app.state.chat_broadcaster = broadcaster
    logger.info(f"[STARTUP] 채팅 broadcaster: {type(broadcaster).__name__}")

    yield

    await broadcaster.stop()
    await registry.close_all()
    await close_db()
    await RedisManager.close()
    logger.info("[SHUTDOWN] 리소스 해제 완료")

app = FastAPI(title="SellGadgetz API", lifespan=lifespan)

# CORS: 프론트엔드(React SPA)가 다른 도메인에서 API를 호출할 수 있도록 허용
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# REST API와 WebSocket 엔드포인트 연결
app.include_router(api_router)
app.include_router(chat_socket_router)

setup_admin(app, engine)

@app.get("/")
async def root():
    """
    서버 상태 확인용 루트 엔드포인트입니다.
    """
    return {"message": "Welcome to SellGadgetz API"}
