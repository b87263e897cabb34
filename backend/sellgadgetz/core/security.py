import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, WebSocket
from fastapi.security import OAuth2PasswordBearer
from jose import jwt, JWTError
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import AsyncSession

from sellgadgetz.core.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from sellgadgetz.core.exceptions import AuthenticationError, AuthorizationError
from sellgadgetz.db.database import get_db, AsyncSessionLocal
from sellgadgetz.db.models.user import User

logger = logging.getLogger(__name__)

# 비밀번호 암호화 설정
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# 토큰을 얻어올 엔드포인트 URL 설정 (Swagger UI 인증에 사용)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/auth/token")

# 웹소켓 close 코드
WS_CLOSE_UNAUTHENTICATED = 4401
WS_CLOSE_FORBIDDEN = 4403

# --- 비밀번호 / 토큰 ---

def get_password_hash(password: str) -> str:
    """비밀번호를 해시화합니다. bcrypt 제한으로 72바이트까지만 사용합니다."""
    return pwd_context.hash(password[:72])

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """평문 비밀번호와 해시된 비밀번호를 비교합니다."""
    return pwd_context.verify(plain_password[:72], hashed_password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """JWT 액세스 토큰을 생성합니다."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def verify_token(token: str) -> int:
    """
    JWT 토큰을 디코딩하고 유효성을 검증한 뒤 user_id를 반환합니다.
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
        user_id = payload.get("sub")
        if user_id is None:
            raise AuthenticationError()
        return int(user_id)
    except (JWTError, ValueError):
        raise AuthenticationError()

# --- HTTP 의존성 ---

async def get_current_user_id(token: str = Depends(oauth2_scheme)) -> int:
    """
    FastAPI Dependency: 헤더에서 토큰을 추출하고 검증하여 user_id를 반환합니다.
    """
    return verify_token(token)

async def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> User:
    """토큰의 user_id로 활성 유저를 로드합니다."""
    user = await db.get(User, user_id)
    if not user or not user.is_active:
        raise AuthenticationError()
    return user

async def get_current_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user

# --- 웹소켓 검증 ---

def _extract_websocket_token(websocket: WebSocket) -> Optional[str]:
    token = websocket.query_params.get("token")
    if token:
        return token
    auth_header = websocket.headers.get("authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return None

async def authenticate_websocket(websocket: WebSocket) -> Optional[User]:
    """
    WebSocket 연결 시 REST와 동일한 JWT로 사용자를 확인합니다.
    실패하면 소켓을 닫고 None을 반환합니다. (accept 전에 호출)
    """
    token = _extract_websocket_token(websocket)
    if not token:
        logger.warning("[WS] 토큰 없이 연결 시도")
        await websocket.close(code=WS_CLOSE_UNAUTHENTICATED)
        return None

    try:
        user_id = verify_token(token)
    except AuthenticationError:
        logger.warning("[WS] 유효하지 않은 토큰")
        await websocket.close(code=WS_CLOSE_UNAUTHENTICATED)
        return None

    # userId 쿼리 파라미터는 토큰의 주체와 일치할 때만 허용
    claimed = websocket.query_params.get("userId")
    if claimed is not None and claimed != str(user_id):
        logger.warning(f"[WS] userId 불일치: claimed={claimed}, token={user_id}")
        await websocket.close(code=WS_CLOSE_FORBIDDEN)
        return None

    async with AsyncSessionLocal() as db:
        user = await db.get(User, user_id)

    if not user or not user.is_active:
        await websocket.close(code=WS_CLOSE_UNAUTHENTICATED)
        return None
    return user
