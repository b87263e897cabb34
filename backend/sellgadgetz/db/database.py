import logging
from typing import AsyncGenerator

from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from sellgadgetz.core.config import DATABASE_URL, SQL_ECHO, ADMIN_USERNAME, ADMIN_PASSWORD, ADMIN_EMAIL

logger = logging.getLogger(__name__)

# SQLite(aiosqlite)는 이벤트 루프마다 새 커넥션을 쓰도록 풀링하지 않습니다.
engine_kwargs = {"echo": SQL_ECHO}
if DATABASE_URL.startswith("sqlite"):
    engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(DATABASE_URL, **engine_kwargs)

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

class Base(DeclarativeBase):
    pass

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        yield session

async def init_db():
    """
    서버 시작 시 테이블을 생성하고, 환경 변수가 설정된 경우 초기 관리자 계정을 시딩합니다.
    """
    # Base.metadata 등록을 위해 모델 임포트
    from sellgadgetz.db.models import user, chat  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if ADMIN_USERNAME and ADMIN_PASSWORD:
        await seed_admin(ADMIN_USERNAME, ADMIN_PASSWORD, ADMIN_EMAIL)

async def seed_admin(username: str, password: str, email: str):
    from sellgadgetz.db.models.user import User
    from sellgadgetz.core.security import get_password_hash

    async with AsyncSessionLocal() as session:
        res = await session.execute(select(User).where(User.username == username))
        if res.scalar_one_or_none():
            return

        session.add(User(
            username=username,
            email=email,
            full_name="Administrator",
            password=get_password_hash(password),
            is_admin=True,
        ))
        await session.commit()
        logger.info(f"[DB] 관리자 계정 생성: {username}")

async def close_db():
    await engine.dispose()
