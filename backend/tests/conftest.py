import asyncio
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor

# 앱 모듈 임포트 전에 테스트용 SQLite DB를 지정
_tmp_dir = tempfile.mkdtemp(prefix="sellgadgetz-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_tmp_dir}/test.db"
os.environ["CHAT_BROADCASTER"] = "memory"
os.environ.pop("ADMIN_USERNAME", None)
os.environ.pop("ADMIN_PASSWORD", None)

import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from sellgadgetz.core.security import create_access_token, get_password_hash
from sellgadgetz.db.database import AsyncSessionLocal, Base, engine
from sellgadgetz.db.models import chat, user as user_models  # noqa: F401
from sellgadgetz.db.models.user import User

# bcrypt는 느리므로 테스트 유저는 같은 해시를 공유
TEST_PASSWORD = "password123"
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)

def run_async(coro_fn, *args, **kwargs):
    """
    별도 스레드의 새 이벤트 루프에서 코루틴을 실행합니다.
    (TestClient / pytest-asyncio 루프와 섞이지 않도록)
    """
    with ThreadPoolExecutor(max_workers=1) as executor:
        return executor.submit(asyncio.run, coro_fn(*args, **kwargs)).result()

async def _reset_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

async def _create_user(username: str, is_admin: bool = False) -> User:
    async with AsyncSessionLocal() as session:
        new_user = User(
            username=username,
            email=f"{username}@example.com",
            full_name=username.title(),
            password=TEST_PASSWORD_HASH,
            is_admin=is_admin,
        )
        session.add(new_user)
        await session.commit()
        await session.refresh(new_user)
        return new_user

@pytest.fixture(autouse=True)
def reset_db():
    run_async(_reset_schema)
    yield

@pytest.fixture
def make_user():
    """동기 테스트용 유저 생성기"""
    def _make(username: str, is_admin: bool = False) -> User:
        return run_async(_create_user, username, is_admin)
    return _make

def token_for(user: User) -> str:
    return create_access_token({"sub": str(user.id)})

@pytest.fixture
def auth_headers():
    def _headers(user: User) -> dict:
        return {"Authorization": f"Bearer {token_for(user)}"}
    return _headers

@pytest.fixture
def ws_token():
    return token_for

@pytest.fixture
def client():
    from sellgadgetz.main import app

    with TestClient(app) as test_client:
        yield test_client

@pytest_asyncio.fixture
async def db_session():
    async with AsyncSessionLocal() as session:
        yield session

@pytest_asyncio.fixture
async def user_factory(db_session):
    async def _make(username: str, is_admin: bool = False) -> User:
        new_user = User(
            username=username,
            email=f"{username}@example.com",
            full_name=username.title(),
            password=TEST_PASSWORD_HASH,
            is_admin=is_admin,
        )
        db_session.add(new_user)
        await db_session.commit()
        await db_session.refresh(new_user)
        return new_user
    return _make
