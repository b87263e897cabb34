# backend/sellgadgetz/services/user_service.py
import logging
from typing import List, Optional

from sqlalchemy import select, or_
from sqlalchemy.ext.asyncio import AsyncSession

from sellgadgetz.core.exceptions import BadRequestError, NotFoundError
from sellgadgetz.core.security import get_password_hash, verify_password, create_access_token
from sellgadgetz.db.models.user import User
from sellgadgetz.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

async def register_user(db: AsyncSession, user_in: UserCreate) -> User:
    """
    회원가입: 아이디/이메일 중복 확인 후 유저 생성
    """
    result = await db.execute(select(User).where(User.username == user_in.username))
    if result.scalars().first():
        raise BadRequestError("Username already exists")

    result = await db.execute(select(User).where(User.email == user_in.email))
    if result.scalars().first():
        raise BadRequestError("Email already exists")

    new_user = User(
        username=user_in.username,
        email=user_in.email,
        full_name=user_in.full_name,
        phone=user_in.phone,
        password=get_password_hash(user_in.password),
    )
    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)
    logger.info(f"[UserService] 회원가입: {new_user.username} (id={new_user.id})")
    return new_user

async def authenticate_user(db: AsyncSession, username: str, password: str) -> Optional[dict]:
    """
    로그인: 자격 증명 확인 후 토큰 발급. 실패 시 None (라우터에서 401 처리)
    """
    result = await db.execute(select(User).where(User.username == username))
    user = result.scalars().first()

    if not user or not user.is_active or not verify_password(password, user.password):
        logger.info(f"[UserService] 로그인 실패: {username}")
        return None

    access_token = create_access_token(data={"sub": str(user.id)})
    return {"access_token": access_token, "token_type": "bearer", "user": user}

async def get_all_users(db: AsyncSession, query: Optional[str] = None) -> List[User]:
    stmt = select(User).order_by(User.id)
    if query:
        pattern = f"%{query}%"
        stmt = stmt.where(or_(User.username.ilike(pattern), User.full_name.ilike(pattern)))
    result = await db.execute(stmt)
    return list(result.scalars().all())

async def update_user(db: AsyncSession, user_id: int, user_in: UserUpdate) -> User:
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found")

    for key, value in user_in.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(user, key, value)

    await db.commit()
    await db.refresh(user)
    logger.info(f"[UserService] 유저 수정: id={user.id}, is_admin={user.is_admin}, is_active={user.is_active}")
    return user
