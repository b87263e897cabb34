# backend/sellgadgetz/api/v1/users.py
from typing import List, Optional

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from sellgadgetz.core.config import MAX_DB_ID
from sellgadgetz.core.security import get_current_admin
from sellgadgetz.db.database import get_db
from sellgadgetz.db.models.user import User
from sellgadgetz.schemas.user import UserRead, UserUpdate
from sellgadgetz.services import user_service

router = APIRouter()

@router.get("/", response_model=List[UserRead])
async def get_users(
    query: Optional[str] = None,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """전체 유저 목록 조회 (검색 기능 포함, 관리자 전용)"""
    return await user_service.get_all_users(db, query)

@router.patch("/{user_id}", response_model=UserRead)
async def update_user(
    user_in: UserUpdate,
    user_id: int = Path(..., gt=0, le=MAX_DB_ID),
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_db),
):
    """관리자 권한 / 활성 상태 변경 (관리자 전용)"""
    return await user_service.update_user(db, user_id, user_in)
