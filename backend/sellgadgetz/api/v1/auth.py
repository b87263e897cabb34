# backend/sellgadgetz/api/v1/auth.py
from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from sellgadgetz.core.exceptions import AuthenticationError
from sellgadgetz.core.security import get_current_user
from sellgadgetz.db.database import get_db
from sellgadgetz.db.models.user import User
from sellgadgetz.schemas.user import UserCreate, UserLogin, UserRead, Token
from sellgadgetz.services import user_service

router = APIRouter()

@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(user_in: UserCreate, db: AsyncSession = Depends(get_db)):
    """회원가입 엔드포인트: 서비스로 로직 위임"""
    return await user_service.register_user(db, user_in)

@router.post("/login", response_model=Token)
async def login(user_in: UserLogin, db: AsyncSession = Depends(get_db)):
    """로그인 (JSON)"""
    auth_result = await user_service.authenticate_user(db, user_in.username, user_in.password)
    if not auth_result:
        raise AuthenticationError("Invalid username or password")
    return auth_result

@router.post("/token", response_model=Token)
async def login_form(form: OAuth2PasswordRequestForm = Depends(), db: AsyncSession = Depends(get_db)):
    """로그인 (OAuth2 form, Swagger UI용)"""
    auth_result = await user_service.authenticate_user(db, form.username, form.password)
    if not auth_result:
        raise AuthenticationError("Invalid username or password")
    return auth_result

@router.get("/me", response_model=UserRead)
async def me(current_user: User = Depends(get_current_user)):
    return current_user
