# backend/sellgadgetz/api/v1/routers.py
from fastapi import APIRouter

from sellgadgetz.api.v1 import auth, chat, users

# 메인 API 라우터 (/v1)
api_router = APIRouter(prefix="/v1")

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(chat.router, prefix="/chat", tags=["chat"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
