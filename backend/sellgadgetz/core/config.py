# backend/sellgadgetz/core/config.py
import os
from pathlib import Path

from dotenv import load_dotenv

# 프로젝트 루트의 .env (backend/sellgadgetz/core/../../../.env)
env_path = Path(__file__).resolve().parent.parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# --- Database ---
POSTGRES_USER = os.getenv("POSTGRES_USER", "postgres")
POSTGRES_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
POSTGRES_HOST = os.getenv("POSTGRES_HOST", "db")
POSTGRES_PORT = os.getenv("POSTGRES_PORT", "5432")
POSTGRES_DB = os.getenv("POSTGRES_DB", "sellgadgetz")

DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{POSTGRES_USER}:{POSTGRES_PASSWORD}@{POSTGRES_HOST}:{POSTGRES_PORT}/{POSTGRES_DB}",
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# --- Redis / fan-out ---
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CHAT_BROADCASTER = os.getenv("CHAT_BROADCASTER", "memory").lower()  # memory, redis
CHAT_REDIS_CHANNEL = os.getenv("CHAT_REDIS_CHANNEL", "sellgadgetz:chat")

# --- Security ---
SECRET_KEY = os.getenv("SECRET_KEY", "sellgadgetz-secret-key")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24)))  # 1일
ADMIN_SESSION_SECRET = os.getenv("ADMIN_SESSION_SECRET", "secret_key_for_admin_session")

# 초기 관리자 계정 (둘 다 설정된 경우에만 시딩)
ADMIN_USERNAME = os.getenv("ADMIN_USERNAME")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@sellgadgetz.local")

# --- HTTP ---
ALLOWED_ORIGINS = [origin.strip() for origin in os.getenv("ALLOWED_ORIGINS", "*").split(",")]

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# --- Chat ---
CHAT_MESSAGE_MAX_LENGTH = 2000

# INTEGER 기본키 상한 (Postgres int4)
MAX_DB_ID = 2**31 - 1
