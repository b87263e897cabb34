# backend/sellgadgetz/db/models/user.py
from datetime import datetime, timezone
from typing import Optional, TYPE_CHECKING

from sqlalchemy import Integer, String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sellgadgetz.db.database import Base

# 순환 참조 방지를 위한 타입 체크
if TYPE_CHECKING:
    from sellgadgetz.db.models.chat import ChatParticipant

def get_utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)

class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True, nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    full_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)  # bcrypt hash
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=get_utc_now)

    chat_memberships: Mapped[list["ChatParticipant"]] = relationship(
        "ChatParticipant", back_populates="user"
    )

    def __str__(self):
        return self.username
