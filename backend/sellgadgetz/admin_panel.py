# backend/sellgadgetz/admin_panel.py
from sqladmin import Admin, ModelView
from sqladmin.authentication import AuthenticationBackend
from sqlalchemy import select
from starlette.requests import Request

from sellgadgetz.core.config import ADMIN_SESSION_SECRET
from sellgadgetz.core.security import verify_password
from sellgadgetz.db.database import AsyncSessionLocal
from sellgadgetz.db.models.chat import ChatRoom, ChatParticipant, ChatMessage
from sellgadgetz.db.models.user import User

class AdminAuth(AuthenticationBackend):
    async def login(self, request: Request) -> bool:
        form = await request.form()
        username = form.get("username")
        password = form.get("password")

        async with AsyncSessionLocal() as session:
            result = await session.execute(select(User).where(User.username == username))
            user = result.scalar_one_or_none()

        # 유저 존재, 비밀번호, 관리자 권한 확인
        if not user or not verify_password(password or "", user.password):
            return False
        if not user.is_admin or not user.is_active:
            return False

        request.session.update({"user_id": user.id})
        return True

    async def logout(self, request: Request) -> bool:
        request.session.clear()
        return True

    async def authenticate(self, request: Request) -> bool:
        user_id = request.session.get("user_id")
        if not user_id:
            return False

        # 관리자 권한이 회수되면 즉시 차단
        async with AsyncSessionLocal() as session:
            user = await session.get(User, user_id)
        return bool(user and user.is_admin and user.is_active)

class UserAdmin(ModelView, model=User):
    column_list = [User.id, User.username, User.email, User.full_name, User.is_admin, User.is_active, User.created_at]
    column_searchable_list = [User.username, User.email, User.full_name]
    column_details_exclude_list = [User.password]
    form_excluded_columns = [User.password, User.chat_memberships]
    icon = "fa-solid fa-user"

class ChatRoomAdmin(ModelView, model=ChatRoom):
    column_list = [ChatRoom.id, ChatRoom.name, ChatRoom.type, ChatRoom.created_at]
    column_searchable_list = [ChatRoom.name]
    column_sortable_list = [ChatRoom.created_at]
    can_delete = False
    icon = "fa-solid fa-comments"

class ChatParticipantAdmin(ModelView, model=ChatParticipant):
    column_list = [ChatParticipant.id, ChatParticipant.room_id, ChatParticipant.user_id, ChatParticipant.created_at]
    can_delete = False
    icon = "fa-solid fa-user-group"

class ChatMessageAdmin(ModelView, model=ChatMessage):
    column_list = [ChatMessage.id, ChatMessage.room_id, ChatMessage.user_id, ChatMessage.message, ChatMessage.read, ChatMessage.created_at]
    column_searchable_list = [ChatMessage.message]
    column_sortable_list = [ChatMessage.created_at]
    # 메시지는 수정/삭제하지 않음
    can_create = False
    can_edit = False
    can_delete = False
    icon = "fa-solid fa-message"

def setup_admin(app, engine) -> Admin:
    admin = Admin(
        app,
        engine,
        title="SellGadgetz Admin",
        authentication_backend=AdminAuth(secret_key=ADMIN_SESSION_SECRET),
    )
    for view in (UserAdmin, ChatRoomAdmin, ChatParticipantAdmin, ChatMessageAdmin):
        admin.add_view(view)
    return admin
