import pytest
from fastapi import HTTPException
from sqlalchemy import select, func

from sellgadgetz.db.models.chat import ChatMessage
from sellgadgetz.services.chat_service import ChatService

class RecordingBroadcaster:
    def __init__(self):
        self.published = []

    async def publish(self, user_ids, payload):
        self.published.append((list(user_ids), payload))

async def test_support_room_joins_all_admins(db_session, user_factory):
    alice = await user_factory("alice")
    admin1 = await user_factory("admin1", is_admin=True)
    admin2 = await user_factory("admin2", is_admin=True)
    service = ChatService(db_session)

    room = await service.create_room(alice, name="Support - alice", room_type="support")
    ids = await service.repo.get_participant_ids(room.id)

    assert sorted(ids) == sorted([alice.id, admin1.id, admin2.id])

async def test_admin_creating_support_room_is_not_duplicated(db_session, user_factory):
    admin = await user_factory("admin", is_admin=True)
    service = ChatService(db_session)

    room = await service.create_room(admin, name="Support - admin", room_type="support")

    assert await service.repo.get_participant_ids(room.id) == [admin.id]

async def test_non_support_room_does_not_join_admins(db_session, user_factory):
    alice = await user_factory("alice")
    await user_factory("admin", is_admin=True)
    service = ChatService(db_session)

    room = await service.create_room(alice, name="friends", room_type="group")

    assert await service.repo.get_participant_ids(room.id) == [alice.id]

async def test_support_room_is_reused(db_session, user_factory):
    alice = await user_factory("alice")
    service = ChatService(db_session)

    assert await service.find_support_room(alice) is None

    first, created_first = await service.get_or_create_support_room(alice)
    second, created_second = await service.get_or_create_support_room(alice)

    assert created_first is True
    assert created_second is False
    assert first.id == second.id
    rooms = await service.list_rooms(alice)
    assert len([r for r in rooms if r.type == "support"]) == 1

async def test_list_marks_other_authors_read(db_session, user_factory):
    alice = await user_factory("alice")
    bob = await user_factory("bob")
    bob_id = bob.id
    service = ChatService(db_session)
    room = await service.create_room(alice, name="dm", room_type="direct")
    await service.repo.add_participant(room.id, bob.id)
    await db_session.commit()

    own = await service.send_message(room.id, alice, "question")
    own_id = own.id
    for text in ("a", "b", "c"):
        await service.send_message(room.id, bob, text)

    assert await service.unread_count(alice) == 3

    await service.list_messages(room.id, alice)

    assert await service.unread_count(alice) == 0
    db_session.expire_all()
    rows = (await db_session.execute(select(ChatMessage).where(ChatMessage.room_id == room.id))).scalars().all()
    assert all(m.read for m in rows if m.user_id == bob_id)
    assert next(m for m in rows if m.id == own_id).read is False

async def test_unread_count_across_rooms(db_session, user_factory):
    user = await user_factory("user")
    admin = await user_factory("admin", is_admin=True)
    service = ChatService(db_session)
    room1 = await service.create_room(user, name="one", room_type="group")
    room2 = await service.create_room(user, name="two", room_type="group")

    # admin is not a participant of either room but may still post
    for i in range(3):
        await service.send_message(room1.id, admin, f"r1 #{i}")
    for i in range(2):
        await service.send_message(room2.id, admin, f"r2 #{i}")

    assert await service.unread_count(user) == 5

    await service.list_messages(room1.id, user)
    assert await service.unread_count(user) == 2

    await service.list_messages(room2.id, user)
    assert await service.unread_count(user) == 0

async def test_non_participant_is_denied(db_session, user_factory):
    alice = await user_factory("alice")
    mallory = await user_factory("mallory")
    service = ChatService(db_session)
    room = await service.create_room(alice, name="private", room_type="group")

    with pytest.raises(HTTPException) as exc:
        await service.send_message(room.id, mallory, "let me in")
    assert exc.value.status_code == 403

    with pytest.raises(HTTPException) as exc:
        await service.list_messages(room.id, mallory)
    assert exc.value.status_code == 403

    count = await db_session.scalar(select(func.count(ChatMessage.id)))
    assert count == 0

async def test_admin_can_read_and_post_without_membership(db_session, user_factory):
    alice = await user_factory("alice")
    admin = await user_factory("admin", is_admin=True)
    service = ChatService(db_session)
    room = await service.create_room(alice, name="private", room_type="group")

    msg = await service.send_message(room.id, admin, "hello from staff")
    messages = await service.list_messages(room.id, admin)

    assert [m.id for m in messages] == [msg.id]
    assert admin.id not in await service.repo.get_participant_ids(room.id)

async def test_unknown_room_is_not_found(db_session, user_factory):
    admin = await user_factory("admin", is_admin=True)
    service = ChatService(db_session)

    with pytest.raises(HTTPException) as exc:
        await service.get_room(999, admin)
    assert exc.value.status_code == 404

async def test_blank_message_is_rejected(db_session, user_factory):
    alice = await user_factory("alice")
    service = ChatService(db_session)
    room = await service.create_room(alice, name="notes", room_type="group")

    with pytest.raises(HTTPException) as exc:
        await service.send_message(room.id, alice, "   ")
    assert exc.value.status_code == 400

async def test_messages_are_listed_in_send_order(db_session, user_factory):
    alice = await user_factory("alice")
    service = ChatService(db_session)
    room = await service.create_room(alice, name="log", room_type="group")

    sent = [await service.send_message(room.id, alice, text) for text in ("M1", "M2", "M3")]
    listed = await service.list_messages(room.id, alice)

    assert [m.message for m in listed] == ["M1", "M2", "M3"]
    assert [m.id for m in listed] == [m.id for m in sent]

async def test_send_fans_out_to_current_participants(db_session, user_factory):
    alice = await user_factory("alice")
    admin = await user_factory("admin", is_admin=True)
    broadcaster = RecordingBroadcaster()
    service = ChatService(db_session, broadcaster=broadcaster)
    room = await service.create_room(alice, name="Support - alice", room_type="support")

    msg = await service.send_message(room.id, alice, "  hello  ")

    assert len(broadcaster.published) == 1
    user_ids, payload = broadcaster.published[0]
    assert sorted(user_ids) == sorted([alice.id, admin.id])
    assert payload["id"] == msg.id
    assert payload["roomId"] == room.id
    assert payload["userId"] == alice.id
    assert payload["message"] == "hello"
    assert payload["read"] is False
    assert "createdAt" in payload
