"""
Tests for room bookkeeping in the connection manager.
"""
from fxdojo.realtime.manager import Client, ConnectionManager, user_room


def _client(manager, sid, user_id, name="Trader"):
    client = Client(sid=sid, websocket=None, user_id=user_id, user_name=name, user_role="student")
    manager.clients[sid] = client
    manager.user_sockets[user_id].add(sid)
    return client


def test_room_users_are_unique_per_user():
    manager = ConnectionManager()
    _client(manager, "a", "u1")
    _client(manager, "b", "u1")
    _client(manager, "c", "u2", name="Other")
    for sid in ("a", "b", "c"):
        manager.join(sid, "course:general")

    users = manager.room_users("course:general")

    assert sorted(u["user_id"] for u in users) == ["u1", "u2"]


def test_leaving_last_member_drops_room_and_typing():
    manager = ConnectionManager()
    _client(manager, "a", "u1")
    manager.join("a", "lesson:1")
    manager.set_typing("lesson:1", "u1", True)

    manager.leave("a", "lesson:1")

    assert "lesson:1" not in manager.rooms
    assert "lesson:1" not in manager.typing
    assert not manager.in_room("a", "lesson:1")


def test_personal_rooms_are_not_chat_rooms():
    manager = ConnectionManager()
    _client(manager, "a", "u1")
    manager.join("a", user_room("u1"))
    manager.join("a", "dm:u1_u2")

    assert manager.chat_rooms_of("a") == ["dm:u1_u2"]
    assert manager.is_online("u1")
    assert not manager.is_online("u2")


def test_emit_threadsafe_without_listeners_is_a_no_op():
    manager = ConnectionManager()
    manager.emit_threadsafe("course:general", "new_message", {"content": "hi"})
    assert manager.rooms == {}
