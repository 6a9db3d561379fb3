"""
Tests for the chat WebSocket endpoint.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import QueuePool
from starlette.websockets import WebSocketDisconnect

from fxdojo.db import deps
from fxdojo.main import app


def _token(token_headers, user):
    return token_headers(user)["Authorization"].split(" ", 1)[1]


def _join_general(websocket):
    websocket.send_json({"event": "join_room", "data": {"room_type": "course"}})
    return [websocket.receive_json() for _ in range(3)]


class TestConnection:
    def test_rejects_bad_token(self, client):
        with pytest.raises(WebSocketDisconnect) as exc_info:
            with client.websocket_connect("/ws/chat?token=not-a-token") as websocket:
                websocket.receive_json()
        assert exc_info.value.code == 1008

    def test_rejects_missing_token(self, client):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/ws/chat") as websocket:
                websocket.receive_json()

    def test_announces_presence(self, client, token_headers, student_user):
        with client.websocket_connect(f"/ws/chat?token={_token(token_headers, student_user)}") as websocket:
            frame = websocket.receive_json()
            assert frame == {
                "event": "user_status_changed",
                "data": {"user_id": str(student_user.id), "status": "online"},
            }

            websocket.send_json({"event": "get_online_users", "data": {}})
            online = websocket.receive_json()
            assert online["event"] == "online_users"
            assert online["data"]["user_ids"] == [str(student_user.id)]



class TestRooms:
    def test_join_room_sequence(self, client, token_headers, student_user):
        with client.websocket_connect(f"/ws/chat?token={_token(token_headers, student_user)}") as websocket:
            websocket.receive_json()

            joined, history, online = _join_general(websocket)

        assert joined == {
            "event": "room_joined",
            "data": {"room": "course:general", "room_type": "course", "channel_id": "general"},
        }
        assert history == {"event": "message_history", "data": {"room": "course:general", "messages": []}}
        assert online["event"] == "room_online_users"
        assert [u["user_id"] for u in online["data"]["users"]] == [str(student_user.id)]

    def test_send_message(self, client, token_headers, student_user):
        with client.websocket_connect(f"/ws/chat?token={_token(token_headers, student_user)}") as websocket:
            websocket.receive_json()
            _join_general(websocket)

            websocket.send_json(
                {"event": "send_message", "data": {"room_type": "course", "content": "EURUSD looks heavy"}}
            )
            frame = websocket.receive_json()

        assert frame["event"] == "new_message"
        assert frame["data"]["content"] == "EURUSD looks heavy"
        assert frame["data"]["user_id"] == str(student_user.id)
        assert frame["data"]["channel_id"] == "general"

    def test_send_before_join(self, client, token_headers, student_user):
        with client.websocket_connect(f"/ws/chat?token={_token(token_headers, student_user)}") as websocket:
            websocket.receive_json()

            websocket.send_json({"event": "send_message", "data": {"content": "hello?"}})
            frame = websocket.receive_json()

        assert frame == {"event": "error", "data": {"message": "Join the room before sending messages"}}

    def test_history_after_http_post(self, client, token_headers, student_user):
        headers = token_headers(student_user)
        client.post("/api/v1/chat/message", json={"content": "Morning session recap"}, headers=headers)

        with client.websocket_connect(f"/ws/chat?token={_token(token_headers, student_user)}") as websocket:
            websocket.receive_json()
            _, history, _ = _join_general(websocket)

        messages = history["data"]["messages"]
        assert [m["content"] for m in messages] == ["Morning session recap"]

    def test_unknown_event(self, client, token_headers, student_user):
        with client.websocket_connect(f"/ws/chat?token={_token(token_headers, student_user)}") as websocket:
            websocket.receive_json()

            websocket.send_json({"event": "launch_rocket", "data": {}})
            frame = websocket.receive_json()

        assert frame == {"event": "error", "data": {"message": "Unknown event: launch_rocket"}}

    def test_dm_room_requires_participation(self, client, token_headers, student_user, other_student, instructor_user):
        dm_room_id = "_".join(sorted([str(other_student.id), str(instructor_user.id)]))

        with client.websocket_connect(f"/ws/chat?token={_token(token_headers, student_user)}") as websocket:
            websocket.receive_json()

            websocket.send_json({"event": "join_room", "data": {"room_type": "dm", "room_id": dm_room_id}})
            frame = websocket.receive_json()

        assert frame == {"event": "error", "data": {"message": "Not a participant of this conversation"}}

    def test_typing_reaches_other_members(self, client, token_headers, student_user, other_student):
        student_token = _token(token_headers, student_user)
        other_token = _token(token_headers, other_student)

        with client.websocket_connect(f"/ws/chat?token={student_token}") as first:
            first.receive_json()
            _join_general(first)

            with client.websocket_connect(f"/ws/chat?token={other_token}") as second:
                assert first.receive_json()["event"] == "user_status_changed"
                second.receive_json()
                second.send_json({"event": "join_room", "data": {"room_type": "course"}})
                assert first.receive_json()["event"] == "user_joined"
                for _ in range(3):
                    second.receive_json()

                second.send_json({"event": "typing_start", "data": {"room_type": "course"}})
                frame = first.receive_json()

        assert frame["event"] == "user_typing"
        assert frame["data"]["user_id"] == str(other_student.id)
        assert frame["data"]["is_typing"] is True


class TestSessions:
    def test_open_socket_does_not_hold_a_connection(self, db, token_headers, student_user, monkeypatch):
        engine = create_engine(
            str(db.get_bind().url),
            poolclass=QueuePool,
            pool_size=1,
            max_overflow=0,
            pool_timeout=1,
            connect_args={"check_same_thread": False},
        )
        monkeypatch.setattr(deps, "SessionLocal", sessionmaker(autocommit=False, autoflush=False, bind=engine))
        headers = token_headers(student_user)

        try:
            with TestClient(app) as client:
                with client.websocket_connect(f"/ws/chat?token={_token(token_headers, student_user)}") as websocket:
                    websocket.receive_json()
                    _join_general(websocket)

                    response = client.get("/api/v1/auth/me", headers=headers)

                    websocket.send_json(
                        {"event": "send_message", "data": {"room_type": "course", "content": "still here"}}
                    )
                    frame = websocket.receive_json()
        finally:
            engine.dispose()

        assert response.status_code == 200
        assert frame["data"]["content"] == "still here"
