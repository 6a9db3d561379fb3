"""
Tests for the chat REST endpoints.
"""
from datetime import datetime, timedelta
from uuid import uuid4

from fxdojo.modules.chat.models import ChatMessage


def _post(client, headers, content="EURUSD looks heavy", **fields):
    return client.post("/api/v1/chat/message", json={"content": content, **fields}, headers=headers)


class TestSendAndList:
    def test_post_to_general_channel(self, client, auth_headers, student_user):
        response = _post(client, auth_headers)

        assert response.status_code == 201
        message = response.json()["message"]
        assert message["channel_id"] == "general"
        assert message["user_id"] == str(student_user.id)
        assert message["user_role"] == "student"
        assert message["type"] == "text"

    def test_blank_message_rejected(self, client, auth_headers):
        response = _post(client, auth_headers, content="   ")
        assert response.status_code == 400

    def test_unauthenticated_post_rejected(self, client):
        response = client.post("/api/v1/chat/message", json={"content": "hi"})
        assert response.status_code == 401

    def test_list_messages_in_chronological_order(self, client, auth_headers):
        for text in ("first", "second", "third"):
            _post(client, auth_headers, content=text)

        response = client.get("/api/v1/chat/messages?limit=2", headers=auth_headers)

        assert response.status_code == 200
        contents = [m["content"] for m in response.json()["messages"]]
        assert contents == ["second", "third"]

    def test_channels_are_separate(self, client, auth_headers):
        _post(client, auth_headers, content="general talk")
        _post(client, auth_headers, content="a signal", channel_id="signals")

        general = client.get("/api/v1/chat/messages", headers=auth_headers).json()["messages"]
        signals = client.get("/api/v1/chat/messages?channel_id=signals", headers=auth_headers).json()["messages"]

        assert [m["content"] for m in general] == ["general talk"]
        assert [m["content"] for m in signals] == ["a signal"]

    def test_lesson_messages_stay_in_lesson(self, client, auth_headers, lesson):
        _post(client, auth_headers, content="question about pips", room_type="lesson", room_id=str(lesson.id), type="question")

        lesson_msgs = client.get(
            f"/api/v1/chat/messages?room_type=lesson&room_id={lesson.id}", headers=auth_headers
        ).json()["messages"]
        general = client.get("/api/v1/chat/messages", headers=auth_headers).json()["messages"]

        assert lesson_msgs[0]["lesson_id"] == str(lesson.id)
        assert lesson_msgs[0]["type"] == "question"
        assert general == []

    def test_post_to_unknown_lesson(self, client, auth_headers):
        response = _post(client, auth_headers, room_type="lesson", room_id=str(uuid4()))
        assert response.status_code == 404


class TestUnread:
    def test_unread_counts_exclude_own_messages(self, client, auth_headers, other_headers):
        _post(client, auth_headers)
        _post(client, auth_headers, channel_id="signals")

        mine = client.get("/api/v1/chat/unread-count", headers=auth_headers).json()
        theirs = client.get("/api/v1/chat/unread-count", headers=other_headers).json()

        assert mine["unread_count"] == 0
        assert theirs["unread_count"] == 2
        assert theirs["channel_unread_counts"] == {"general": 1, "signals": 1}

    def test_mark_read_skips_unknown_and_duplicates(self, client, auth_headers, other_headers):
        message_id = _post(client, auth_headers).json()["message"]["id"]

        first = client.post(
            "/api/v1/chat/mark-read",
            json={"message_ids": [message_id, str(uuid4())]},
            headers=other_headers,
        )
        again = client.post("/api/v1/chat/mark-read", json={"message_ids": [message_id]}, headers=other_headers)

        assert first.json()["marked_count"] == 1
        assert again.json()["marked_count"] == 0
        assert client.get("/api/v1/chat/unread-count", headers=other_headers).json()["unread_count"] == 0

    def test_mark_channel_read(self, client, auth_headers, other_headers):
        _post(client, auth_headers, content="one")
        _post(client, auth_headers, content="two")
        _post(client, auth_headers, content="elsewhere", channel_id="signals")

        response = client.post(
            "/api/v1/chat/mark-channel-read",
            json={"channel_id": "general"},
            headers=other_headers,
        )

        assert response.status_code == 200
        assert response.json()["marked_count"] == 2
        counts = client.get("/api/v1/chat/unread-count", headers=other_headers).json()
        assert counts["channel_unread_counts"] == {"signals": 1}

    def test_mark_foreign_dm_read_forbidden(self, client, other_headers):
        response = client.post(
            "/api/v1/chat/mark-channel-read",
            json={"dm_room_id": f"{uuid4()}_{uuid4()}"},
            headers=other_headers,
        )
        assert response.status_code == 403

    def test_unread_since_groups_messages(self, client, db, auth_headers, other_headers, other_student):
        since = (datetime.utcnow() - timedelta(minutes=5)).isoformat() + "Z"
        _post(client, auth_headers, content="general one")
        client.post(
            "/api/v1/dm/message",
            json={"content": "psst", "other_user_id": str(other_student.id)},
            headers=auth_headers,
        )

        response = client.get(f"/api/v1/chat/unread-since?since={since}", headers=other_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total_unread"] == 2
        assert data["messages_by_channel"] == {"general": 1}
        assert sum(data["messages_by_dm"].values()) == 1

    def test_unread_since_requires_valid_timestamp(self, client, auth_headers):
        assert client.get("/api/v1/chat/unread-since", headers=auth_headers).status_code == 400
        assert client.get("/api/v1/chat/unread-since?since=yesterday", headers=auth_headers).status_code == 400

    def test_messages_older_than_since_are_ignored(self, client, db, auth_headers, other_headers):
        _post(client, auth_headers, content="old news")
        db.query(ChatMessage).update({ChatMessage.created_at: datetime.utcnow() - timedelta(days=2)})
        db.commit()

        since = (datetime.utcnow() - timedelta(days=1)).isoformat()
        data = client.get(f"/api/v1/chat/unread-since?since={since}", headers=other_headers).json()

        assert data["total_unread"] == 0
