"""
Tests for direct messages.
"""
from uuid import uuid4

from fxdojo.modules.chat.service import make_dm_room_id


def _dm(client, headers, other, content="Are you trading the NFP release?"):
    return client.post(
        "/api/v1/dm/message",
        json={"content": content, "other_user_id": str(other.id)},
        headers=headers,
    )


class TestDirectMessages:
    def test_send_dm(self, client, auth_headers, student_user, other_student):
        response = _dm(client, auth_headers, other_student)

        assert response.status_code == 201
        message = response.json()["message"]
        assert message["dm_room_id"] == make_dm_room_id(student_user.id, other_student.id)

    def test_cannot_dm_yourself(self, client, auth_headers, student_user):
        response = _dm(client, auth_headers, student_user)
        assert response.status_code == 400

    def test_dm_unknown_user(self, client, auth_headers):
        response = client.post(
            "/api/v1/dm/message",
            json={"content": "hello", "other_user_id": str(uuid4())},
            headers=auth_headers,
        )
        assert response.status_code == 404

    def test_blank_dm_rejected(self, client, auth_headers, other_student):
        response = _dm(client, auth_headers, other_student, content=" ")
        assert response.status_code == 400

    def test_conversation_visible_to_both_sides(self, client, auth_headers, other_headers, student_user, other_student):
        _dm(client, auth_headers, other_student, content="ping")
        _dm(client, other_headers, student_user, content="pong")

        mine = client.get(f"/api/v1/dm/conversation/{other_student.id}", headers=auth_headers).json()
        theirs = client.get(f"/api/v1/dm/conversation/{student_user.id}", headers=other_headers).json()

        assert [m["content"] for m in mine["messages"]] == ["ping", "pong"]
        assert mine["dm_room_id"] == theirs["dm_room_id"]
        assert mine["other_user"]["id"] == str(other_student.id)

    def test_dm_unread_counts(self, client, auth_headers, other_headers, student_user, other_student):
        _dm(client, auth_headers, other_student)

        counts = client.get("/api/v1/chat/unread-count", headers=other_headers).json()

        room = make_dm_room_id(student_user.id, other_student.id)
        assert counts["dm_unread_counts"] == {room: 1}
        assert counts["unread_count"] == 0

    def test_marking_dm_read_clears_its_count(self, client, auth_headers, other_headers, student_user, other_student):
        _dm(client, auth_headers, other_student)
        room = make_dm_room_id(student_user.id, other_student.id)

        marked = client.post("/api/v1/chat/mark-channel-read", json={"dm_room_id": room}, headers=other_headers)
        counts = client.get("/api/v1/chat/unread-count", headers=other_headers).json()

        assert marked.status_code == 200
        assert marked.json()["marked_count"] == 1
        assert counts["dm_unread_counts"] == {}

    def test_cannot_mark_someone_elses_dm_read(
        self, client, auth_headers, other_headers, student_user, instructor_user, other_student
    ):
        _dm(client, auth_headers, instructor_user)
        room = make_dm_room_id(student_user.id, instructor_user.id)

        response = client.post("/api/v1/chat/mark-channel-read", json={"dm_room_id": room}, headers=other_headers)

        assert response.status_code == 403

    def test_recent_conversations(self, client, auth_headers, student_user, other_student, user_factory):
        third = user_factory("third@test.com", "Third Trader")
        _dm(client, auth_headers, other_student, content="older")
        _dm(client, auth_headers, third, content="newer")
        _dm(client, auth_headers, other_student, content="latest")

        response = client.get("/api/v1/dm/recent", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert [c["last_message"]["content"] for c in data] == ["latest", "newer"]
        assert data[0]["other_user"]["id"] == str(other_student.id)

    def test_list_users_excludes_self(self, client, auth_headers, student_user, other_student):
        response = client.get("/api/v1/dm/users", headers=auth_headers)

        ids = [u["id"] for u in response.json()]
        assert str(other_student.id) in ids
        assert str(student_user.id) not in ids
