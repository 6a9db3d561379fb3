"""
Tests for mapping chat locations onto realtime room names.
"""
import uuid

import pytest
from fastapi import HTTPException

from fxdojo.modules.chat.service import ChatScope, ChatService, dm_participants, make_dm_room_id


class TestRoomNames:
    def test_general_course_room(self):
        assert ChatScope(room_type="course").room == "course:general"

    def test_course_room_with_channel(self):
        course_id = uuid.uuid4()
        scope = ChatScope(room_type="course", course_id=course_id, channel_id="signals")
        assert scope.room == f"course:{course_id}_signals"

    def test_lesson_room(self):
        lesson_id = uuid.uuid4()
        assert ChatScope(room_type="lesson", lesson_id=lesson_id).room == f"lesson:{lesson_id}"

    def test_dm_room_id_is_order_independent(self):
        a, b = uuid.uuid4(), uuid.uuid4()
        assert make_dm_room_id(a, b) == make_dm_room_id(b, a)
        assert sorted(dm_participants(make_dm_room_id(a, b))) == sorted([str(a), str(b)])

    def test_dm_room(self):
        dm = make_dm_room_id(uuid.uuid4(), uuid.uuid4())
        assert ChatScope(room_type="dm", dm_room_id=dm).room == f"dm:{dm}"


class TestResolveScope:
    def test_unknown_room_type(self, db, student_user):
        with pytest.raises(HTTPException) as exc:
            ChatService(db).resolve_scope(student_user, "broadcast")
        assert exc.value.status_code == 400

    def test_channel_suffix_in_room_id(self, db, student_user, published_course):
        scope = ChatService(db).resolve_scope(student_user, "course", f"{published_course.id}_signals")

        assert scope.course_id == published_course.id
        assert scope.channel_id == "signals"

    def test_unknown_lesson(self, db, student_user):
        with pytest.raises(HTTPException) as exc:
            ChatService(db).resolve_scope(student_user, "lesson", str(uuid.uuid4()))
        assert exc.value.status_code == 404

    def test_dm_requires_participation(self, db, student_user):
        stranger_room = make_dm_room_id(uuid.uuid4(), uuid.uuid4())
        with pytest.raises(HTTPException) as exc:
            ChatService(db).resolve_scope(student_user, "dm", stranger_room)
        assert exc.value.status_code == 403

    def test_dm_is_canonicalised(self, db, student_user, other_student):
        reversed_id = "_".join(sorted([str(student_user.id), str(other_student.id)], reverse=True))

        scope = ChatService(db).resolve_scope(student_user, "dm", reversed_id)

        assert scope.dm_room_id == make_dm_room_id(student_user.id, other_student.id)
