"""
Tests for avatar image upload and removal.
"""
import pytest

from fxdojo.integrations.storage import LocalStorage, get_storage
from fxdojo.main import app
from fxdojo.modules.users.service import MAX_AVATAR_BYTES

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


@pytest.fixture
def storage(client, tmp_path):
    storage = LocalStorage(tmp_path)
    app.dependency_overrides[get_storage] = lambda: storage
    return storage


def _upload(client, headers, name="chart.png", body=PNG, content_type="image/png"):
    return client.post(
        "/api/v1/user/avatar",
        files={"avatar": (name, body, content_type)},
        headers=headers,
    )


class TestAvatarUpload:
    def test_upload_replaces_colour_avatar(self, client, db, storage, auth_headers, student_user):
        student_user.avatar_color = "#3366ff"
        db.commit()

        response = _upload(client, auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["avatar_url"].startswith(f"/uploads/avatars/avatar_{student_user.id}_")
        assert data["avatar_url"].endswith(".png")
        assert data["user"]["avatar_image"] == data["avatar_url"]
        assert data["user"]["avatar_color"] is None
        assert storage.exists(storage.key_for(data["avatar_url"]))

    def test_new_upload_removes_previous_file(self, client, storage, auth_headers):
        first = _upload(client, auth_headers, name="first.png").json()["avatar_url"]
        second = _upload(client, auth_headers, name="second.gif", content_type="image/gif").json()["avatar_url"]

        assert second.endswith(".gif")
        assert not storage.exists(storage.key_for(first))
        assert storage.exists(storage.key_for(second))

    def test_rejects_non_image(self, client, storage, auth_headers):
        response = _upload(client, auth_headers, name="notes.txt", body=b"buy EURUSD", content_type="text/plain")
        assert response.status_code == 400

    def test_rejects_oversized_image(self, client, storage, auth_headers):
        response = _upload(client, auth_headers, body=b"\x00" * (MAX_AVATAR_BYTES + 1))
        assert response.status_code == 413
        assert not any(storage.storage_path.rglob("*.png"))

    def test_requires_a_file(self, client, storage, auth_headers):
        response = client.post("/api/v1/user/avatar", headers=auth_headers)
        assert response.status_code == 400

    def test_requires_login(self, client, storage):
        response = client.post("/api/v1/user/avatar", files={"avatar": ("chart.png", PNG, "image/png")})
        assert response.status_code == 401


class TestAvatarDelete:
    def test_delete_clears_image_and_file(self, client, storage, auth_headers):
        url = _upload(client, auth_headers).json()["avatar_url"]

        response = client.delete("/api/v1/user/avatar", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["user"]["avatar_image"] is None
        assert not storage.exists(storage.key_for(url))

    def test_delete_without_image(self, client, storage, auth_headers):
        response = client.delete("/api/v1/user/avatar", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["avatar_url"] is None


class TestLocalStorage:
    def test_keys_cannot_escape_the_upload_dir(self, tmp_path):
        storage = LocalStorage(tmp_path / "uploads")

        with pytest.raises(ValueError):
            storage.put_object("../outside.txt", b"x")

    def test_foreign_urls_have_no_key(self, tmp_path):
        storage = LocalStorage(tmp_path)

        assert storage.key_for("https://cdn.example.com/a.png") is None
        assert storage.key_for("/uploads/avatars/a.png") == "avatars/a.png"
